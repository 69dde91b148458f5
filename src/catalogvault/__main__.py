"""
CatalogVault Package Main Entry Point

Runs the CLI when the package is executed with ``python -m catalogvault``.
"""

import logging
import sys

from catalogvault.cli.common.error_handler import handle_cli_error
from catalogvault.cli.typer_app import app

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Command interrupted by user")
        sys.exit(handle_cli_error(KeyboardInterrupt(), "catalogvault-main"))
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "catalogvault-main")
        sys.exit(exit_code)
