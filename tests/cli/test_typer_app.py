"""
Tests for the catalogvault Typer application.

Commands run through typer's CliRunner against a temporary cache database;
upstream calls are answered by the fake executor from conftest.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from catalogvault.cli import discover_handler, genres_handler, providers_handler, trakt_handler
from catalogvault.cli.typer_app import app
from catalogvault.services.discovery_service import DiscoveryService
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.constants import CLIDefaults

runner = CliRunner()


def _json_payload(output: str) -> dict[str, Any]:
    """Parse the JSON envelope, ignoring any log lines printed before it."""
    lines = output.splitlines()
    start = next(i for i, line in enumerate(lines) if line.startswith("{"))
    return json.loads("\n".join(lines[start:]))


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated working directory and environment for one CLI run."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    path = tmp_path / "cli-catalog.db"
    monkeypatch.setenv("CATALOGVAULT_CACHE__DB_PATH", str(path))
    monkeypatch.setenv("CATALOGVAULT_LOGGING__LEVEL", "WARNING")
    monkeypatch.setenv("CATALOGVAULT_UPSTREAMS__TMDB__API_KEY", "cli_test_api_key")  # pragma: allowlist secret
    return path


@pytest.fixture
def fake_service(monkeypatch: pytest.MonkeyPatch, upstream_factory) -> Any:
    """Route every DiscoveryService built by the CLI to the fake upstream."""
    upstream = upstream_factory(total_pages=5)

    def _build(settings):
        return DiscoveryService(settings, executor=upstream)

    monkeypatch.setattr(discover_handler, "DiscoveryService", _build)
    monkeypatch.setattr(genres_handler, "DiscoveryService", _build)
    monkeypatch.setattr(providers_handler, "DiscoveryService", _build)
    monkeypatch.setattr(trakt_handler, "DiscoveryService", _build)
    return upstream


class TestAppCallback:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"CatalogVault v{CLIDefaults.VERSION}" in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in (
            "discover",
            "cache-info",
            "cache-sweep",
            "genres-sync",
            "providers",
            "trakt-sync",
        ):
            assert command in result.output

    def test_missing_config_file_is_config_error(self, db_path: Path) -> None:
        result = runner.invoke(app, ["--config", "missing.toml", "cache-info"])

        assert result.exit_code == CLIDefaults.EXIT_CONFIG_ERROR

    def test_config_file_is_used(self, db_path: Path, tmp_path: Path) -> None:
        # Given a TOML file pointing at another database
        other_db = tmp_path / "from-toml.db"
        config_file = tmp_path / "custom.toml"
        config_file.write_text(
            f'[cache]\ndb_path = "{other_db.as_posix()}"\n',
            encoding="utf-8",
        )

        # When
        result = runner.invoke(app, ["--config", str(config_file), "cache-info", "--json"])

        # Then the file wins over the environment
        assert result.exit_code == 0
        payload = _json_payload(result.stdout)
        assert payload["data"]["db_path"] == str(other_db)


class TestCacheCommands:
    def test_cache_info_json(self, db_path: Path) -> None:
        result = runner.invoke(app, ["cache-info", "--json"])

        assert result.exit_code == 0
        payload = _json_payload(result.stdout)
        assert payload["success"] is True
        assert payload["command"] == "cache-info"
        assert payload["data"]["total_entries"] == 0
        assert db_path.exists()

    def test_cache_info_table(self, db_path: Path) -> None:
        result = runner.invoke(app, ["cache-info"])

        assert result.exit_code == 0
        assert "total entries" in result.stdout

    def test_cache_sweep_removes_expired(self, db_path: Path) -> None:
        # Given one fresh and one expired entry
        cache_db = SQLiteCacheDB(db_path)
        cache_db.store("/fresh", {"results": []}, ttl_seconds=3600)
        cache_db.store("/stale", {"results": []}, ttl_seconds=-1)
        cache_db.close()

        # When
        result = runner.invoke(app, ["cache-sweep", "--json"])

        # Then
        assert result.exit_code == 0
        assert _json_payload(result.stdout)["data"] == {"removed_entries": 1}

    def test_cache_sweep_text(self, db_path: Path) -> None:
        result = runner.invoke(app, ["cache-sweep"])

        assert result.exit_code == 0
        assert "Removed 0 expired entries" in result.stdout


class TestDiscoverCommand:
    def test_discover_by_catalog_id(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(
            app,
            ["discover", "--catalog-id", "tmdb-discover-movies-8", "--json"],
        )

        assert result.exit_code == 0
        payload = _json_payload(result.stdout)
        assert payload["command"] == "discover"
        assert payload["data"]["page"] == 1
        assert [item["id"] for item in payload["data"]["results"]] == [100, 101, 102]
        first = fake_service.calls[0]
        assert first.params["with_watch_providers"] == "8"
        assert first.params["sort_by"] == "popularity.desc"

    def test_discover_by_type_and_skip(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(
            app,
            [
                "discover",
                "--type",
                "series",
                "--provider",
                "337",
                "--region",
                "US",
                "--skip",
                "20",
                "--json",
            ],
        )

        # Then no cache history exists yet, so the resolver starts at page 1
        assert result.exit_code == 0
        assert _json_payload(result.stdout)["data"]["page"] == 1
        assert fake_service.calls[0].params["watch_region"] == "US"

    def test_discover_table_output(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["discover", "--catalog-id", "tmdb-discover-movies-8"])

        assert result.exit_code == 0
        assert "Title 100" in result.stdout

    def test_invalid_catalog_id(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["discover", "--catalog-id", "not-a-catalog"])

        assert result.exit_code == CLIDefaults.EXIT_CONFIG_ERROR
        assert fake_service.calls == []

    def test_invalid_catalog_id_json(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["discover", "--catalog-id", "not-a-catalog", "--json"])

        assert result.exit_code == CLIDefaults.EXIT_CONFIG_ERROR
        payload = _json_payload(result.stdout)
        assert payload["success"] is False
        assert payload["data"]["exit_code"] == CLIDefaults.EXIT_CONFIG_ERROR
        assert "Unparseable catalog id" in payload["errors"][0]

    def test_type_or_catalog_id_required(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["discover"])

        assert result.exit_code == CLIDefaults.EXIT_CONFIG_ERROR

    def test_invalid_year_range(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(
            app,
            ["discover", "--type", "movies", "--provider", "8", "--years", "1999-1990"],
        )

        assert result.exit_code == CLIDefaults.EXIT_CONFIG_ERROR
        assert fake_service.calls == []

    def test_region_failure_exits_with_error(
        self, db_path: Path, monkeypatch, upstream_factory
    ) -> None:
        upstream = upstream_factory(fail_regions=("GB",))
        monkeypatch.setattr(
            discover_handler,
            "DiscoveryService",
            lambda settings: DiscoveryService(settings, executor=upstream),
        )

        result = runner.invoke(
            app,
            ["discover", "--catalog-id", "tmdb-discover-movies-8", "-r", "US", "-r", "GB"],
        )

        assert result.exit_code == CLIDefaults.EXIT_ERROR


class TestGenresSyncCommand:
    def test_genres_sync_json(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["genres-sync", "--language", "de-DE", "--json"])

        assert result.exit_code == 0
        payload = _json_payload(result.stdout)
        assert payload["data"] == {"language": "de-DE", "genres": {"movie": 3, "tv": 3}}
        assert {task.params["language"] for task in fake_service.calls} == {"de-DE"}

    def test_genres_sync_default_language(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["genres-sync"])

        assert result.exit_code == 0
        assert "en-US" in result.stdout


class TestProvidersCommand:
    def test_providers_json(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["providers", "--json"])

        assert result.exit_code == 0
        payload = _json_payload(result.stdout)
        assert payload["command"] == "providers"
        names = [provider["provider_name"] for provider in payload["data"]["providers"]]
        assert names == ["Amazon Prime Video", "Disney Plus", "Netflix"]

    def test_providers_table_served_from_database(self, db_path: Path, fake_service) -> None:
        runner.invoke(app, ["providers"])
        result = runner.invoke(app, ["providers"])

        assert result.exit_code == 0
        assert "Netflix" in result.stdout
        assert len(fake_service.calls) == 2


class TestTraktSyncCommand:
    def test_trakt_sync_json(
        self, db_path: Path, fake_service, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        monkeypatch.setenv("CATALOGVAULT_TRAKT__USERNAME", "alice")
        monkeypatch.setenv("CATALOGVAULT_TRAKT__ACCESS_TOKEN", "token-1")

        # When
        first = runner.invoke(app, ["trakt-sync", "--json"])
        second = runner.invoke(app, ["trakt-sync", "--json"])

        # Then the second run is inside the fetch interval
        assert first.exit_code == 0
        assert _json_payload(first.stdout)["data"] == {
            "username": "alice",
            "imported": {"movie": 2, "show": 1},
            "skipped": False,
        }
        assert _json_payload(second.stdout)["data"]["skipped"] is True

    def test_trakt_sync_force_text(
        self, db_path: Path, fake_service, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CATALOGVAULT_TRAKT__USERNAME", "alice")
        monkeypatch.setenv("CATALOGVAULT_TRAKT__ACCESS_TOKEN", "token-1")
        runner.invoke(app, ["trakt-sync"])

        result = runner.invoke(app, ["trakt-sync", "--force"])

        assert result.exit_code == 0
        assert "2 watched (alice)" in result.stdout

    def test_trakt_sync_without_account(self, db_path: Path, fake_service) -> None:
        result = runner.invoke(app, ["trakt-sync"])

        assert result.exit_code == CLIDefaults.EXIT_CONFIG_ERROR
        assert fake_service.calls == []
