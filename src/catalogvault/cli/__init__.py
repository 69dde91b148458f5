"""CatalogVault command-line interface."""
