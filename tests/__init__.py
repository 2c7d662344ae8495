"""
Tests Package - Unit tests for ISQ Explorer.
============================================

Test modules:
- test_shared: Outcome types, errors, utils, config
- test_table: HTML table model and row reconciliation
- test_entries: Number parsing, entry mapping, schemas
- test_client: Documents and the HTTP client (session mocked)
- test_scraper: Scrape stages and the full run
- test_repositories: Repositories and persistence
- test_cli: Typer commands

Run tests with:
    pytest tests/
"""
