"""
CLI Module - Command-line interface for ISQ Explorer.
=====================================================

Usage:
    isq --help
    isq scrape --workers 16
    isq query --course "COP 3503" --since "Fall 2018"
    isq info

Components:
- main: Typer CLI application
"""

from isq_explorer.cli.main import app, cli

__all__ = ["app", "cli"]
