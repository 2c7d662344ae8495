"""
Shared Module - Common utilities, configuration, schemas, and logging.
======================================================================

Foundational components used by every other module:

- config: Configuration loading and management
- logging: Logging setup with Rich
- schemas: Pydantic data models
- outcome: Option, Try and Result value types
- errors: Error classes and the thread-safe ErrorBag
- utils: Text, regex and JSON helpers
"""

from isq_explorer.shared.config import Settings, get_settings
from isq_explorer.shared.errors import ErrorBag, InformationalError, IsqError
from isq_explorer.shared.logging import get_logger, setup_logging
from isq_explorer.shared.outcome import Option, Result, Try
from isq_explorer.shared.schemas import (
    Course,
    Department,
    Entry,
    EntryQuery,
    Professor,
    Season,
    Term,
    TermBound,
)
from isq_explorer.shared.utils import capture, load_json, normalize_text, save_json

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Outcomes
    "Option",
    "Try",
    "Result",
    # Errors
    "IsqError",
    "InformationalError",
    "ErrorBag",
    # Schemas
    "Department",
    "Term",
    "Season",
    "Course",
    "Professor",
    "Entry",
    "EntryQuery",
    "TermBound",
    # Utils
    "capture",
    "normalize_text",
    "load_json",
    "save_json",
]
