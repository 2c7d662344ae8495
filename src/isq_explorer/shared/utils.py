"""
Utilities Module - Common helper functions.
==========================================

Provides utility functions for:
- Text handling (HTML entity decoding, blank checks, truncation)
- Regex capture groups
- File I/O (JSON, Pydantic models)
- Directory management
"""

import html
import json
import re
from pathlib import Path
from typing import Any, Optional, TypeVar

from pydantic import BaseModel

from isq_explorer.shared.logging import get_logger
from isq_explorer.shared.outcome import Option

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


# ─────────────────────────────────────────────────────────────────────────────
# Text Utilities
# ─────────────────────────────────────────────────────────────────────────────


def html_decode(text: Optional[str]) -> str:
    """
    Unescape HTML entities in text.

    Example:
        >>> html_decode("Fall&nbsp;2019")
        'Fall\\xa02019'
    """
    if text is None:
        return ""
    return html.unescape(text)


def normalize_text(text: Optional[str]) -> str:
    """HTML-decode and trim text, treating non-breaking spaces as blanks."""
    return html_decode(text).replace("\xa0", " ").strip()


def is_blank(text: Optional[str]) -> bool:
    """Return True if text is None, empty or whitespace only."""
    return text is None or normalize_text(text) == ""


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


# ─────────────────────────────────────────────────────────────────────────────
# Regex Helpers
# ─────────────────────────────────────────────────────────────────────────────


def capture(text: str, pattern: str, group: int = 1, flags: int = 0) -> Option[str]:
    """
    Search text for pattern and return one capture group.

    If the pattern has no groups, group 1 falls back to the whole match.

    Args:
        text: Text to search
        pattern: Regular expression
        group: Capture group number (1 = first group)
        flags: re flags

    Returns:
        Option with the captured text, empty if there is no (non-empty) match

    Example:
        >>> capture("abcdef", "a(bcd)e").value
        'bcd'
        >>> capture("abcdef", "(g)").has_value
        False
    """
    match = re.search(pattern, text, flags)
    if match is None:
        return Option.none()

    if match.re.groups == 0:
        if group > 1:
            return Option.none()
        found = match.group(0)
        return Option.some(found) if found != "" else Option.none()

    if group > match.re.groups:
        return Option.none()

    found = match.group(group)
    return Option.none() if found is None else Option.some(found)


# ─────────────────────────────────────────────────────────────────────────────
# Directory Management
# ─────────────────────────────────────────────────────────────────────────────


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        The path (for chaining)
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_parent_directory(file_path: Path) -> Path:
    """Ensure the parent directory of a file exists."""
    file_path = Path(file_path)
    ensure_directory(file_path.parent)
    return file_path


# ─────────────────────────────────────────────────────────────────────────────
# JSON File I/O
# ─────────────────────────────────────────────────────────────────────────────


def load_json(file_path: Path) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file is not valid JSON
    """
    with open(Path(file_path), "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(file_path: Path, data: Any, indent: int = 2) -> None:
    """
    Save data to a JSON file, creating parent directories.

    Args:
        file_path: Path to JSON file
        data: Data to save (must be JSON serializable)
        indent: Indentation level (default: 2)
    """
    file_path = ensure_parent_directory(Path(file_path))

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=str)

    logger.debug(f"Saved JSON to {file_path}")


def load_models_from_json(file_path: Path, model_class: type[T]) -> list[T]:
    """
    Load a list of Pydantic models from a JSON file.

    Args:
        file_path: Path to JSON file containing a list
        model_class: Pydantic model class

    Returns:
        List of model instances
    """
    data = load_json(file_path)
    if not isinstance(data, list):
        data = [data]
    return [model_class.model_validate(item) for item in data]


def save_models_to_json(file_path: Path, models: list[BaseModel], indent: int = 2) -> None:
    """Save a list of Pydantic models to a JSON file."""
    data = [model.model_dump(mode="json") for model in models]
    save_json(file_path, data, indent=indent)
