"""
Errors Module - Error values and the shared error bag.
======================================================

Exceptions here are mostly carried as data (inside Try/Result or the
ErrorBag) rather than raised to the top level. Each one records enough
context to act on later: the page URL, the offending HTML element and the
department/term/professor that was being scraped.

Severities:
- fatal: returned as a failed Result, stops the owning stage or sub-step
- recoverable: appended to the ErrorBag, the unit continues or is skipped
- informational: an InformationalError in the bag, an expected condition
"""

import threading
from collections import Counter
from typing import Any, Iterator, Optional

from isq_explorer.shared.utils import truncate_text


class IsqError(Exception):
    """Base class for all scrape and parse errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{ctx}]"


class HtmlPageError(IsqError):
    """A page does not have the shape we expect."""

    def __init__(self, url: Optional[str], message: str, **context: Any):
        super().__init__(message, url=url, **context)
        self.url = url


class HtmlElementError(IsqError):
    """A specific HTML element is not what we expect."""

    def __init__(self, element: Any, message: str, **context: Any):
        snippet = truncate_text(str(element), max_length=160) if element is not None else None
        super().__init__(message, element=snippet, **context)
        self.element = element


class MalformedTableError(HtmlElementError):
    """A table header has a blank or duplicated title."""


class ColumnNotFoundError(HtmlElementError, KeyError):
    """A column title is not present in a table."""

    def __init__(self, element: Any, title: str, available: list[str]):
        super().__init__(
            element,
            f"No column titled '{title}' (available: {', '.join(available)})",
        )
        self.title = title

    def __str__(self) -> str:
        return HtmlElementError.__str__(self)


class ValueParseError(IsqError, ValueError):
    """Cell text could not be parsed as a number."""

    def __init__(self, text: str, kind: str):
        super().__init__(f"Could not parse '{text}' as {kind}")
        self.text = text
        self.kind = kind


class ScrapeError(IsqError):
    """Failure tied to a department/term (and optionally a professor)."""

    def __init__(
        self,
        message: str,
        department: Any = None,
        term: Any = None,
        nnumber: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(
            message,
            department=getattr(department, "name", department),
            term=getattr(term, "name", term),
            nnumber=nnumber,
            **context,
        )
        self.department = department
        self.term = term
        self.nnumber = nnumber


class CourseScrapeError(ScrapeError):
    """A course cell could not be extracted."""


class ProfessorScrapeError(ScrapeError):
    """A professor link or profile could not be extracted."""


class EntryScrapeError(ScrapeError):
    """One evaluation row of a profile page could not be turned into an Entry."""


class InformationalError(IsqError):
    """
    An expected condition that is recorded but not treated as a failure.

    Examples: a department has no offerings in a term, or a professor's
    profile shows no evaluation data.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


# ─────────────────────────────────────────────────────────────────────────────
# Error Bag
# ─────────────────────────────────────────────────────────────────────────────


class ErrorBag:
    """
    Thread-safe, append-only collection of recoverable errors.

    Writers may append from any number of threads. Readers should only
    inspect the bag once every writer of the current stage has finished.
    """

    def __init__(self) -> None:
        self._errors: list[BaseException] = []
        self._lock = threading.Lock()

    def add(self, error: BaseException) -> None:
        with self._lock:
            self._errors.append(error)

    def extend(self, errors: "list[BaseException] | Iterator[BaseException]") -> None:
        errors = list(errors)
        with self._lock:
            self._errors.extend(errors)

    def snapshot(self) -> list[BaseException]:
        """Copy of all errors collected so far."""
        with self._lock:
            return list(self._errors)

    def informational(self) -> list[InformationalError]:
        return [e for e in self.snapshot() if isinstance(e, InformationalError)]

    def fatal(self) -> list[BaseException]:
        """Errors that are not informational."""
        return [e for e in self.snapshot() if not isinstance(e, InformationalError)]

    def summary(self) -> dict[str, int]:
        """Count errors by class name."""
        return dict(Counter(type(e).__name__ for e in self.snapshot()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.snapshot())
