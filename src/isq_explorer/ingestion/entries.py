"""
Entries Module - Map evaluation table rows to Entry records.
============================================================

Column titles used by the profile page tables:

Main table:  Term, CRN, Course ID, Number Enrolled, Number Responded,
             Excellent (5), Very Good (4), Good (3), Fair (2), Poor (1), NR/NA
GPA table:   Term, CRN, Course ID, A, A-, B+, B, B-, C+, C, D, F, Withdraw, Mean GPA

Older pages have no GPA table; their entries get 0.0 for every grade field.
"""

import re
from typing import Optional

from isq_explorer.ingestion.table import HtmlRow
from isq_explorer.shared.errors import ValueParseError
from isq_explorer.shared.outcome import Try
from isq_explorer.shared.schemas import Course, Entry, Professor, Term
from isq_explorer.shared.utils import normalize_text

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

RATING_COLUMNS = {
    "pct_5": "Excellent (5)",
    "pct_4": "Very Good (4)",
    "pct_3": "Good (3)",
    "pct_2": "Fair (2)",
    "pct_1": "Poor (1)",
    "pct_na": "NR/NA",
}

GRADE_COLUMNS = {
    "pct_a": "A",
    "pct_a_minus": "A-",
    "pct_b_plus": "B+",
    "pct_b": "B",
    "pct_b_minus": "B-",
    "pct_c_plus": "C+",
    "pct_c": "C",
    "pct_d": "D",
    "pct_f": "F",
    "pct_withdraw": "Withdraw",
}

MEAN_GPA_COLUMN = "Mean GPA"


def parse_int(text: Optional[str]) -> Try[int]:
    """Parse decoded, trimmed cell text as an integer."""
    cleaned = normalize_text(text)
    if not _INT_RE.fullmatch(cleaned):
        return Try.err(ValueParseError(cleaned, "int"))
    return Try.ok(int(cleaned))


def parse_float(text: Optional[str]) -> Try[float]:
    """Parse decoded, trimmed cell text as a float. A trailing '%' is allowed."""
    cleaned = normalize_text(text)
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1].rstrip()
    if not _FLOAT_RE.fullmatch(cleaned):
        return Try.err(ValueParseError(cleaned, "float"))
    return Try.ok(float(cleaned))


def _int_cell(row: HtmlRow, title: str) -> int:
    return parse_int(row.text(title)).unwrap()


def _float_cell(row: HtmlRow, title: str) -> float:
    return parse_float(row.text(title)).unwrap()


def build_entry(
    main_row: HtmlRow,
    gpa_row: Optional[HtmlRow],
    *,
    course: Course,
    term: Term,
    professor: Professor,
) -> Entry:
    """
    Build an Entry from a main-table row and its matching GPA row.

    Args:
        main_row: Row of the main evaluation table
        gpa_row: Matching row of the GPA table, or None for legacy pages
        course: Resolved course
        term: Resolved term
        professor: Professor the page belongs to

    Returns:
        The Entry

    Raises:
        ColumnNotFoundError: If an expected column is missing
        ValueParseError: If a numeric cell (other than a blank Mean GPA) does not parse
        pydantic.ValidationError: If a value is out of range
    """
    fields: dict[str, float] = {
        name: _float_cell(main_row, title) for name, title in RATING_COLUMNS.items()
    }

    if gpa_row is not None:
        fields.update({name: _float_cell(gpa_row, title) for name, title in GRADE_COLUMNS.items()})
        mean_gpa = gpa_row.text(MEAN_GPA_COLUMN)
        fields["mean_gpa"] = parse_float(mean_gpa or "0.0").unwrap()

    return Entry(
        term=term,
        crn=_int_cell(main_row, "CRN"),
        course=course,
        professor=professor,
        n_enrolled=_int_cell(main_row, "Number Enrolled"),
        n_responded=_int_cell(main_row, "Number Responded"),
        **fields,
    )
