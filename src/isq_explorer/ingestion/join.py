"""
Join Module - Reconcile rows of two tables describing the same sections.
========================================================================

Profile pages render the evaluation data and the grade distribution as
separate tables. Rows are matched on the section key (Term, CRN, Course ID),
each part HTML-decoded and trimmed, because the two tables do not always
agree on whitespace or entity encoding.

Duplicate keys: the first row seen for a key wins and later rows with the
same key are dropped. The join is a strict inner join.
"""

from typing import Callable, Hashable, Iterable, TypeVar

from isq_explorer.ingestion.table import HtmlRow

K = TypeVar("K", bound=Hashable)

SectionKey = tuple[str, str, str]

TERM_COLUMN = "Term"
CRN_COLUMN = "CRN"
COURSE_ID_COLUMN = "Course ID"


def section_key(row: HtmlRow) -> SectionKey:
    """
    Normalized (term, crn, course id) key of a row.

    Raises:
        ColumnNotFoundError: If the row lacks one of the key columns
    """
    return row.text(TERM_COLUMN), row.text(CRN_COLUMN), row.text(COURSE_ID_COLUMN)


def group_first(rows: Iterable[HtmlRow], key: Callable[[HtmlRow], K] = section_key) -> dict[K, HtmlRow]:
    """
    Group rows by key, keeping only the first row for each key.

    Insertion order follows the first appearance of each key.
    """
    groups: dict[K, HtmlRow] = {}
    for row in rows:
        k = key(row)
        if k not in groups:
            groups[k] = row
    return groups


def inner_join(
    left: Iterable[HtmlRow],
    right: Iterable[HtmlRow],
    key: Callable[[HtmlRow], K] = section_key,
) -> list[tuple[HtmlRow, HtmlRow]]:
    """
    Pair rows of two tables that share a key.

    Args:
        left: Rows of the main table
        right: Rows of the table to merge in
        key: Key function (normalized section key by default)

    Returns:
        (left_row, right_row) pairs in left-table order; keys found in only
        one table produce nothing
    """
    left_groups = group_first(left, key)
    right_groups = group_first(right, key)
    return [(row, right_groups[k]) for k, row in left_groups.items() if k in right_groups]
