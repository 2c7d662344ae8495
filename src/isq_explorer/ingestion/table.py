"""
Table Module - Generic HTML table to rows.
==========================================

Parses a rectangular HTML table into ordered column titles and rows that
can be addressed by title. The first row is the header (``th`` or ``td``
cells); every later row is data.

Rules:
- Header titles are HTML-decoded and trimmed, and must be non-blank and unique
- Rows shorter than the header get blank cells for the missing columns
- Looking up a column the table does not have fails loudly, so callers can
  detect page layouts that lack an expected block
"""

from typing import Iterator

from bs4 import BeautifulSoup, Tag

from isq_explorer.shared.errors import ColumnNotFoundError, HtmlElementError, MalformedTableError
from isq_explorer.shared.outcome import Try
from isq_explorer.shared.utils import normalize_text

_ROW_SELECTOR = ":scope > tr, :scope > thead > tr, :scope > tbody > tr, :scope > tfoot > tr"


def _blank_cell() -> Tag:
    return BeautifulSoup("", "lxml").new_tag("td")


def _row_cells(row: Tag) -> list[Tag]:
    return row.find_all(["td", "th"], recursive=False)


class HtmlRow:
    """One data row, mapping column title to its cell element."""

    def __init__(self, element: Tag, titles: list[str], cells: dict[str, Tag]):
        self.element = element
        self._titles = titles
        self._cells = cells

    def __getitem__(self, title: str) -> Tag:
        try:
            return self._cells[title]
        except KeyError:
            raise ColumnNotFoundError(self.element, title, self._titles) from None

    def __contains__(self, title: object) -> bool:
        return title in self._cells

    def cell(self, title: str) -> Try[Tag]:
        """Like ``row[title]`` but returns a Try instead of raising."""
        return Try.of(self.__getitem__, title, catch=ColumnNotFoundError)

    def text(self, title: str) -> str:
        """Decoded, trimmed text of the cell under title."""
        return normalize_text(self[title].get_text())

    def __repr__(self) -> str:
        values = {t: normalize_text(c.get_text()) for t, c in self._cells.items()}
        return f"HtmlRow({values})"


class HtmlTable:
    """
    A parsed table element.

    Example:
        >>> table = HtmlTable.create(element).unwrap()
        >>> [row.text("CRN") for row in table.rows]
        ['12345', '12346']
    """

    def __init__(self, element: Tag, column_titles: list[str], rows: list[HtmlRow]):
        self.element = element
        self.column_titles = column_titles
        self.rows = rows

    @classmethod
    def create(cls, element: Tag) -> Try["HtmlTable"]:
        """
        Parse a <table> element.

        Returns:
            Try holding the table, or an HtmlElementError describing why the
            element is not a usable table
        """
        return Try.of(cls._parse, element, catch=HtmlElementError)

    @classmethod
    def _parse(cls, element: Tag) -> "HtmlTable":
        if element is None or element.name != "table":
            raise HtmlElementError(element, "Expected a <table> element")

        tr_elements = element.select(_ROW_SELECTOR)
        if not tr_elements:
            raise MalformedTableError(element, "Table has no header row")

        titles: list[str] = []
        for cell in _row_cells(tr_elements[0]):
            title = normalize_text(cell.get_text())
            if title == "":
                raise MalformedTableError(cell, "Table header contains a blank title")
            if title in titles:
                raise MalformedTableError(cell, f"Table header contains duplicate title '{title}'")
            titles.append(title)

        if not titles:
            raise MalformedTableError(element, "Table header row has no cells")

        rows = []
        for tr in tr_elements[1:]:
            cells = _row_cells(tr)
            mapping = {}
            for i, title in enumerate(titles):
                mapping[title] = cells[i] if i < len(cells) else _blank_cell()
            rows.append(HtmlRow(tr, titles, mapping))

        return cls(element, titles, rows)

    def has_column(self, title: str) -> bool:
        return title in self.column_titles

    def column(self, title: str) -> list[Tag]:
        """
        All cells under a column.

        Raises:
            ColumnNotFoundError: If the table has no such column
        """
        if title not in self.column_titles:
            raise ColumnNotFoundError(self.element, title, self.column_titles)
        return [row[title] for row in self.rows]

    def __iter__(self) -> Iterator[HtmlRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __repr__(self) -> str:
        return f"HtmlTable(columns={self.column_titles}, rows={len(self.rows)})"
