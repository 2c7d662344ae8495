"""
Pytest Configuration and Fixtures.
===================================

Shared fixtures for all test modules:
- HTML page builders for the schedule search and profile pages
- A fake document fetcher that records every request
- Sample records and in-memory repositories
- Temporary directories
"""

import tempfile
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

from isq_explorer.ingestion.client import HtmlDocument
from isq_explorer.shared.config import ScrapingConfig, Settings
from isq_explorer.shared.errors import HtmlPageError
from isq_explorer.shared.outcome import Try
from isq_explorer.shared.schemas import Course, Department, Professor, Term
from isq_explorer.storage.repositories import RepositorySet

MAIN_COLUMNS = [
    "Term", "CRN", "Course ID", "Number Enrolled", "Number Responded",
    "Excellent (5)", "Very Good (4)", "Good (3)", "Fair (2)", "Poor (1)", "NR/NA",
]

GPA_COLUMNS = [
    "Term", "CRN", "Course ID",
    "A", "A-", "B+", "B", "B-", "C+", "C", "D", "F", "Withdraw", "Mean GPA",
]

SCHEDULE_COLUMNS = ["CRN", "Course", "Title", "Instructor"]


# ─────────────────────────────────────────────────────────────────────────────
# HTML Builders
# ─────────────────────────────────────────────────────────────────────────────


def table_html(headers: list[str], rows: list[list[str]], css_class: str = "datadisplaytable") -> str:
    """Build a table whose first row is a header row of <th> cells."""
    head = "".join(f"<th>{h}</th>" for h in headers)
    body = "".join("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>" for row in rows)
    return f'<table class="{css_class}"><tr>{head}</tr>{body}</table>'


def filler_table() -> str:
    return '<table class="datadisplaytable"><tr><td>filler</td></tr></table>'


def search_page(departments: list[tuple[int, str]], terms: list[tuple[int, str]]) -> str:
    """Schedule search form with a placeholder option in each select."""
    dept_options = "".join(f'<option value="{i}">{n}</option>' for i, n in departments)
    term_options = "".join(f'<option value="{i}">{n}</option>' for i, n in terms)
    return (
        "<html><body><form>"
        f'<select id="dept_id"><option value="">Select a department</option>{dept_options}</select>'
        f'<select id="term_id"><option value="">Select a term</option>{term_options}</select>'
        "</form></body></html>"
    )


def course_link(code: str) -> str:
    return f'<a href="/course?code={code}">{code}</a>'


def instructor_link(name: str, nnumber: str) -> str:
    return f'<a href="/pls/nfpo/wkshisq.p_isq_dept_pub?pv_instr={nnumber}">{name}</a>'


def schedule_page(rows: list[list[str]], table_count: int = 3) -> str:
    """Department schedule results; the course table is the last one."""
    if table_count < 3:
        return "<html><body>" + filler_table() * table_count + "</body></html>"
    fillers = filler_table() * (table_count - 1)
    return f"<html><body>{fillers}{table_html(SCHEDULE_COLUMNS, rows)}</body></html>"


def profile_page(
    name: Optional[str],
    main_rows: list[list[str]],
    gpa_rows: Optional[list[list[str]]] = None,
    legacy: bool = False,
) -> str:
    """
    Professor profile page.

    Modern pages have six display tables (main at 3, GPA at 5); legacy pages
    have four (main at 3).
    """
    label = (
        '<table class="datadisplaytable"><tr><th class="ddlabel">Instructor:</th>'
        f'<td class="dddefault">{name}</td></tr></table>'
        if name is not None
        else filler_table()
    )
    main = table_html(MAIN_COLUMNS, main_rows)
    if legacy:
        return f"<html><body>{label}{filler_table()}{filler_table()}{main}</body></html>"
    gpa = table_html(GPA_COLUMNS, gpa_rows or [])
    return f"<html><body>{label}{filler_table()}{filler_table()}{main}{filler_table()}{gpa}</body></html>"


def main_row(term="Fall 2019", crn="12345", course_id="CS 101", enrolled="50", responded="40",
             ratings=("10", "15", "10", "4", "1", "0")) -> list[str]:
    return [term, crn, course_id, enrolled, responded, *ratings]


def gpa_row(term="Fall 2019", crn="12345", course_id="CS 101",
            grades=("20", "10", "15", "15", "10", "10", "10", "5", "3", "2"), mean_gpa="3.20") -> list[str]:
    return [term, crn, course_id, *grades, mean_gpa]


# ─────────────────────────────────────────────────────────────────────────────
# Fake Client
# ─────────────────────────────────────────────────────────────────────────────


class FakeClient:
    """
    In-memory document fetcher.

    ``pages`` maps URL to HTML for GET requests; ``forms`` maps
    (department id, term id) to the HTML returned by the schedule search.
    Unknown URLs fail the way a network error would.
    """

    def __init__(self, pages: Optional[dict] = None, forms: Optional[dict] = None):
        self.pages = dict(pages or {})
        self.forms = dict(forms or {})
        self.fetched: list[str] = []
        self.submitted: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def fetch(self, url: str) -> Try[HtmlDocument]:
        with self._lock:
            self.fetched.append(url)
        if url not in self.pages:
            return Try.err(HtmlPageError(url, "Request failed: 404 Not Found"))
        return Try.ok(HtmlDocument(url, self.pages[url]))

    def submit_form(self, url: str, fields: dict) -> Try[HtmlDocument]:
        with self._lock:
            self.submitted.append((url, fields))
        key = (int(fields["pv_dept"]), int(fields["pv_term"]))
        if key not in self.forms:
            return Try.err(HtmlPageError(url, "Request failed: 500 Server Error"))
        return Try.ok(HtmlDocument(url, self.forms[key]))

    def fetch_count(self, url: str) -> int:
        return self.fetched.count(url)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings() -> Settings:
    """Settings with the default URLs and a small worker pool."""
    return Settings(scraping=ScrapingConfig(max_workers=4))


@pytest.fixture
def scraping(settings: Settings) -> ScrapingConfig:
    return settings.scraping


@pytest.fixture
def repositories() -> RepositorySet:
    return RepositorySet.in_memory()


@pytest.fixture
def department() -> Department:
    return Department(id=6001, name="Computing")


@pytest.fixture
def term() -> Term:
    return Term(id=201980, name="Fall 2019")


@pytest.fixture
def course(department: Department) -> Course:
    return Course(course_code="CS 101", name="Intro to Computing", department=department)


@pytest.fixture
def professor(department: Department) -> Professor:
    return Professor(first_name="Jane", last_name="Smith", nnumber="N00000001", department=department)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
