"""
Scraper Module - Orchestrates the ISQ extraction stages.
=======================================================

Stages, in dependency order:

1. Departments: options of ``#dept_id`` on the schedule search page
2. Terms: options of ``#term_id`` on the same page
3. Courses and professors, one unit per (department, term) pair, run
   concurrently: submit the schedule search and read the third
   ``table.datadisplaytable`` of the response
4. Entries, one unit per known professor, run concurrently: read the
   evaluation tables on the professor's profile page

Fatal failures come back as a failed Result and stop the stage (or the
unit, inside a fan-out). Recoverable failures go to the shared ErrorBag and
the unit carries on. A fan-out never lets one unit abort its siblings.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from bs4 import Tag

from isq_explorer.ingestion.client import HtmlClient, HtmlDocument, cell_is_blank, expect_anchor, option_elements
from isq_explorer.ingestion.entries import build_entry, parse_int
from isq_explorer.ingestion.join import COURSE_ID_COLUMN, TERM_COLUMN, group_first, inner_join
from isq_explorer.ingestion.table import HtmlRow, HtmlTable
from isq_explorer.shared.config import Settings, get_settings
from isq_explorer.shared.errors import (
    CourseScrapeError,
    EntryScrapeError,
    ErrorBag,
    HtmlElementError,
    HtmlPageError,
    InformationalError,
    ProfessorScrapeError,
    ScrapeError,
)
from isq_explorer.shared.logging import get_logger
from isq_explorer.shared.outcome import Option, Result, Try
from isq_explorer.shared.schemas import NNUMBER_PATTERN, Course, Department, Professor, Term
from isq_explorer.shared.utils import capture, normalize_text
from isq_explorer.storage.repositories import RepositorySet

logger = get_logger(__name__)

TABLE_SELECTOR = "table.datadisplaytable"
DEPARTMENT_SELECTOR = "#dept_id"
TERM_SELECTOR = "#term_id"
INSTRUCTOR_NAME_SELECTOR = "td.dddefault"
INSTRUCTOR_LABEL = "Instructor:"

SCHEDULE_TABLE_COUNT = 3
MODERN_PROFILE_TABLE_COUNT = 6
LEGACY_PROFILE_TABLE_COUNT = 4
MAIN_TABLE_INDEX = 3
GPA_TABLE_INDEX = 5

ProgressCallback = Callable[[str, int, int], None]


def split_name(full_name: str) -> tuple[str, str]:
    """Split 'First Middle Last' into ('First Middle', 'Last')."""
    parts = full_name.split()
    if not parts:
        return "", ""
    return " ".join(parts[:-1]), parts[-1]


def in_context(error_cls: type[ScrapeError], message: str, cause: BaseException, **context: Any) -> ScrapeError:
    """Wrap a failure so it names the department, term or professor it belongs to."""
    error = error_cls(f"{message}: {cause}", **context)
    error.__cause__ = cause
    return error


@dataclass
class ScrapeReport:
    """Summary of a scrape run."""

    departments: int = 0
    terms: int = 0
    courses: int = 0
    professors: int = 0
    entries: int = 0
    fatal_errors: int = 0
    informational: int = 0
    error_counts: dict[str, int] = field(default_factory=dict)


# ─────────────────────────────────────────────────────────────────────────────
# Scraper Class
# ─────────────────────────────────────────────────────────────────────────────


class IsqScraper:
    """
    Runs the ISQ extraction stages against a document fetcher.

    Example:
        >>> with HtmlClient() as client:
        ...     scraper = IsqScraper(client, RepositorySet.from_settings())
        ...     result = scraper.run()
        ...     print(result.is_ok(), len(scraper.errors))
    """

    def __init__(
        self,
        client: HtmlClient,
        repositories: RepositorySet,
        errors: Optional[ErrorBag] = None,
        settings: Optional[Settings] = None,
        max_workers: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the scraper.

        Args:
            client: Anything with fetch(url) and submit_form(url, fields) returning Try[HtmlDocument]
            repositories: Where scraped records are added
            errors: Shared error bag (a new one if None)
            settings: Application settings (defaults to get_settings())
            max_workers: Thread pool size for the fan-out stages
            progress_callback: Optional callback(stage, done, total)
        """
        settings = settings or get_settings()
        self.client = client
        self.repositories = repositories
        self.errors = errors if errors is not None else ErrorBag()
        self.config = settings.scraping
        self.max_workers = max_workers or settings.get_effective_max_workers()
        self.progress_callback = progress_callback

    # ─────────────────────────────────────────────────────────────────────
    # Stage 1 & 2: departments and terms
    # ─────────────────────────────────────────────────────────────────────

    def _options(self, selector: str) -> list[tuple[int, str]]:
        """(value, label) pairs of a schedule page <select>, minus the placeholder."""
        page = self.client.fetch(self.config.dept_schedule_url).unwrap()
        select = page.query(selector).unwrap()

        options = []
        for option in option_elements(select)[1:]:
            value = parse_int(option.get("value")).unwrap()
            label = normalize_text(option.get("label") or option.get_text())
            options.append((value, label))
        return options

    def scrape_departments(self) -> Result:
        """Add every department listed on the schedule search page."""

        def stage() -> None:
            departments = [Department(id=v, name=label) for v, label in self._options(DEPARTMENT_SELECTOR)]
            added = self.repositories.departments.add_range(departments)
            logger.info(f"Departments: found {len(departments)}, added {added}")

        result = Result.of(stage)
        if result.is_err():
            logger.error(f"Department scrape failed: {result.error}")
        return result

    def scrape_terms(self) -> Result:
        """Add every term listed on the schedule search page."""

        def stage() -> None:
            terms = [Term(id=v, name=label) for v, label in self._options(TERM_SELECTOR)]
            added = self.repositories.terms.add_range(terms)
            logger.info(f"Terms: found {len(terms)}, added {added}")

        result = Result.of(stage)
        if result.is_err():
            logger.error(f"Term scrape failed: {result.error}")
        return result

    # ─────────────────────────────────────────────────────────────────────
    # Stage 3: courses and professors per (department, term)
    # ─────────────────────────────────────────────────────────────────────

    def _schedule_table(self, dept: Department, term: Term) -> Try[Option[HtmlTable]]:
        """
        Submit the schedule search and parse its result table.

        An empty Option means the page had no course listing, which is
        recorded as informational.
        """

        def load() -> Option[HtmlTable]:
            page = self.client.submit_form(
                self.config.dept_schedule_url,
                self.config.schedule_form_data(term.id, dept.id),
            ).unwrap()

            tables = page.query_all(TABLE_SELECTOR)
            if len(tables) != SCHEDULE_TABLE_COUNT:
                self.errors.add(
                    InformationalError(
                        f"Most likely there are no courses for department '{dept}' and term '{term}'.",
                        HtmlPageError(
                            page.url,
                            f"Expected {SCHEDULE_TABLE_COUNT} {TABLE_SELECTOR}, found {len(tables)}",
                        ),
                    )
                )
                logger.debug(f"No schedule table for {dept} / {term}")
                return Option.none()

            return Option.some(HtmlTable.create(tables[-1]).unwrap())

        return Try.of(load)

    def _extract_courses(self, dept: Department, term: Term, table: HtmlTable) -> Result:
        if not table.has_column("Course"):
            return Result.err(
                HtmlElementError(table.element, "Expected a column in the main table titled 'Course'")
            )

        def extract() -> None:
            found = added = 0
            for row in table:
                cell = row["Course"]
                if cell_is_blank(cell):
                    continue

                anchor = expect_anchor(cell)
                if anchor.is_err():
                    self._recoverable(
                        CourseScrapeError(
                            f"The given cell was not an <a> element: '{normalize_text(cell.get_text())}'",
                            dept,
                            term,
                        )
                    )
                    continue

                course = Course(
                    course_code=normalize_text(anchor.unwrap().get_text()),
                    name=row.text("Title"),
                    department=dept,
                )
                found += 1
                if self.repositories.courses.add(course):
                    added += 1

            logger.info(f"Courses for {dept} / {term}: found {found}, added {added}")

        return Result.of(extract)

    def _extract_professors(self, dept: Department, term: Term, table: HtmlTable) -> Result:
        if not table.has_column("Instructor"):
            return Result.err(
                HtmlElementError(table.element, "Expected a column in the main table titled 'Instructor'")
            )

        def extract() -> None:
            nnumbers: list[str] = []
            for cell in table.column("Instructor"):
                if cell_is_blank(cell):
                    continue

                anchor = expect_anchor(cell)
                if anchor.is_err():
                    self._recoverable(
                        ProfessorScrapeError(
                            f"The given cell with HTML '{cell}' was not an <a> element", dept, term
                        )
                    )
                    continue

                href = anchor.unwrap().get("href") or ""
                nnumber = capture(href, f"({NNUMBER_PATTERN})").map(str.upper)
                if not nnumber.has_value:
                    self._recoverable(
                        ProfessorScrapeError(f"The URL '{href}' does not contain an N-number", dept, term)
                    )
                    continue

                if nnumber.value not in nnumbers:
                    nnumbers.append(nnumber.value)

            for nnumber in nnumbers:
                self._scrape_professor(dept, term, nnumber)

            logger.info(f"Professors for {dept} / {term}: {len(nnumbers)} linked")

        return Result.of(extract)

    def _scrape_professor(self, dept: Department, term: Term, nnumber: str) -> None:
        """Fetch and add one professor unless already known for the department."""
        if self.repositories.professors.from_nnumber(dept, nnumber).has_value:
            logger.debug(f"Skipping known professor {nnumber}")
            return

        url = self.config.professor_url(nnumber)
        page = self.client.fetch(url)
        if page.is_err():
            self._recoverable(
                ProfessorScrapeError(f"Could not fetch profile page: {page.unwrap_err()}", dept, term, nnumber)
            )
            return

        name_cell = self._instructor_name_cell(page.unwrap())
        if name_cell is None:
            self.errors.add(
                InformationalError(
                    f"Most likely the professor with N-number {nnumber} has no course data.",
                    ProfessorScrapeError(f"Could not find instructor name on '{url}'", dept, term, nnumber),
                )
            )
            return

        first_name, last_name = split_name(normalize_text(name_cell.get_text()))
        self.repositories.professors.add(
            Professor(first_name=first_name, last_name=last_name, nnumber=nnumber, department=dept)
        )

    @staticmethod
    def _instructor_name_cell(page: HtmlDocument) -> Optional[Tag]:
        for cell in page.query_all(INSTRUCTOR_NAME_SELECTOR):
            label = cell.find_previous_sibling()
            if label is not None and normalize_text(label.get_text()) == INSTRUCTOR_LABEL:
                return cell
        return None

    def scrape_courses(self, dept: Department, term: Term) -> Result:
        """Add the courses a department offers in a term."""
        return self._with_schedule_table(dept, term, self._extract_courses, CourseScrapeError)

    def scrape_professors(self, dept: Department, term: Term) -> Result:
        """Add the professors teaching for a department in a term."""
        return self._with_schedule_table(dept, term, self._extract_professors, ProfessorScrapeError)

    def scrape_pair(self, dept: Department, term: Term) -> Result:
        """Courses, then professors, for one (department, term) from a single page load."""

        def both(d: Department, t: Term, table: HtmlTable) -> Result:
            return self._extract_courses(d, t, table).and_then(
                lambda: self._extract_professors(d, t, table)
            )

        return self._with_schedule_table(dept, term, both, ScrapeError)

    def _with_schedule_table(
        self,
        dept: Department,
        term: Term,
        extract: Callable[[Department, Term, HtmlTable], Result],
        error_cls: type[ScrapeError],
    ) -> Result:
        """Load the schedule table once and run extract on it; failures name the pair."""
        loaded = self._schedule_table(dept, term)
        if loaded.is_err():
            result = Result.err(loaded.unwrap_err())
        else:
            table = loaded.unwrap()
            if not table.has_value:
                return Result.ok()
            result = Result.of(extract, dept, term, table.value)

        if result.is_err():
            return Result.err(
                in_context(
                    error_cls,
                    "Could not scrape department schedule",
                    result.unwrap_err(),
                    department=dept,
                    term=term,
                    url=self.config.dept_schedule_url,
                )
            )
        return result

    # ─────────────────────────────────────────────────────────────────────
    # Stage 4: entries per professor
    # ─────────────────────────────────────────────────────────────────────

    def scrape_professor_entries(self, prof: Professor) -> Result:
        """
        Add the evaluation entries on a professor's profile page.

        Six tables: table 3 (evaluations) joined with table 5 (grades).
        Four tables: table 3 alone, grade fields left at 0.0.
        Row failures go to the error bag; page-level failures are returned.
        """
        url = self.config.professor_url(prof.nnumber)

        def stage() -> Result:
            page = self.client.fetch(url).unwrap()
            tables = page.query_all(TABLE_SELECTOR)

            if len(tables) == MODERN_PROFILE_TABLE_COUNT:
                main_table = HtmlTable.create(tables[MAIN_TABLE_INDEX]).unwrap()
                gpa_table = HtmlTable.create(tables[GPA_TABLE_INDEX]).unwrap()
                pairs: Sequence[tuple[HtmlRow, Optional[HtmlRow]]] = inner_join(main_table.rows, gpa_table.rows)
            elif len(tables) == LEGACY_PROFILE_TABLE_COUNT:
                main_table = HtmlTable.create(tables[MAIN_TABLE_INDEX]).unwrap()
                pairs = [(row, None) for row in group_first(main_table.rows).values()]
            else:
                return Result.err(
                    HtmlPageError(
                        url,
                        f"Expected {MODERN_PROFILE_TABLE_COUNT} or {LEGACY_PROFILE_TABLE_COUNT} "
                        f"{TABLE_SELECTOR}, got {len(tables)}",
                        nnumber=prof.nnumber,
                    )
                )

            added = 0
            for main_row, gpa_row in pairs:
                result = Result.of(self._add_entry, prof, main_row, gpa_row)
                if result.is_err():
                    self._recoverable(self._entry_error(prof, main_row, url, result.unwrap_err()))
                else:
                    added += 1

            logger.debug(f"Entries for {prof}: {added}/{len(pairs)} rows added")
            return Result.ok()

        result = Result.of(stage)
        if result.is_err():
            return Result.err(
                in_context(
                    ProfessorScrapeError,
                    "Could not scrape profile page",
                    result.unwrap_err(),
                    department=prof.department,
                    nnumber=prof.nnumber,
                    url=url,
                )
            )
        return result

    def _add_entry(self, prof: Professor, main_row: HtmlRow, gpa_row: Optional[HtmlRow]) -> None:
        course = self.repositories.courses.from_course_code(main_row.text(COURSE_ID_COLUMN))
        if not course.has_value:
            raise HtmlElementError(
                main_row[COURSE_ID_COLUMN], "This element's text did not show up in the course repository"
            )

        term = self.repositories.terms.from_string(main_row.text(TERM_COLUMN))
        if not term.has_value:
            raise HtmlElementError(
                main_row[TERM_COLUMN], "This element's text did not show up in the term repository"
            )

        entry = build_entry(main_row, gpa_row, course=course.value, term=term.value, professor=prof)
        self.repositories.entries.add(entry)

    @staticmethod
    def _entry_error(prof: Professor, row: HtmlRow, url: str, cause: BaseException) -> ScrapeError:
        term_text = row.text(TERM_COLUMN) if TERM_COLUMN in row else None
        return in_context(
            EntryScrapeError,
            "Could not build entry",
            cause,
            department=prof.department,
            term=term_text,
            nnumber=prof.nnumber,
            url=url,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Driver
    # ─────────────────────────────────────────────────────────────────────

    def _recoverable(self, error: BaseException) -> None:
        logger.warning(str(error))
        self.errors.add(error)

    def _fan_out(self, stage: str, fn: Callable[..., Result], units: list[tuple[Any, ...]]) -> int:
        """
        Run fn for every unit concurrently and wait for all of them.

        Failed Results are appended to the error bag.

        Returns:
            Number of failed units
        """
        total = len(units)
        failed = 0
        logger.info(f"{stage}: {total} units on {self.max_workers} workers")

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="isq") as executor:
            futures = [executor.submit(Result.of, fn, *unit) for unit in units]

            for done, future in enumerate(as_completed(futures), 1):
                result = future.result()
                if result.is_err():
                    failed += 1
                    self._recoverable(result.unwrap_err())
                if self.progress_callback:
                    self.progress_callback(stage, done, total)

        logger.info(f"{stage}: finished, {failed} failed")
        return failed

    def run(self, persist: bool = True, refresh_catalog: bool = False) -> Result:
        """
        Run every stage in dependency order.

        Args:
            persist: Flush all repositories at the end of the run
            refresh_catalog: Scrape departments and terms even if already known

        Returns:
            Failed Result if departments or terms could not be scraped,
            otherwise success (unit failures are in the error bag)
        """
        if refresh_catalog or self.repositories.departments.is_empty():
            result = self.scrape_departments()
            if result.is_err():
                return result

        if refresh_catalog or self.repositories.terms.is_empty():
            result = self.scrape_terms()
            if result.is_err():
                return result

        pairs = [(d, t) for d in self.repositories.departments for t in self.repositories.terms]
        self._fan_out("courses/professors", self.scrape_pair, pairs)

        professors = [(p,) for p in self.repositories.professors]
        self._fan_out("entries", self.scrape_professor_entries, professors)

        if persist:
            self.persist()

        return Result.ok()

    def persist(self) -> dict[str, int]:
        """Flush every repository once."""
        return self.repositories.persist_all()

    def report(self) -> ScrapeReport:
        """Counts of scraped records and collected errors."""
        return ScrapeReport(
            departments=len(self.repositories.departments),
            terms=len(self.repositories.terms),
            courses=len(self.repositories.courses),
            professors=len(self.repositories.professors),
            entries=len(self.repositories.entries),
            fatal_errors=len(self.errors.fatal()),
            informational=len(self.errors.informational()),
            error_counts=self.errors.summary(),
        )
