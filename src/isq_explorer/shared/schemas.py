"""
Schemas Module - Pydantic data models for the application.
==========================================================

Defines the domain records produced by the scraper:
- Departments and academic terms
- Courses and professors
- Per-section evaluation entries
- Entry query parameters
"""

import re
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

NNUMBER_PATTERN = r"[nN]\d{8}"

_TERM_NAME_RE = re.compile(r"\b(spring|summer|fall)\b\D*(\d{4})", re.IGNORECASE)

Percent = Annotated[float, Field(ge=0.0, le=100.0)]


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class Season(str, Enum):
    """Academic season, in calendar order."""

    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"

    @property
    def order(self) -> int:
        return list(Season).index(self)

    @classmethod
    def parse(cls, text: str) -> "Season":
        for season in cls:
            if season.value.lower() == text.strip().lower():
                return season
        raise ValueError(f"Unknown season '{text}'")


# ─────────────────────────────────────────────────────────────────────────────
# Catalog Models
# ─────────────────────────────────────────────────────────────────────────────


class Department(BaseModel):
    """An academic department from the schedule search form."""

    id: int = Field(..., description="Department id (option value)")
    name: str = Field(..., description="Display name (option label)")

    def __str__(self) -> str:
        return self.name


class Term(BaseModel):
    """
    An academic term, e.g. "Fall 2019".

    The display name must contain a season and a four digit year; it is the
    canonical string form used to look terms up from table cells.
    """

    id: int = Field(..., description="Term id (option value)")
    name: str = Field(..., description="Display name, e.g. 'Fall 2019'")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        cls.parse_name(v)
        return v

    @staticmethod
    def parse_name(name: str) -> tuple[Season, int]:
        """
        Parse a term name into (season, year).

        Raises:
            ValueError: If the name has no recognizable season and year
        """
        match = _TERM_NAME_RE.search(name)
        if match is None:
            raise ValueError(f"'{name}' is not a term name like 'Fall 2019'")
        return Season.parse(match.group(1)), int(match.group(2))

    @property
    def season(self) -> Season:
        return self.parse_name(self.name)[0]

    @property
    def year(self) -> int:
        return self.parse_name(self.name)[1]

    @property
    def sort_key(self) -> tuple[int, int]:
        season, year = self.parse_name(self.name)
        return year, season.order

    def __str__(self) -> str:
        return self.name


class Course(BaseModel):
    """A course offered by a department."""

    course_code: str = Field(..., description="Course code, e.g. 'COP 3503'")
    name: str = Field(..., description="Course title")
    department: Department

    @field_validator("course_code", "name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    def __str__(self) -> str:
        return f"{self.course_code} {self.name}"


class Professor(BaseModel):
    """An instructor identified by an N-number."""

    first_name: str = ""
    last_name: str
    nnumber: str = Field(..., description="N followed by 8 digits, upper-case")
    department: Department

    @field_validator("nnumber")
    @classmethod
    def normalize_nnumber(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(NNUMBER_PATTERN, v):
            raise ValueError(f"'{v}' is not an N-number")
        return v.upper()

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} ({self.nnumber})"


# ─────────────────────────────────────────────────────────────────────────────
# Evaluation Entry
# ─────────────────────────────────────────────────────────────────────────────


class Entry(BaseModel):
    """
    One evaluation record: one professor teaching one course section in one term.

    Identity is (term, crn, course). Grade distribution fields are 0.0 when
    the page does not publish them.
    """

    term: Term
    crn: int = Field(..., ge=0, le=99999, description="5-digit course reference number")
    course: Course
    professor: Professor

    n_enrolled: int = Field(..., ge=0)
    n_responded: int = Field(..., ge=0)

    # Rating distribution
    pct_5: Percent = 0.0
    pct_4: Percent = 0.0
    pct_3: Percent = 0.0
    pct_2: Percent = 0.0
    pct_1: Percent = 0.0
    pct_na: Percent = 0.0

    # Grade distribution
    pct_a: Percent = 0.0
    pct_a_minus: Percent = 0.0
    pct_b_plus: Percent = 0.0
    pct_b: Percent = 0.0
    pct_b_minus: Percent = 0.0
    pct_c_plus: Percent = 0.0
    pct_c: Percent = 0.0
    pct_d: Percent = 0.0
    pct_f: Percent = 0.0
    pct_withdraw: Percent = 0.0
    mean_gpa: float = Field(default=0.0, ge=0.0, le=4.0)

    @property
    def key(self) -> tuple[int, int, str]:
        return self.term.id, self.crn, self.course.course_code

    @computed_field
    @property
    def response_rate(self) -> float:
        """Share of enrolled students who responded, 0.0 when nobody enrolled."""
        if self.n_enrolled == 0:
            return 0.0
        return self.n_responded / self.n_enrolled


GRADE_FIELDS = (
    "pct_a",
    "pct_a_minus",
    "pct_b_plus",
    "pct_b",
    "pct_b_minus",
    "pct_c_plus",
    "pct_c",
    "pct_d",
    "pct_f",
    "pct_withdraw",
    "mean_gpa",
)


# ─────────────────────────────────────────────────────────────────────────────
# Query Models
# ─────────────────────────────────────────────────────────────────────────────


class TermBound(BaseModel):
    """An inclusive term bound for queries; either part may be omitted."""

    season: Optional[Season] = None
    year: Optional[int] = None

    def key(self, default_season: Season, default_year: int) -> tuple[int, int]:
        season = self.season or default_season
        year = self.year if self.year is not None else default_year
        return year, season.order


class EntryQuery(BaseModel):
    """Filters for searching evaluation entries."""

    course_code: Optional[str] = None
    course_name: Optional[str] = None
    professor_name: Optional[str] = None
    since: TermBound = Field(default_factory=TermBound)
    until: TermBound = Field(default_factory=TermBound)

    def matches(self, entry: Entry) -> bool:
        """Check whether an entry satisfies every given filter."""
        if self.course_code and self.course_code.lower() not in entry.course.course_code.lower():
            return False
        if self.course_name and self.course_name.lower() not in entry.course.name.lower():
            return False
        if self.professor_name and self.professor_name.lower() not in entry.professor.full_name.lower():
            return False

        term_key = entry.term.sort_key
        if term_key < self.since.key(Season.SPRING, 0):
            return False
        if term_key > self.until.key(Season.FALL, 9999):
            return False
        return True
