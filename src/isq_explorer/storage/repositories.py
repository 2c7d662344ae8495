"""
Repositories Module - Thread-safe in-memory stores with JSON persistence.
=========================================================================

One repository per entity. Each keeps its records in insertion order,
keyed by the entity's natural key, and serializes its own writes so the
scraper can call it from many worker threads at once.

Adding a record whose key is already present is a no-op (first write wins),
which makes repeated scrape runs idempotent. Secondary lookups (term by
name, course by code) go through indexes filled by the same writes, with
the same first-wins rule. ``persist()`` flushes the
records to ``<processed_dir>/<name>.json``; ``load()`` reads them back.
"""

import threading
from pathlib import Path
from typing import Generic, Hashable, Iterable, Iterator, Optional, TypeVar

from pydantic import BaseModel

from isq_explorer.shared.config import Settings, get_settings
from isq_explorer.shared.logging import get_logger
from isq_explorer.shared.outcome import Option
from isq_explorer.shared.schemas import Course, Department, Entry, EntryQuery, Professor, Term
from isq_explorer.shared.utils import load_models_from_json, save_models_to_json

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class Repository(Generic[M]):
    """
    Base repository keyed by a natural key.

    Subclasses set ``name``, ``model`` and implement ``key_of``. Those with
    secondary lookups also override ``index_keys``.
    """

    name: str = "records"
    model: type[BaseModel] = BaseModel

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize the repository.

        Args:
            path: JSON file used by persist()/load(); None keeps it in memory only
        """
        self.path = Path(path) if path is not None else None
        self._items: dict[Hashable, M] = {}
        self._indexes: dict[str, dict[Hashable, M]] = {}
        self._lock = threading.Lock()

    def key_of(self, item: M) -> Hashable:
        raise NotImplementedError

    def index_keys(self, item: M) -> dict[str, Hashable]:
        """Secondary index name to key for an item."""
        return {}

    def add(self, item: M) -> bool:
        """
        Add an item unless its key is already known.

        Returns:
            True if the item was added
        """
        key = self.key_of(item)
        with self._lock:
            if key in self._items:
                return False
            self._items[key] = item
            for index, index_key in self.index_keys(item).items():
                self._indexes.setdefault(index, {}).setdefault(index_key, item)
        return True

    def add_range(self, items: Iterable[M]) -> int:
        """Add several items; returns how many were new."""
        return sum(1 for item in items if self.add(item))

    def get(self, key: Hashable) -> Option[M]:
        with self._lock:
            return Option.of(self._items.get(key))

    def lookup(self, index: str, key: Hashable) -> Option[M]:
        """First item added under key in a secondary index."""
        with self._lock:
            return Option.of(self._indexes.get(index, {}).get(key))

    def is_empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[M]:
        with self._lock:
            items = list(self._items.values())
        return iter(items)

    def persist(self) -> int:
        """
        Flush all records to the repository's JSON file.

        Returns:
            Number of records written (0 if the repository has no path)
        """
        if self.path is None:
            return 0
        items = list(self)
        save_models_to_json(self.path, items)
        logger.info(f"Persisted {len(items)} {self.name} to {self.path}")
        return len(items)

    def load(self) -> int:
        """
        Load records from the repository's JSON file if it exists.

        Returns:
            Number of new records loaded
        """
        if self.path is None or not self.path.exists():
            return 0
        loaded = self.add_range(load_models_from_json(self.path, self.model))
        logger.debug(f"Loaded {loaded} {self.name} from {self.path}")
        return loaded


# ─────────────────────────────────────────────────────────────────────────────
# Entity Repositories
# ─────────────────────────────────────────────────────────────────────────────


class DepartmentRepository(Repository[Department]):
    name = "departments"
    model = Department

    def key_of(self, item: Department) -> int:
        return item.id

    def from_id(self, dept_id: int) -> Option[Department]:
        return self.get(dept_id)


class TermRepository(Repository[Term]):
    name = "terms"
    model = Term

    def key_of(self, item: Term) -> int:
        return item.id

    def index_keys(self, item: Term) -> dict[str, Hashable]:
        return {"name": item.name}

    def from_string(self, name: str) -> Option[Term]:
        """Look a term up by its canonical name, e.g. 'Fall 2019'."""
        return self.lookup("name", name.strip())


class CourseRepository(Repository[Course]):
    name = "courses"
    model = Course

    def key_of(self, item: Course) -> tuple[int, str]:
        return item.department.id, item.course_code

    def index_keys(self, item: Course) -> dict[str, Hashable]:
        return {"code": item.course_code}

    def from_course_code(self, course_code: str) -> Option[Course]:
        """Look a course up by exact course code, in any department."""
        return self.lookup("code", course_code.strip())


class ProfessorRepository(Repository[Professor]):
    name = "professors"
    model = Professor

    def key_of(self, item: Professor) -> str:
        return item.nnumber

    def from_nnumber(self, department: Department, nnumber: str) -> Option[Professor]:
        """Look up a professor already known for a department."""
        found = self.get(nnumber.strip().upper())
        if found.has_value and found.value.department.id != department.id:
            return Option.none()
        return found


class EntryRepository(Repository[Entry]):
    name = "entries"
    model = Entry

    def key_of(self, item: Entry) -> tuple[int, int, str]:
        return item.key

    def for_professor(self, nnumber: str) -> list[Entry]:
        nnumber = nnumber.upper()
        return [e for e in self if e.professor.nnumber == nnumber]

    def query(self, query: EntryQuery) -> list[Entry]:
        """Entries matching every filter in query, oldest term first."""
        found = [e for e in self if query.matches(e)]
        return sorted(found, key=lambda e: (e.term.sort_key, e.course.course_code, e.crn))


# ─────────────────────────────────────────────────────────────────────────────
# Repository Set
# ─────────────────────────────────────────────────────────────────────────────


class RepositorySet:
    """The five repositories the scraper writes to."""

    def __init__(
        self,
        departments: DepartmentRepository,
        terms: TermRepository,
        courses: CourseRepository,
        professors: ProfessorRepository,
        entries: EntryRepository,
    ):
        self.departments = departments
        self.terms = terms
        self.courses = courses
        self.professors = professors
        self.entries = entries

    @classmethod
    def in_memory(cls) -> "RepositorySet":
        return cls(
            DepartmentRepository(),
            TermRepository(),
            CourseRepository(),
            ProfessorRepository(),
            EntryRepository(),
        )

    @classmethod
    def from_directory(cls, directory: Path) -> "RepositorySet":
        """Repositories backed by JSON files in directory."""
        directory = Path(directory)
        return cls(
            DepartmentRepository(directory / f"{DepartmentRepository.name}.json"),
            TermRepository(directory / f"{TermRepository.name}.json"),
            CourseRepository(directory / f"{CourseRepository.name}.json"),
            ProfessorRepository(directory / f"{ProfessorRepository.name}.json"),
            EntryRepository(directory / f"{EntryRepository.name}.json"),
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RepositorySet":
        settings = settings or get_settings()
        return cls.from_directory(settings.resolved_paths.processed_dir)

    def all(self) -> list[Repository]:
        return [self.departments, self.terms, self.courses, self.professors, self.entries]

    def load_all(self) -> dict[str, int]:
        return {repo.name: repo.load() for repo in self.all()}

    def persist_all(self) -> dict[str, int]:
        """Flush every repository once."""
        return {repo.name: repo.persist() for repo in self.all()}
