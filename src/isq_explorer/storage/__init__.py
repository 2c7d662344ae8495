"""
Storage Module - Repositories for scraped records.
==================================================
"""

from isq_explorer.storage.repositories import (
    CourseRepository,
    DepartmentRepository,
    EntryRepository,
    ProfessorRepository,
    Repository,
    RepositorySet,
    TermRepository,
)

__all__ = [
    "Repository",
    "DepartmentRepository",
    "TermRepository",
    "CourseRepository",
    "ProfessorRepository",
    "EntryRepository",
    "RepositorySet",
]
