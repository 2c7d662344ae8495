"""
ISQ Explorer - Course evaluation scraper
========================================

Scrapes the public Instructional Satisfaction Questionnaire (ISQ) pages of a
Banner student system into structured records:

- Departments and terms from the schedule search form
- Courses and professors for every (department, term) pair
- Per-section evaluation entries with rating and grade distributions

Scraped records live in thread-safe repositories and are persisted as JSON.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "shared",
    "ingestion",
    "storage",
    "cli",
]
