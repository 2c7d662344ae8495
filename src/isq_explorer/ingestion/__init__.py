"""
Ingestion Module - Fetch, parse and extract ISQ pages.
======================================================

- client: HTTP fetcher with rate limiting and retries
- table: Generic HTML table model
- join: Section-key reconciliation of two tables
- entries: Mapping of evaluation rows to Entry records
- scraper: The staged, concurrent scrape orchestrator

Pipeline flow:
    schedule page → departments, terms
    (department, term) → schedule table → courses, professors
    professor → profile tables → join → entries
"""

from isq_explorer.ingestion.client import HtmlClient, HtmlDocument
from isq_explorer.ingestion.entries import build_entry, parse_float, parse_int
from isq_explorer.ingestion.join import group_first, inner_join, section_key
from isq_explorer.ingestion.scraper import IsqScraper, ScrapeReport
from isq_explorer.ingestion.table import HtmlRow, HtmlTable

__all__ = [
    # Client
    "HtmlClient",
    "HtmlDocument",
    # Table
    "HtmlTable",
    "HtmlRow",
    # Join
    "section_key",
    "group_first",
    "inner_join",
    # Entries
    "build_entry",
    "parse_int",
    "parse_float",
    # Scraper
    "IsqScraper",
    "ScrapeReport",
]
