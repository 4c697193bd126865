"""
Page fetching and extraction.

This package drives the browser session through country pages and turns
them into PageRecords.
"""

from .pipeline import extract_page, fetch_content_unit, list_content_units

__all__ = [
    "extract_page",
    "fetch_content_unit",
    "list_content_units",
]
