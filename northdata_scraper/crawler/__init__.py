"""
Northdata scraper crawler module.

Provides the browser session, human-like input, request filtering and the
scrape operations.
"""

from northdata_scraper.crawler.scraper import (
    NetworkGraphicResult,
    NorthDataScraper,
    PageContentResult,
    SearchResult,
    SuggestionsResult,
)
from northdata_scraper.crawler.session import BrowserSession, PageLease

__all__ = [
    "BrowserSession",
    "PageLease",
    "NorthDataScraper",
    "SearchResult",
    "SuggestionsResult",
    "PageContentResult",
    "NetworkGraphicResult",
]
