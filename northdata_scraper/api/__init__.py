"""
Northdata scraper HTTP API.
"""

from northdata_scraper.api.server import create_app

__all__ = ["create_app"]
