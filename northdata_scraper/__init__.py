"""
Northdata Scraper.

Browser-backed access to northdata.de search, suggestions, company pages and
network graphics.
"""

__version__ = "1.0.0"
