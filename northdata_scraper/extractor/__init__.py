"""
Northdata scraper extractor module.

Pure markup transforms: section sanitization and standalone SVG export.
"""

from northdata_scraper.extractor.sanitizer import collapse_whitespace, sanitize_html
from northdata_scraper.extractor.svg_export import GraphicCapture, build_self_contained_svg

__all__ = [
    "sanitize_html",
    "collapse_whitespace",
    "GraphicCapture",
    "build_self_contained_svg",
]
