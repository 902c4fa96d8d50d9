"""
Northdata scraper utilities module.
"""

from northdata_scraper.utils.config import Settings, get_settings, load_settings
from northdata_scraper.utils.logging import (
    LogContext,
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "load_settings",
    # Logging
    "get_logger",
    "configure_logging",
    "bind_context",
    "unbind_context",
    "LogContext",
]
