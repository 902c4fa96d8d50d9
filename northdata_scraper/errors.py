"""
Error definitions for the Northdata scraper.

Error codes follow the pattern:
- *_FAILED: An external step (browser launch, login) did not succeed
- *_TIMEOUT: A page did not reach the expected state in time
- *_NOT_FOUND / *_EMPTY: Expected page structure is missing
- *_INVALID: Local configuration problems
"""

from enum import Enum
from typing import Any


class ScraperErrorCode(str, Enum):
    """Error codes surfaced to callers of the scrape operations."""

    LAUNCH_FAILED = "LAUNCH_FAILED"
    """Browser process failed to start."""

    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    """Login was submitted but the site reported a failure, or the session expired."""

    NAVIGATION_TIMEOUT = "NAVIGATION_TIMEOUT"
    """Page did not reach the expected state in time."""

    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    """Expected input or click target is missing."""

    EXTRACTION_EMPTY = "EXTRACTION_EMPTY"
    """Expected content subtree is absent."""

    CONFIG_INVALID = "CONFIG_INVALID"
    """Required configuration is missing or malformed."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected internal error."""


class ScraperError(Exception):
    """Base exception for scraper failures."""

    code: ScraperErrorCode = ScraperErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize scraper error.

        Args:
            message: Human-readable error message.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        result: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class LaunchError(ScraperError):
    """Browser process could not be started."""

    code = ScraperErrorCode.LAUNCH_FAILED


class AuthenticationError(ScraperError):
    """Login failed or the site session is no longer authenticated."""

    code = ScraperErrorCode.AUTHENTICATION_FAILED


class NavigationTimeoutError(ScraperError):
    """A navigation or readiness wait exceeded its timeout."""

    code = ScraperErrorCode.NAVIGATION_TIMEOUT


class ElementNotFoundError(ScraperError):
    """A locator did not match any element."""

    code = ScraperErrorCode.ELEMENT_NOT_FOUND

    def __init__(self, locator: str, message: str | None = None):
        super().__init__(
            message or f"Element not found: {locator}",
            details={"locator": locator},
        )
        self.locator = locator


class ExtractionEmpty(ScraperError):
    """The expected content subtree was not present on the page."""

    code = ScraperErrorCode.EXTRACTION_EMPTY


class ConfigError(ScraperError):
    """Required configuration is missing or invalid."""

    code = ScraperErrorCode.CONFIG_INVALID
