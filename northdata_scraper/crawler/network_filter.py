"""
Outgoing request filter for scraper pages.

Aborts requests to the third-party bot-detection beacon configured in
`site.blocked_request_prefixes`; every other request continues unmodified.
The filter is installed once per page object.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from northdata_scraper.utils.logging import get_logger

if TYPE_CHECKING:
    from northdata_scraper.crawler.browser_provider import PageDriver

logger = get_logger(__name__)


class NetworkFilter:
    """Prefix-based request blocklist.

    Example:
        request_filter = NetworkFilter(["https://api.rupt.dev"])
        await request_filter.install(page)
    """

    def __init__(self, blocked_prefixes: Sequence[str]) -> None:
        self._blocked_prefixes = tuple(blocked_prefixes)
        self._blocked_count = 0

    @property
    def blocked_prefixes(self) -> tuple[str, ...]:
        return self._blocked_prefixes

    @property
    def blocked_count(self) -> int:
        return self._blocked_count

    def should_block(self, url: str) -> bool:
        """Decide whether a request URL is aborted."""
        if url.startswith(self._blocked_prefixes):
            self._blocked_count += 1
            logger.info("Blocking request", url=url[:120])
            return True
        return False

    async def install(self, page: "PageDriver") -> bool:
        """Attach the filter to a page unless one is already attached.

        Returns:
            True if the filter was attached by this call.
        """
        if page.has_request_filter:
            return False
        await page.filter_requests(self.should_block)
        logger.debug("Network filter installed", prefixes=list(self._blocked_prefixes))
        return True
