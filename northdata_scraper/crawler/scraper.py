"""
Scrape operations against northdata.de.

Four operations share one BrowserSession:
- search: company search results markup
- get_suggestions: autocomplete JSON
- get_page_content: sanitized main section of a company page
- get_network_svg: self-contained network graphic

Each attempt leases a page, logs in if needed, navigates, waits for the page
to become ready and extracts. A failed attempt tears the session down and
retries, up to `browser.max_retries` retries; after that the last error is
raised unchanged.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar
from urllib.parse import quote_plus, urlencode

from northdata_scraper.crawler.browser_provider import BrowserLauncher, PageDriver
from northdata_scraper.crawler.scripts import (
    BODY_TEXT_JS,
    CAPTURE_GRAPHIC_JS,
    GRAPHIC_POPULATED_JS,
    LOADING_MARKER_GONE_JS,
    OUTER_HTML_AT_PATH_JS,
    OUTER_HTML_BY_SELECTOR_JS,
)
from northdata_scraper.crawler.session import BrowserSession
from northdata_scraper.errors import NavigationTimeoutError
from northdata_scraper.extractor.sanitizer import sanitize_html
from northdata_scraper.extractor.svg_export import (
    PRESENTATION_PROPERTIES,
    GraphicCapture,
    build_self_contained_svg,
)
from northdata_scraper.utils.backoff import BackoffConfig, calculate_backoff
from northdata_scraper.utils.config import Settings, get_settings
from northdata_scraper.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class SearchResult:
    query: str
    url: str
    html: str


@dataclass(frozen=True)
class SuggestionsResult:
    query: str
    url: str
    json: Any


@dataclass(frozen=True)
class PageContentResult:
    url: str
    html: str


@dataclass(frozen=True)
class NetworkGraphicResult:
    url: str
    svg: str


# =============================================================================
# Scraper
# =============================================================================


class NorthDataScraper:
    """Scrape operations with retry and session recovery.

    Example:
        scraper = NorthDataScraper()
        await scraper.initialize()
        result = await scraper.search("Acme GmbH")
        await scraper.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: BrowserSession | None = None,
        launcher: BrowserLauncher | None = None,
    ) -> None:
        """Initialize the scraper.

        Args:
            settings: Application settings. Uses get_settings() if None.
            session: Pre-built session (mainly for tests).
            launcher: Browser factory passed to a newly created session.
        """
        self._settings = settings or get_settings()
        self._session = session or BrowserSession(self._settings, launcher=launcher)

        base_delay = self._settings.browser.retry_backoff_seconds
        self._backoff = BackoffConfig(base_delay=base_delay, max_delay=max(60.0, base_delay))

    @property
    def session(self) -> BrowserSession:
        return self._session

    async def initialize(self) -> None:
        await self._session.initialize()

    async def close(self) -> None:
        await self._session.close()

    # =========================================================================
    # Retry loop
    # =========================================================================

    async def _run_with_retry(
        self,
        operation: str,
        attempt_fn: Callable[[PageDriver], Awaitable[T]],
        **log_context: Any,
    ) -> T:
        """Run one operation attempt per leased page until it succeeds.

        The page is closed before the session is restarted and before the
        next attempt starts.

        Args:
            operation: Operation name for logs.
            attempt_fn: Performs navigation and extraction on a page.
            **log_context: Extra key/value pairs for log events.

        Returns:
            Result of the first successful attempt.

        Raises:
            Exception: The last attempt's error once retries are exhausted.
        """
        max_retries = self._settings.browser.max_retries
        attempt = 0

        while True:
            generation: int | None = None
            try:
                async with self._session.lease_page() as lease:
                    generation = lease.generation
                    result = await attempt_fn(lease.page)
                    await self._throttle()
                    return result
            except Exception as e:
                if attempt >= max_retries:
                    logger.error(
                        "Operation failed after retries",
                        operation=operation,
                        attempts=attempt + 1,
                        error=str(e),
                        error_type=type(e).__name__,
                        **log_context,
                    )
                    raise

                attempt += 1
                logger.warning(
                    "Operation failed, retrying",
                    operation=operation,
                    retry=attempt,
                    max_retries=max_retries,
                    error=str(e),
                    error_type=type(e).__name__,
                    **log_context,
                )

                await self._session.restart(generation)

                delay = calculate_backoff(attempt - 1, self._backoff)
                if delay > 0:
                    await asyncio.sleep(delay)

    async def _throttle(self) -> None:
        """Post-extraction delay that limits the request rate against the site."""
        delay_ms = self._settings.browser.request_delay_ms
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    async def _navigate(self, page: PageDriver, url: str) -> None:
        browser_config = self._settings.browser
        await page.goto(
            url,
            timeout_ms=browser_config.navigation_timeout_ms,
            wait_until=browser_config.wait_until,
        )
        self._session.verify_authenticated(page)

    async def _wait_for_loading_marker(self, page: PageDriver) -> None:
        """Best-effort wait for the loading placeholder to disappear."""
        site = self._settings.site
        try:
            await page.wait_for_function(
                LOADING_MARKER_GONE_JS,
                arg=site.loading_marker,
                timeout_ms=self._settings.browser.loading_marker_timeout_ms,
            )
        except NavigationTimeoutError:
            logger.debug("Loading marker still present, continuing", marker=site.loading_marker)

    # =========================================================================
    # Operations
    # =========================================================================

    async def search(self, query: str) -> SearchResult:
        """Search for a company and return the result list markup.

        Args:
            query: Search text.

        Returns:
            SearchResult with the outerHTML of the result container.
        """
        site = self._settings.site
        browser_config = self._settings.browser

        async def attempt(page: PageDriver) -> SearchResult:
            await self._session.ensure_authenticated(page)

            if site.search_mode == "direct":
                url = site.search_url_template.format(
                    base_url=site.base_url.rstrip("/"),
                    query=quote_plus(query),
                )
                await self._navigate(page, url)
            else:
                await self._navigate(page, site.origin_prefix)
                behavior = self._session.behavior
                await behavior.type_like_human(page, site.search_input_path, query)
                await asyncio.sleep(browser_config.search_submit_pause_ms / 1000)
                await behavior.submit(
                    page,
                    site.search_submit_path,
                    timeout_ms=browser_config.navigation_timeout_ms,
                    wait_until=browser_config.wait_until,
                )
                self._session.verify_authenticated(page)

            if browser_config.wait_for_network_idle:
                await asyncio.sleep(browser_config.network_idle_timeout_ms / 1000)

            await page.wait_for_selector(
                site.results_selector,
                timeout_ms=browser_config.navigation_timeout_ms,
            )
            html = await page.evaluate(OUTER_HTML_BY_SELECTOR_JS, site.results_selector)
            return SearchResult(query=query, url=page.url, html=html or "")

        return await self._run_with_retry("search", attempt, query=query)

    async def get_suggestions(self, query: str) -> SuggestionsResult:
        """Fetch autocomplete suggestions for a query.

        Returns:
            SuggestionsResult with the parsed JSON body ({} if unparsable).
        """
        site = self._settings.site
        params = urlencode({"query": query, "countries": site.suggest_countries})
        suggest_url = f"{site.base_url.rstrip('/')}{site.suggest_path}?{params}"

        async def attempt(page: PageDriver) -> SuggestionsResult:
            await self._session.ensure_authenticated(page)
            await self._navigate(page, suggest_url)

            body = await page.evaluate(BODY_TEXT_JS)
            try:
                data = json.loads(body or "{}")
            except json.JSONDecodeError:
                logger.warning("Suggestions body is not JSON", query=query, length=len(body or ""))
                data = {}
            return SuggestionsResult(query=query, url=page.url, json=data)

        return await self._run_with_retry("suggestions", attempt, query=query)

    async def get_page_content(self, url: str) -> PageContentResult:
        """Fetch the sanitized main section of a company page.

        A page without the main section yields an empty html string.

        Args:
            url: Page URL on the target site.
        """
        site = self._settings.site
        browser_config = self._settings.browser

        async def attempt(page: PageDriver) -> PageContentResult:
            await self._session.ensure_authenticated(page)
            await self._navigate(page, url)

            await self._wait_for_loading_marker(page)
            await asyncio.sleep(browser_config.content_settle_ms / 1000)

            markup = await page.evaluate(OUTER_HTML_AT_PATH_JS, site.content_section_path)
            if not markup:
                logger.warning("Content section not found", url=url)
                return PageContentResult(url=page.url, html="")
            return PageContentResult(url=page.url, html=sanitize_html(markup))

        return await self._run_with_retry("page_content", attempt, url=url)

    async def get_network_svg(self, url: str) -> NetworkGraphicResult:
        """Export the company network graphic of a page as standalone SVG.

        Raises:
            ExtractionEmpty: If no graphic is present after all retries.
            NavigationTimeoutError: If the graphic never appears or never populates.
        """
        site = self._settings.site
        browser_config = self._settings.browser

        async def attempt(page: PageDriver) -> NetworkGraphicResult:
            await page.set_viewport(
                browser_config.graphic_viewport_width,
                browser_config.graphic_viewport_height,
            )
            await self._session.ensure_authenticated(page)
            await self._navigate(page, url)

            await self._wait_for_loading_marker(page)

            timeout_ms = browser_config.navigation_timeout_ms
            await page.wait_for_selector(site.graphic_selector, timeout_ms=timeout_ms)
            await page.wait_for_function(
                GRAPHIC_POPULATED_JS,
                arg=site.graphic_selector,
                timeout_ms=max(5000, timeout_ms // 2),
            )
            await asyncio.sleep(browser_config.graphic_settle_ms / 1000)

            data = await page.evaluate(
                CAPTURE_GRAPHIC_JS,
                {"selector": site.graphic_selector, "properties": list(PRESENTATION_PROPERTIES)},
            )
            capture = GraphicCapture.from_page_result(data)
            return NetworkGraphicResult(url=page.url, svg=build_self_contained_svg(capture))

        return await self._run_with_retry("network_graphic", attempt, url=url)
