"""
Playwright-based browser driver for the Northdata scraper.

Implements the PageDriver / BrowserDriver protocols from browser_provider.py.

Features:
- Chromium launch with stealth patches and sandboxing flags
- One shared browser context per launch (login cookies persist across pages)
- Structural path (XPath) and CSS locators
- Playwright timeouts surfaced as NavigationTimeoutError
- Per-page request interception for the network filter
"""

from typing import TYPE_CHECKING, Any

from northdata_scraper.crawler.browser_provider import (
    LaunchOptions,
    RequestPredicate,
    to_engine_selector,
)
from northdata_scraper.crawler.stealth import apply_stealth_to_context
from northdata_scraper.errors import ElementNotFoundError, LaunchError, NavigationTimeoutError
from northdata_scraper.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route

logger = get_logger(__name__)


def _is_timeout(exc: Exception) -> bool:
    from playwright.async_api import TimeoutError as PlaywrightTimeoutError

    return isinstance(exc, PlaywrightTimeoutError)


class PlaywrightPage:
    """PageDriver backed by a Playwright Page."""

    def __init__(self, page: "Page") -> None:
        self._page = page
        self._request_filter: RequestPredicate | None = None

    @property
    def url(self) -> str:
        return self._page.url

    @property
    def has_request_filter(self) -> bool:
        return self._request_filter is not None

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> None:
        try:
            await self._page.goto(url, timeout=timeout_ms, wait_until=wait_until)  # type: ignore[arg-type]
        except Exception as e:
            if _is_timeout(e):
                raise NavigationTimeoutError(
                    f"Navigation timed out: {url}", details={"url": url}
                ) from e
            raise

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector(
                to_engine_selector(selector), timeout=timeout_ms, state="attached"
            )
        except Exception as e:
            if _is_timeout(e):
                raise NavigationTimeoutError(
                    f"Timed out waiting for {selector}", details={"selector": selector}
                ) from e
            raise

    async def wait_for_function(
        self,
        expression: str,
        *,
        timeout_ms: int,
        arg: Any = None,
    ) -> None:
        try:
            await self._page.wait_for_function(expression, arg=arg, timeout=timeout_ms)
        except Exception as e:
            if _is_timeout(e):
                raise NavigationTimeoutError("Timed out waiting for page condition") from e
            raise

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self._page.evaluate(expression, arg)

    async def click(self, locator: str) -> bool:
        target = self._page.locator(to_engine_selector(locator)).first
        if await target.count() == 0:
            return False
        await target.click()
        return True

    async def click_and_wait_for_navigation(
        self,
        locator: str,
        *,
        timeout_ms: int,
        wait_until: str,
    ) -> None:
        try:
            async with self._page.expect_navigation(
                timeout=timeout_ms,
                wait_until=wait_until,  # type: ignore[arg-type]
            ):
                if not await self.click(locator):
                    raise ElementNotFoundError(locator)
        except Exception as e:
            if _is_timeout(e):
                raise NavigationTimeoutError(
                    "Timed out waiting for navigation after click",
                    details={"locator": locator},
                ) from e
            raise

    async def type_key(self, text: str) -> None:
        await self._page.keyboard.type(text)

    async def text_content(self, selector: str) -> str | None:
        element = await self._page.query_selector(to_engine_selector(selector))
        if element is None:
            return None
        return (await element.text_content()) or ""

    async def set_viewport(self, width: int, height: int) -> None:
        await self._page.set_viewport_size({"width": width, "height": height})

    async def filter_requests(self, should_block: RequestPredicate) -> None:
        self._request_filter = should_block

        async def handle_route(route: "Route") -> None:
            if should_block(route.request.url):
                await route.abort()
            else:
                await route.continue_()

        await self._page.route("**/*", handle_route)

    async def close(self) -> None:
        if not self._page.is_closed():
            await self._page.close()


class PlaywrightBrowser:
    """BrowserDriver owning the Playwright runtime, browser and shared context."""

    def __init__(
        self,
        playwright: "Playwright",
        browser: "Browser",
        context: "BrowserContext",
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context

    async def new_page(self) -> PlaywrightPage:
        page = await self._context.new_page()
        return PlaywrightPage(page)

    async def close(self) -> None:
        """Close context, browser and runtime; later steps run even if earlier ones fail."""
        try:
            await self._context.close()
        except Exception as e:
            logger.debug("Context close failed", error=str(e))
        try:
            await self._browser.close()
        except Exception as e:
            logger.debug("Browser close failed", error=str(e))
        await self._playwright.stop()


async def launch_playwright_browser(options: LaunchOptions) -> PlaywrightBrowser:
    """Launch Chromium with stealth patches applied.

    Args:
        options: Launch options.

    Returns:
        PlaywrightBrowser driver.

    Raises:
        LaunchError: If Playwright is missing or the browser process cannot start.
    """
    try:
        from playwright.async_api import async_playwright
    except ImportError as e:
        raise LaunchError("Playwright not installed") from e

    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            headless=options.headless,
            args=options.args,
            executable_path=options.executable_path,
            timeout=options.timeout_ms,
        )
        context = await browser.new_context(
            user_agent=options.user_agent,
            viewport={"width": options.viewport_width, "height": options.viewport_height},
            locale="de-DE",
        )
        await apply_stealth_to_context(context)
    except Exception as e:
        await playwright.stop()
        raise LaunchError(f"Failed to launch browser: {e}") from e

    logger.info(
        "Browser launched",
        mode="headless" if options.headless else "headful",
    )
    return PlaywrightBrowser(playwright, browser, context)
