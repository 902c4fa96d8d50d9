"""
Pytest fixtures and configuration for Northdata scraper tests.

=============================================================================
Test Classification
=============================================================================

- @pytest.mark.unit: Single class/function, no external dependencies
  - DEFAULT: Tests without marker are auto-classified as unit
- @pytest.mark.integration: Multiple components wired together, browser faked

No test launches a real browser or reaches northdata.de. The browser is
replaced by FakeLauncher / FakeBrowser / FakePage, which implement the
BrowserLauncher / BrowserDriver / PageDriver protocols in memory.
"""

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest

from northdata_scraper.crawler.browser_provider import LaunchOptions, RequestPredicate
from northdata_scraper.errors import ElementNotFoundError
from northdata_scraper.utils.config import (
    BrowserConfig,
    CredentialsConfig,
    Settings,
    get_settings,
)

LOGIN_URL = "https://www.northdata.de/_login"
COMPANY_URL = "https://www.northdata.de/Acme+GmbH,+Berlin/HRB+12345"


# =============================================================================
# Pytest Hooks for Test Classification
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Tests without an explicit classification marker are unit tests."""
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Fake Browser
# =============================================================================


class FakePage:
    """In-memory PageDriver.

    Args:
        evaluate_results: Script -> value (or callable taking the script arg).
        missing_locators: Locators for which click() finds nothing.
        text_contents: Selector -> text returned by text_content().
        goto_hook: Called with each navigation URL. May return an exception
            to raise, a URL to land on instead (redirect), or None.
        function_error: Raised by every wait_for_function() call.
        selector_errors: Selector -> exception raised by wait_for_selector().
    """

    def __init__(
        self,
        *,
        evaluate_results: dict[str, Any] | None = None,
        missing_locators: set[str] | None = None,
        text_contents: dict[str, str] | None = None,
        goto_hook: Callable[[str], Any] | None = None,
        function_error: Exception | None = None,
        selector_errors: dict[str, Exception] | None = None,
    ) -> None:
        self.evaluate_results = evaluate_results or {}
        self.missing_locators = missing_locators or set()
        self.text_contents = text_contents or {}
        self.goto_hook = goto_hook
        self.function_error = function_error
        self.selector_errors = selector_errors or {}

        self._url = "about:blank"
        self.should_block: RequestPredicate | None = None
        self.goto_calls: list[str] = []
        self.clicks: list[str] = []
        self.submits: list[str] = []
        self.keys: list[str] = []
        self.waited_selectors: list[str] = []
        self.waited_functions: list[tuple[str, Any]] = []
        self.evaluations: list[tuple[str, Any]] = []
        self.viewport: tuple[int, int] | None = None
        self.closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def has_request_filter(self) -> bool:
        return self.should_block is not None

    @property
    def typed_text(self) -> str:
        return "".join(self.keys)

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> None:
        self.goto_calls.append(url)
        outcome = self.goto_hook(url) if self.goto_hook else None
        if isinstance(outcome, Exception):
            raise outcome
        self._url = outcome or url

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> None:
        self.waited_selectors.append(selector)
        if selector in self.selector_errors:
            raise self.selector_errors[selector]

    async def wait_for_function(self, expression: str, *, timeout_ms: int, arg: Any = None) -> None:
        self.waited_functions.append((expression, arg))
        if self.function_error is not None:
            raise self.function_error

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluations.append((expression, arg))
        value = self.evaluate_results.get(expression)
        if callable(value):
            return value(arg)
        return value

    async def click(self, locator: str) -> bool:
        self.clicks.append(locator)
        return locator not in self.missing_locators

    async def click_and_wait_for_navigation(
        self, locator: str, *, timeout_ms: int, wait_until: str
    ) -> None:
        if not await self.click(locator):
            raise ElementNotFoundError(locator)
        self.submits.append(locator)

    async def type_key(self, text: str) -> None:
        self.keys.append(text)

    async def text_content(self, selector: str) -> str | None:
        return self.text_contents.get(selector)

    async def set_viewport(self, width: int, height: int) -> None:
        self.viewport = (width, height)

    async def filter_requests(self, should_block: RequestPredicate) -> None:
        self.should_block = should_block

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """In-memory BrowserDriver handing out FakePage instances."""

    def __init__(self, page_factory: Callable[[], FakePage]) -> None:
        self._page_factory = page_factory
        self.pages: list[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = self._page_factory()
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeLauncher:
    """BrowserLauncher that records launches.

    Args:
        failures: Number of initial launches that raise.
        **page_kwargs: Passed to every FakePage.
    """

    def __init__(self, *, failures: int = 0, **page_kwargs: Any) -> None:
        self.failures = failures
        self.page_kwargs = page_kwargs
        self.options: list[LaunchOptions] = []
        self.browsers: list[FakeBrowser] = []

    async def __call__(self, options: LaunchOptions) -> FakeBrowser:
        self.options.append(options)
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("browser process exited")
        browser = FakeBrowser(lambda: FakePage(**self.page_kwargs))
        self.browsers.append(browser)
        return browser

    @property
    def pages(self) -> list[FakePage]:
        return [page for browser in self.browsers for page in browser.pages]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with credentials and every pacing delay disabled."""
    return Settings(
        credentials=CredentialsConfig(username="user@example.com", password="s3cret"),
        browser=BrowserConfig(
            request_delay_ms=0,
            max_retries=3,
            typing_delay_min_ms=0,
            typing_delay_max_ms=0,
            typing_settle_ms=0,
            network_idle_timeout_ms=0,
            content_settle_ms=0,
            graphic_settle_ms=0,
            search_submit_pause_ms=0,
        ),
    )


@pytest.fixture
def make_launcher() -> Callable[..., FakeLauncher]:
    """Factory for FakeLauncher instances."""

    def _make(**kwargs: Any) -> FakeLauncher:
        return FakeLauncher(**kwargs)

    return _make


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Remove scraper environment variables and reset cached settings."""
    legacy_keys = (
        "NORTHDATA_USERNAME",
        "NORTHDATA_PASSWORD",
        "PORT",
        "BROWSER_TIMEOUT",
        "REQUEST_DELAY",
        "MAX_RETRIES",
        "BROWSER_HEADLESS",
        "TYPING_DELAY_MIN",
        "TYPING_DELAY_MAX",
        "WAIT_FOR_NETWORK_IDLE",
        "NETWORK_IDLE_TIMEOUT",
        "PUPPETEER_EXECUTABLE_PATH",
        "BROWSER_EXECUTABLE_PATH",
    )
    for key in list(os.environ):
        if key.startswith("NDS_") or key in legacy_keys:
            monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
