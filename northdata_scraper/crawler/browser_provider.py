"""
Browser driver abstraction layer for the Northdata scraper.

The scrape operations, the login flow and the emulators only talk to the
capability protocols below (navigate, wait, evaluate, click, type), so they
can be exercised against fakes without a live browser. The Playwright
implementation lives in playwright_provider.py.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from northdata_scraper.utils.config import BrowserConfig

XPATH_PREFIX = "xpath="

# Returns True when the request URL must be aborted
RequestPredicate = Callable[[str], bool]


def is_structural_path(locator: str) -> bool:
    """Check whether a locator is a positional XPath rather than a CSS selector."""
    return locator.startswith("/")


def to_engine_selector(locator: str) -> str:
    """Convert a locator into a selector string understood by the driver."""
    if is_structural_path(locator):
        return f"{XPATH_PREFIX}{locator}"
    return locator


# ============================================================================
# Launch Options
# ============================================================================


@dataclass
class LaunchOptions:
    """
    Options for launching the browser process.

    Attributes:
        headless: Run without a visible window.
        timeout_ms: Launch timeout in milliseconds.
        args: Extra command-line flags for Chromium.
        executable_path: Optional browser binary path.
        user_agent: User agent for the shared browser context.
        viewport_width: Default viewport width in pixels.
        viewport_height: Default viewport height in pixels.
    """

    headless: bool = True
    timeout_ms: int = 30000
    args: list[str] = field(default_factory=list)
    executable_path: str | None = None
    user_agent: str | None = None
    viewport_width: int = 1280
    viewport_height: int = 800

    @classmethod
    def from_config(cls, config: BrowserConfig, args: list[str]) -> "LaunchOptions":
        """Build launch options from browser settings."""
        return cls(
            headless=config.headless,
            timeout_ms=config.navigation_timeout_ms,
            args=args,
            executable_path=config.executable_path,
            user_agent=config.user_agent,
            viewport_width=config.viewport_width,
            viewport_height=config.viewport_height,
        )


# ============================================================================
# Capability Protocols
# ============================================================================


@runtime_checkable
class PageDriver(Protocol):
    """A single browser page, owned by one operation invocation."""

    @property
    def url(self) -> str: ...

    @property
    def has_request_filter(self) -> bool: ...

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> None: ...

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> None: ...

    async def wait_for_function(
        self,
        expression: str,
        *,
        timeout_ms: int,
        arg: Any = None,
    ) -> None: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...

    async def click(self, locator: str) -> bool: ...

    async def click_and_wait_for_navigation(
        self,
        locator: str,
        *,
        timeout_ms: int,
        wait_until: str,
    ) -> None: ...

    async def type_key(self, text: str) -> None: ...

    async def text_content(self, selector: str) -> str | None: ...

    async def set_viewport(self, width: int, height: int) -> None: ...

    async def filter_requests(self, should_block: RequestPredicate) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class BrowserDriver(Protocol):
    """A live browser process with one shared context (cookies persist across pages)."""

    async def new_page(self) -> PageDriver: ...

    async def close(self) -> None: ...


BrowserLauncher = Callable[[LaunchOptions], Awaitable[BrowserDriver]]
