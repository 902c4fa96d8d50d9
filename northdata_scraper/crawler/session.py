"""
Browser session lifecycle for the Northdata scraper.

BrowserSession owns the single live browser and the authenticated flag.
Scrape operations never touch the browser directly; they lease a page:

    async with session.lease_page() as lease:
        await session.ensure_authenticated(lease.page)
        ...

Restarts (teardown for retry) wait until every outstanding lease has been
released and hold back new leases meanwhile, so a retry in one operation
category cannot pull the browser out from under another category's page.
Each launch gets a new generation number; a restart requested for an
already-replaced generation is skipped.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from urllib.parse import urlparse

from northdata_scraper.crawler.browser_provider import (
    BrowserDriver,
    BrowserLauncher,
    LaunchOptions,
    PageDriver,
)
from northdata_scraper.crawler.human_behavior import HumanBehaviorSimulator
from northdata_scraper.crawler.network_filter import NetworkFilter
from northdata_scraper.crawler.playwright_provider import launch_playwright_browser
from northdata_scraper.crawler.stealth import get_launch_args
from northdata_scraper.errors import AuthenticationError, LaunchError
from northdata_scraper.utils.config import Settings
from northdata_scraper.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PageLease:
    """A page opened for one operation attempt."""

    page: PageDriver
    generation: int


class BrowserSession:
    """Owns zero or one live browser plus its login state.

    Invariant: `authenticated` is only ever True while a browser is live;
    both are reset together.
    """

    def __init__(
        self,
        settings: Settings,
        launcher: BrowserLauncher | None = None,
        behavior: HumanBehaviorSimulator | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            settings: Application settings.
            launcher: Browser factory. Defaults to Playwright Chromium.
            behavior: Input simulator used by the login flow.
        """
        self._settings = settings
        self._launcher: BrowserLauncher = launcher or launch_playwright_browser
        self._behavior = behavior or HumanBehaviorSimulator.from_browser_config(settings.browser)
        self._network_filter = NetworkFilter(settings.site.blocked_request_prefixes)

        self._browser: BrowserDriver | None = None
        self._authenticated = False
        self._generation = 0

        self._lifecycle_lock = asyncio.Lock()
        self._auth_lock = asyncio.Lock()
        self._lease_condition = asyncio.Condition()
        self._active_leases = 0
        self._restart_pending = False

    # =========================================================================
    # State
    # =========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._browser is not None

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def generation(self) -> int:
        """Launch counter; increments every time a browser is started."""
        return self._generation

    @property
    def active_leases(self) -> int:
        return self._active_leases

    @property
    def behavior(self) -> HumanBehaviorSimulator:
        return self._behavior

    @property
    def network_filter(self) -> NetworkFilter:
        return self._network_filter

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Launch the browser unless one is already live.

        Raises:
            LaunchError: If the browser process cannot be started.
        """
        async with self._lifecycle_lock:
            await self._initialize_locked()

    async def close(self) -> None:
        """Tear down the browser if present and clear the login state."""
        async with self._lifecycle_lock:
            await self._close_locked()

    async def _initialize_locked(self) -> None:
        if self._browser is not None:
            return

        browser_config = self._settings.browser
        options = LaunchOptions.from_config(browser_config, get_launch_args())

        logger.info(
            "Initializing browser",
            headless=options.headless,
            generation=self._generation + 1,
        )
        try:
            self._browser = await self._launcher(options)
        except LaunchError:
            raise
        except Exception as e:
            raise LaunchError(f"Failed to launch browser: {e}") from e

        self._generation += 1
        self._authenticated = False

    async def _close_locked(self) -> None:
        browser = self._browser
        self._browser = None
        self._authenticated = False

        if browser is None:
            return

        try:
            await browser.close()
        except Exception as e:
            logger.warning("Browser close failed", error=str(e), generation=self._generation)
        else:
            logger.info("Browser closed", generation=self._generation)

    async def restart(self, observed_generation: int | None = None) -> None:
        """Tear the session down so the next lease launches a fresh browser.

        Waits for outstanding leases to be released first. Skipped when the
        observed generation has already been replaced or torn down by
        another caller.

        Args:
            observed_generation: Generation seen by the failing attempt.
                None forces a teardown of whatever browser is live.
        """
        async with self._lease_condition:
            if self._restart_pending:
                await self._lease_condition.wait_for(lambda: not self._restart_pending)
                logger.debug("Restart already handled", generation=self._generation)
                return

            if self._browser is None or (
                observed_generation is not None and observed_generation != self._generation
            ):
                logger.debug(
                    "Restart skipped",
                    observed_generation=observed_generation,
                    generation=self._generation,
                )
                return

            self._restart_pending = True
            await self._lease_condition.wait_for(lambda: self._active_leases == 0)

        try:
            logger.info("Restarting browser session", generation=self._generation)
            await self.close()
        finally:
            async with self._lease_condition:
                self._restart_pending = False
                self._lease_condition.notify_all()

    @asynccontextmanager
    async def lease_page(self) -> AsyncIterator[PageLease]:
        """Open a page on the live browser for the duration of one attempt.

        Launches the browser if needed, installs the network filter before
        any navigation, and always closes the page on exit.

        Yields:
            PageLease with the page and the browser generation it belongs to.
        """
        async with self._lease_condition:
            await self._lease_condition.wait_for(lambda: not self._restart_pending)
            self._active_leases += 1

        try:
            await self.initialize()
            browser = self._browser
            if browser is None:
                raise LaunchError("Browser not available after initialization")
            generation = self._generation

            page = await browser.new_page()
            try:
                await self._network_filter.install(page)
                yield PageLease(page=page, generation=generation)
            finally:
                try:
                    await page.close()
                except Exception as e:
                    logger.warning("Page close failed", error=str(e))
        finally:
            async with self._lease_condition:
                self._active_leases -= 1
                self._lease_condition.notify_all()

    # =========================================================================
    # Authentication
    # =========================================================================

    async def ensure_authenticated(self, page: PageDriver) -> None:
        """Log in through the given page unless the session already is.

        Runs the login flow at most once per live browser.

        Raises:
            AuthenticationError: If the site reports a login failure.
            ElementNotFoundError: If a login form field is missing.
            NavigationTimeoutError: If the login page does not load in time.
        """
        if self._authenticated:
            return

        async with self._auth_lock:
            if self._authenticated:
                return
            try:
                await self._login(page)
            except Exception:
                self._authenticated = False
                raise
            self._authenticated = True

    async def _login(self, page: PageDriver) -> None:
        site = self._settings.site
        browser_config = self._settings.browser
        credentials = self._settings.credentials

        await self._network_filter.install(page)

        logger.info("Logging in", url=site.login_url)
        await page.goto(
            site.login_url,
            timeout_ms=browser_config.navigation_timeout_ms,
            wait_until=browser_config.wait_until,
        )

        await self._behavior.type_like_human(page, site.login_username_path, credentials.username)
        await self._behavior.type_like_human(page, site.login_password_path, credentials.password)
        await self._behavior.submit(
            page,
            site.login_submit_path,
            timeout_ms=browser_config.navigation_timeout_ms,
            wait_until=browser_config.wait_until,
        )

        error_text = await page.text_content(site.login_error_selector)
        if error_text is not None:
            logger.error("Login rejected", reason=error_text.strip()[:200])
            raise AuthenticationError(
                "Login failed",
                details={"reason": error_text.strip()},
            )

        logger.info("Login successful")

    def verify_authenticated(self, page: PageDriver) -> None:
        """Detect a site session that expired behind the authenticated flag.

        Called after navigating to a target; a redirect to the login surface
        means the site no longer considers us logged in.

        Raises:
            AuthenticationError: If the page landed on the login surface.
        """
        login_path = self._settings.site.login_path
        if urlparse(page.url).path.startswith(login_path):
            self._authenticated = False
            logger.warning("Redirected to login, session expired", url=page.url)
            raise AuthenticationError(
                "Site session expired",
                details={"url": page.url},
            )
