"""
Human-like input simulation for the Northdata scraper.

Keystrokes are injected one character at a time with a uniformly distributed
inter-key delay. Zero-delay batch input is the pattern anti-automation
checks look for, so every text entry goes through HumanBehaviorSimulator.

Structural-path targets (positional XPath locators used by the login and
search forms) type with delays scaled down by a configured divisor to bound
the total latency of long inputs.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from northdata_scraper.crawler.browser_provider import is_structural_path
from northdata_scraper.errors import ElementNotFoundError
from northdata_scraper.utils.logging import get_logger

if TYPE_CHECKING:
    from northdata_scraper.crawler.browser_provider import PageDriver
    from northdata_scraper.utils.config import BrowserConfig

logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class TypingConfig:
    """Configuration for typing behavior."""

    # Key delay parameters (milliseconds), uniform in [min, max]
    min_delay_ms: float = 50.0
    max_delay_ms: float = 150.0

    # Divisor applied to delays for structural-path targets
    path_delay_divisor: int = 8

    # Pause after the last keystroke
    settle_delay_ms: float = 50.0

    def __post_init__(self) -> None:
        if self.min_delay_ms < 0 or self.max_delay_ms < self.min_delay_ms:
            raise ValueError("typing delays must satisfy 0 <= min <= max")
        if self.path_delay_divisor < 1:
            raise ValueError("path_delay_divisor must be at least 1")

    @classmethod
    def from_browser_config(cls, config: BrowserConfig) -> TypingConfig:
        """Build typing configuration from browser settings."""
        return cls(
            min_delay_ms=config.typing_delay_min_ms,
            max_delay_ms=config.typing_delay_max_ms,
            path_delay_divisor=config.path_typing_divisor,
            settle_delay_ms=config.typing_settle_ms,
        )


# =============================================================================
# Human Typing
# =============================================================================


@dataclass
class TypingEvent:
    """A single keystroke followed by a delay."""

    key: str
    delay_ms: float


class HumanTyping:
    """Generates keystroke sequences with randomized timing."""

    def __init__(self, config: TypingConfig | None = None):
        """Initialize human typing simulator.

        Args:
            config: Typing configuration. Uses defaults if not provided.
        """
        self._config = config or TypingConfig()

    @property
    def config(self) -> TypingConfig:
        return self._config

    def generate_keystrokes(self, text: str, *, scaled: bool = False) -> list[TypingEvent]:
        """Generate typing events for a text string.

        Args:
            text: Text to type.
            scaled: Apply the structural-path delay divisor.

        Returns:
            One TypingEvent per character.
        """
        return [TypingEvent(key=char, delay_ms=self._get_key_delay(scaled)) for char in text]

    def _get_key_delay(self, scaled: bool) -> float:
        delay = random.uniform(self._config.min_delay_ms, self._config.max_delay_ms)
        if scaled:
            delay /= self._config.path_delay_divisor
        return float(int(delay))


# =============================================================================
# Unified Human Behavior Interface
# =============================================================================


class HumanBehaviorSimulator:
    """Locates, focuses and types into page elements like a person would."""

    def __init__(self, config: TypingConfig | None = None):
        self._typing = HumanTyping(config)

    @classmethod
    def from_browser_config(cls, config: BrowserConfig) -> HumanBehaviorSimulator:
        return cls(TypingConfig.from_browser_config(config))

    async def click(self, page: PageDriver, locator: str) -> None:
        """Click an element located by structural path or selector.

        Raises:
            ElementNotFoundError: If the locator matches nothing.
        """
        if not await page.click(locator):
            raise ElementNotFoundError(locator)

    async def type_like_human(self, page: PageDriver, locator: str, text: str) -> None:
        """Focus the target element and type text with human-like rhythm.

        Args:
            page: Page driver.
            locator: Structural path (starting with "/") or CSS selector.
            text: Text to type.

        Raises:
            ElementNotFoundError: If the target cannot be located.
        """
        scaled = is_structural_path(locator)

        try:
            await self.click(page, locator)

            for event in self._typing.generate_keystrokes(text, scaled=scaled):
                await page.type_key(event.key)
                if event.delay_ms > 0:
                    await asyncio.sleep(event.delay_ms / 1000)
        except ElementNotFoundError:
            logger.error("Typing target not found", locator=locator)
            raise

        await asyncio.sleep(self._typing.config.settle_delay_ms / 1000)

    async def submit(
        self,
        page: PageDriver,
        locator: str,
        *,
        timeout_ms: int,
        wait_until: str,
    ) -> None:
        """Click a submit control and wait for the resulting navigation."""
        await page.click_and_wait_for_navigation(
            locator,
            timeout_ms=timeout_ms,
            wait_until=wait_until,
        )
