"""
Tests for human_behavior.py module.

Tests TypingConfig, HumanTyping, and HumanBehaviorSimulator.

## Test Perspectives Table
| Case ID | Input / Precondition | Perspective (Equivalence / Boundary) | Expected Result | Notes |
|---------|----------------------|---------------------------------------|-----------------|-------|
| TC-TC-01 | TypingConfig defaults | Equivalence – defaults | Default values set | - |
| TC-TC-02 | min > max | Abnormal – validation | ValueError | - |
| TC-TC-03 | From BrowserConfig | Equivalence – mapping | Values copied | - |
| TC-HT-01 | Generate keystrokes | Equivalence – normal | One event per char, delays in range | - |
| TC-HT-02 | Scaled keystrokes | Equivalence – path targets | Delays divided | - |
| TC-HT-03 | Empty text | Boundary – empty | No events | - |
| TC-HBS-01 | type_like_human | Equivalence – typing | Click, per-key typing, settle delay | - |
| TC-HBS-02 | Missing target | Abnormal – locate | ElementNotFoundError, nothing typed | - |
| TC-HBS-03 | submit | Equivalence – navigation | Click with navigation wait | - |
"""

from unittest.mock import AsyncMock, patch

import pytest

from northdata_scraper.crawler.human_behavior import (
    HumanBehaviorSimulator,
    HumanTyping,
    TypingConfig,
)
from northdata_scraper.errors import ElementNotFoundError
from northdata_scraper.utils.config import BrowserConfig
from tests.conftest import FakePage

pytestmark = pytest.mark.unit

INPUT_PATH = "/html/body/main/div/div/div/form/div/input"


class TestTypingConfig:
    """Tests for TypingConfig dataclass."""

    def test_default_values(self):
        """TC-TC-01: Test default configuration values."""
        config = TypingConfig()
        assert config.min_delay_ms == 50.0
        assert config.max_delay_ms == 150.0
        assert config.path_delay_divisor == 8
        assert config.settle_delay_ms == 50.0

    def test_invalid_range(self):
        """TC-TC-02: min above max is rejected."""
        with pytest.raises(ValueError, match="typing delays"):
            TypingConfig(min_delay_ms=200, max_delay_ms=100)

    def test_from_browser_config(self):
        """TC-TC-03: Values come from browser settings."""
        # Given: Custom browser settings
        browser = BrowserConfig(typing_delay_min_ms=10, typing_delay_max_ms=20, typing_settle_ms=5)

        # When: Building typing config
        config = TypingConfig.from_browser_config(browser)

        # Then: Values are copied
        assert (config.min_delay_ms, config.max_delay_ms) == (10, 20)
        assert config.settle_delay_ms == 5


class TestHumanTyping:
    """Tests for HumanTyping class."""

    def test_generate_keystrokes(self):
        """TC-HT-01: One event per character with delays in [min, max]."""
        # Given: Default typing
        typing = HumanTyping()

        # When: Generating keystrokes
        events = typing.generate_keystrokes("Acme GmbH")

        # Then: Characters in order, delays within the configured range
        assert [event.key for event in events] == list("Acme GmbH")
        assert all(50 <= event.delay_ms <= 150 for event in events)

    def test_scaled_keystrokes(self):
        """TC-HT-02: Path targets use delays divided by the divisor."""
        # Given: Default typing
        typing = HumanTyping()

        # When: Generating scaled keystrokes
        events = typing.generate_keystrokes("x" * 50, scaled=True)

        # Then: Every delay is within [min/8, max/8]
        assert all(6 <= event.delay_ms <= 150 / 8 for event in events)

    def test_empty_text(self):
        """TC-HT-03: Empty text produces no events."""
        assert HumanTyping().generate_keystrokes("") == []


class TestHumanBehaviorSimulator:
    """Tests for HumanBehaviorSimulator."""

    async def test_type_like_human(self):
        """TC-HBS-01: Focus by click, type each key, settle."""
        # Given: A simulator and a page with the target
        simulator = HumanBehaviorSimulator()
        page = FakePage()

        # When: Typing into a structural path target
        with patch(
            "northdata_scraper.crawler.human_behavior.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            await simulator.type_like_human(page, INPUT_PATH, "Acme")

        # Then: Target clicked once, keys typed one by one
        assert page.clicks == [INPUT_PATH]
        assert page.keys == ["A", "c", "m", "e"]

        # And: One pause per key plus the settle delay
        assert mock_sleep.await_count == 5
        assert mock_sleep.await_args_list[-1].args == (0.05,)

    async def test_missing_target(self):
        """TC-HBS-02: A missing target raises and types nothing."""
        # Given: A page without the target element
        simulator = HumanBehaviorSimulator(TypingConfig(min_delay_ms=0, max_delay_ms=0))
        page = FakePage(missing_locators={INPUT_PATH})

        # When/Then: ElementNotFoundError
        with pytest.raises(ElementNotFoundError) as exc_info:
            await simulator.type_like_human(page, INPUT_PATH, "Acme")
        assert exc_info.value.locator == INPUT_PATH
        assert page.keys == []

    async def test_submit(self):
        """TC-HBS-03: submit clicks and waits for navigation."""
        # Given: A simulator and a page
        simulator = HumanBehaviorSimulator()
        page = FakePage()

        # When: Submitting
        await simulator.submit(page, "/html/body/form/button", timeout_ms=1000, wait_until="load")

        # Then: The submit went through the navigation-aware click
        assert page.submits == ["/html/body/form/button"]
