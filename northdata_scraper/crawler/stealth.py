"""
Browser stealth utilities for the Northdata scraper.

Implements the anti-detection patches applied to every launched browser:
- navigator.webdriver property override
- Removal of Playwright, Puppeteer and ChromeDriver globals
- German locale, plugin list and hardware values matching the context
- Chromium launch flags (sandboxing, rendering, automation banner)

Note: Fingerprint manipulation is kept minimal to stay consistent across pages.
"""

from typing import TYPE_CHECKING

from northdata_scraper.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext

logger = get_logger(__name__)


# =============================================================================
# Stealth JavaScript Injections
# =============================================================================

STEALTH_JS = """
(() => {
    const define = (target, name, value) => {
        try {
            Object.defineProperty(target, name, { get: () => value, configurable: true });
        } catch (e) {}
    };

    // Automation flag read by the bot-detection beacon
    define(navigator, 'webdriver', undefined);

    // Same locale as the browser context
    define(navigator, 'languages', ['de-DE', 'de', 'en-US', 'en']);
    define(navigator, 'hardwareConcurrency', 8);
    define(navigator, 'deviceMemory', 8);

    const pluginList = [
        { name: 'PDF Viewer', filename: 'internal-pdf-viewer' },
        { name: 'Chrome PDF Viewer', filename: 'internal-pdf-viewer' },
        { name: 'Chromium PDF Viewer', filename: 'internal-pdf-viewer' },
    ];
    pluginList.item = (index) => pluginList[index] || null;
    pluginList.namedItem = (name) => pluginList.find((plugin) => plugin.name === name) || null;
    pluginList.refresh = () => {};
    define(navigator, 'plugins', pluginList);

    window.chrome = window.chrome || {};
    window.chrome.runtime = window.chrome.runtime || {};

    const permissions = navigator.permissions;
    if (permissions && permissions.query) {
        const query = permissions.query.bind(permissions);
        const patchedQuery = (descriptor) =>
            descriptor && descriptor.name === 'notifications'
                ? Promise.resolve({ state: Notification.permission, onchange: null })
                : query(descriptor);
        permissions.query = patchedQuery;

        const toString = Function.prototype.toString;
        Function.prototype.toString = function () {
            return this === patchedQuery
                ? 'function query() { [native code] }'
                : toString.call(this);
        };
    }

    for (const key of Object.keys(window)) {
        if (/^(__playwright|__pw|__puppeteer|cdc_|\\$cdc_|_phantom|callPhantom)/.test(key)) {
            try { delete window[key]; } catch (e) {}
        }
    }
})();
"""

# Container-friendly flags: no sandbox, no shared memory, no GPU rendering
SANDBOX_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]


def get_stealth_args() -> list[str]:
    """Get Chromium launch arguments that reduce automation detection.

    Returns:
        List of command-line arguments.
    """
    return [
        "--disable-blink-features=AutomationControlled",
        "--disable-infobars",
        "--disable-extensions",
        "--disable-sync",
        "--disable-translate",
    ]


def get_launch_args() -> list[str]:
    """Full flag set for the scraper browser: sandboxing/rendering plus stealth."""
    args = list(SANDBOX_ARGS)
    for arg in get_stealth_args():
        if arg not in args:
            args.append(arg)
    return args


async def apply_stealth_to_context(context: "BrowserContext") -> None:
    """Apply stealth measures to a Playwright browser context.

    Every page created from the context runs the init script before any
    site script.

    Args:
        context: Playwright browser context.
    """
    await context.add_init_script(STEALTH_JS)
    logger.debug("Stealth scripts applied to context")
