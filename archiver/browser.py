"""Headless browser capability used by the fetch scheduler.

The scheduler only needs a narrow contract: open a page, navigate with a
timeout, read the rendered markup, close.  :class:`BrowserHandle` captures
that contract so tests can substitute a fake; :class:`PlaywrightBrowser` is
the production implementation on top of Playwright's async API.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Protocol

from archiver.errors import CapabilityLaunchError

logger = logging.getLogger(__name__)


class BrowserPage(Protocol):
    """A single browser tab.  Playwright's ``Page`` satisfies this as-is."""

    async def goto(self, url: str, *, timeout: float, wait_until: str) -> Any: ...

    async def content(self) -> str: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BrowserHandle(ABC):
    """A launched browser shared by every task of an archival run.

    Each task opens its own page; pages are never shared between tasks.
    """

    @abstractmethod
    async def new_page(self) -> BrowserPage:
        """Open and return a fresh page."""

    @abstractmethod
    async def close(self) -> None:
        """Shut the browser down."""


Launcher = Callable[[], Awaitable[BrowserHandle]]


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------

class PlaywrightBrowser(BrowserHandle):
    """Chromium driven through ``playwright.async_api``.

    Use :meth:`launch` rather than the constructor.
    """

    def __init__(self, playwright: Any, browser: Any) -> None:
        self._playwright = playwright
        self._browser = browser

    @classmethod
    async def launch(cls, headless: bool = True) -> "PlaywrightBrowser":
        """Start Playwright and launch a Chromium instance.

        Playwright is imported lazily so that the rest of the package (and the
        test suite) can be used without a browser installed.

        Raises:
            CapabilityLaunchError: If Playwright or Chromium cannot start.
        """
        try:
            from playwright.async_api import async_playwright  # noqa: PLC0415
        except ImportError as exc:
            raise CapabilityLaunchError(
                "playwright is not installed; run `pip install playwright` "
                "and `playwright install chromium`"
            ) from exc

        try:
            playwright = await async_playwright().start()
        except Exception as exc:
            raise CapabilityLaunchError(f"Could not start Playwright: {exc}") from exc

        try:
            browser = await playwright.chromium.launch(headless=headless)
        except Exception as exc:
            await playwright.stop()
            raise CapabilityLaunchError(f"Could not launch Chromium: {exc}") from exc

        logger.debug("[BROWSER] Chromium launched (headless=%s)", headless)
        return cls(playwright, browser)

    async def new_page(self) -> BrowserPage:
        return await self._browser.new_page()

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()
        logger.debug("[BROWSER] Chromium closed")


def playwright_launcher(headless: bool = True) -> Launcher:
    """Return a :data:`Launcher` that starts a :class:`PlaywrightBrowser`."""

    async def launch() -> BrowserHandle:
        return await PlaywrightBrowser.launch(headless=headless)

    return launch
