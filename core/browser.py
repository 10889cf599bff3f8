"""
LEAKPROBE - Browser Controller
Playwright-based browser automation providing the two capabilities the
detection engine needs:

- a storage inventory (``indexedDB.databases()`` on the host page)
- a session opener (background popup on the forced-leak target)
"""

import asyncio
import logging
import sys
from typing import Dict, List, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page

from shared.constants import BrowserEngines, POPUP_WINDOW_FEATURES

# Fix for Windows asyncio subprocess (Playwright compatibility)
if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

logger = logging.getLogger(__name__)


LIST_DATABASES_JS = """async () => {
    if (!window.indexedDB || typeof indexedDB.databases !== 'function') {
        return [];
    }
    const databases = await indexedDB.databases();
    return databases.map((db) => ({ name: db.name, version: db.version }));
}"""

OPEN_POPUP_JS = """([url, features]) => {
    window.open(url, '', features);
}"""


class PopupSession:
    """Handle on an auxiliary popup window; closing is idempotent and never raises"""

    def __init__(self, page: Optional[Page], url: str):
        self.page = page
        self.url = url
        self.closed = False

    async def close(self):
        if self.closed:
            return
        self.closed = True
        if self.page is None:
            return
        try:
            await self.page.close()
        except Exception as e:
            logger.debug(f"Popup close error (non-critical): {e}")
        finally:
            self.page = None


class BrowserController:
    """Controls the browser hosting the leak test"""

    def __init__(
        self,
        engine: str = BrowserEngines.WEBKIT.value,
        headless: bool = False,
        user_data_dir: Optional[str] = None,
        slow_mo: int = 0,
        popup_timeout_ms: int = 1000,
    ):
        try:
            self.engine = BrowserEngines(engine).value
        except ValueError:
            raise ValueError(
                f"Unsupported browser engine {engine!r}; expected one of "
                f"{[e.value for e in BrowserEngines]}"
            )
        self.headless = headless
        self.user_data_dir = user_data_dir  # Reuse a logged-in profile when set
        self.slow_mo = slow_mo
        self.popup_timeout_ms = popup_timeout_ms
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self._popups: List[PopupSession] = []

    async def start(self):
        """Start the browser instance and open the host page"""
        self.playwright = await async_playwright().start()
        browser_type = getattr(self.playwright, self.engine)

        if self.user_data_dir:
            self.context = await browser_type.launch_persistent_context(
                self.user_data_dir,
                headless=self.headless,
                slow_mo=self.slow_mo,
            )
            self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
        else:
            self.browser = await browser_type.launch(
                headless=self.headless,
                slow_mo=self.slow_mo,
                timeout=60000,  # 60 second timeout for browser launch
            )
            self.context = await self.browser.new_context()
            self.page = await self.context.new_page()

        # Set default timeouts
        self.context.set_default_timeout(30000)
        self.context.set_default_navigation_timeout(60000)

        logger.info(
            f"Browser started successfully ({self.engine}"
            + (f", profile {self.user_data_dir}" if self.user_data_dir else "")
            + ")"
        )

    async def goto(self, url: str, **kwargs):
        """Navigate the host page"""
        kwargs.setdefault('wait_until', 'domcontentloaded')
        return await self.page.goto(url, **kwargs)

    async def list_databases(self) -> List[Dict]:
        """Storage inventory: every database name the host page can enumerate"""
        if self.page is None:
            raise RuntimeError("Browser not started")
        return await self.page.evaluate(LIST_DATABASES_JS)

    async def database_names(self) -> List[str]:
        """Passive snapshot of database names"""
        databases = await self.list_databases()
        return [db["name"] for db in databases if isinstance(db.get("name"), str)]

    async def open_popup(self, url: str) -> PopupSession:
        """
        Session opener: open ``url`` in a tiny off-screen popup from the host page.

        Raises if the popup is blocked or never appears.
        """
        if self.page is None:
            raise RuntimeError("Browser not started")

        async with self.page.expect_popup(timeout=self.popup_timeout_ms) as popup_info:
            await self.page.evaluate(OPEN_POPUP_JS, [url, POPUP_WINDOW_FEATURES])
        popup = await popup_info.value

        session = PopupSession(popup, url)
        self._popups.append(session)
        logger.debug(f"Popup opened on {url}")
        return session

    async def close(self):
        """Gracefully close popups, context, browser and Playwright"""
        try:
            for session in self._popups:
                await session.close()
            self._popups.clear()

            if self.context:
                try:
                    await self.context.close()
                except Exception as e:
                    logger.debug(f"Context close error: {e}")

            if self.browser:
                try:
                    await self.browser.close()
                except Exception as e:
                    logger.debug(f"Browser close error: {e}")

            if self.playwright:
                try:
                    await self.playwright.stop()
                except Exception as e:
                    logger.debug(f"Playwright stop error: {e}")

            logger.info("Browser closed")
        finally:
            # Clear all references
            self.context = None
            self.browser = None
            self.playwright = None
            self.page = None

    async def __aenter__(self):
        """Async context manager entry - starts the browser.

        Usage:
            async with BrowserController() as browser:
                await browser.goto('https://example.com')
                names = await browser.database_names()
        """
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - ensures browser cleanup."""
        await self.close()
        return False  # Don't suppress exceptions
