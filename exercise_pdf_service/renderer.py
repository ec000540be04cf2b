"""
Rendering engine - Playwright/Chromium.

The pool and orchestration only rely on the RenderEngine protocol:

    pdf_bytes = await engine.render(html)
    engine.is_connected()
    await engine.dispose()

ChromiumRenderer implements it on top of one Playwright Browser. Each render
opens a fresh page, so state never leaks between documents rendered by the
same browser. BrowserLauncher is the factory the pool calls to start a new
browser; it owns the Playwright driver process shared by every browser.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Protocol

if TYPE_CHECKING:
    from playwright.async_api import Browser, Playwright

    from .config import PDFServiceSettings

logger = logging.getLogger(__name__)

# A4 at 150 dpi
VIEWPORT = {"width": 1240, "height": 1754}


class RenderEngine(Protocol):
    """Contract between the pool/orchestration and a heavy renderer."""

    async def render(self, markup: str) -> bytes:
        ...

    async def dispose(self) -> None:
        ...

    def is_connected(self) -> bool:
        ...


@dataclass
class RenderOptions:
    """Page settings applied to every render."""

    page_format: str = "A4"
    print_background: bool = True
    prefer_css_page_size: bool = True
    content_timeout_ms: int = 60000
    wait_until: str = "networkidle"


class ChromiumRenderer:
    """RenderEngine backed by a single headless Chromium instance."""

    def __init__(self, browser: "Browser", options: Optional[RenderOptions] = None):
        self._browser = browser
        self._options = options or RenderOptions()

    @property
    def browser(self) -> "Browser":
        return self._browser

    def is_connected(self) -> bool:
        return self._browser.is_connected()

    async def render(self, markup: str) -> bytes:
        """
        Render an HTML document to PDF bytes.

        Args:
            markup: Self-contained HTML document

        Returns:
            PDF file contents
        """
        opts = self._options
        page = await self._browser.new_page(viewport=VIEWPORT)
        try:
            await page.set_content(
                markup,
                timeout=opts.content_timeout_ms,
                wait_until=opts.wait_until,
            )
            return await page.pdf(
                format=opts.page_format,
                print_background=opts.print_background,
                prefer_css_page_size=opts.prefer_css_page_size,
            )
        finally:
            if not page.is_closed():
                try:
                    await page.close()
                except Exception as e:
                    logger.debug(f"Ignoring page close failure: {e}")

    async def dispose(self) -> None:
        """Close the browser. Safe to call on an already disconnected browser."""
        if self._browser.is_connected():
            await self._browser.close()


@dataclass
class BrowserLauncher:
    """
    Creation factory for pooled browsers.

    Calling the launcher starts one new Chromium and wraps it in a
    ChromiumRenderer. The Playwright driver is started on first use and
    shared by every browser it launches.
    """

    headless: bool = True
    args: List[str] = field(default_factory=list)
    render_options: RenderOptions = field(default_factory=RenderOptions)
    _playwright: Optional["Playwright"] = field(default=None, init=False, repr=False)
    _start_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: "PDFServiceSettings") -> "BrowserLauncher":
        return cls(
            headless=settings.browser_headless,
            args=settings.browser_args_list,
            render_options=RenderOptions(
                content_timeout_ms=int(settings.render_timeout_seconds * 1000),
            ),
        )

    async def _ensure_driver(self) -> "Playwright":
        async with self._start_lock:
            if self._playwright is None:
                # Import here to avoid loading Playwright on startup
                from playwright.async_api import async_playwright

                logger.info("Starting Playwright driver")
                self._playwright = await async_playwright().start()
            return self._playwright

    async def __call__(self) -> ChromiumRenderer:
        playwright = await self._ensure_driver()
        logger.info(f"Launching Chromium (headless={self.headless})")
        browser = await playwright.chromium.launch(headless=self.headless, args=self.args)
        return ChromiumRenderer(browser, self.render_options)

    async def stop(self) -> None:
        """Stop the Playwright driver. Browsers must be closed first."""
        async with self._start_lock:
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning(f"Playwright driver did not stop cleanly: {e}")
                finally:
                    self._playwright = None
                logger.info("Playwright driver stopped")
