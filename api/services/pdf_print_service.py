"""
Headless browser print pipeline.

Turns an HTML string into PDF bytes with Playwright's Chromium. Every render
launches its own browser, so concurrent exports never share browser state,
and the browser is closed exactly once whether the render succeeds or fails.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from config import settings
from services.export_errors import (
    BrowserLaunchError,
    ContentLoadTimeoutError,
    PrintTimeoutError,
    UnknownExportError,
)

logger = logging.getLogger(__name__)


def _default_margin() -> Dict[str, str]:
    return {"top": "40px", "right": "20px", "bottom": "40px", "left": "20px"}


@dataclass
class PageOptions:
    """Page geometry for print-to-PDF.

    Uses the named format unless both width and height are given.
    """
    format: Optional[str] = "A4"
    width: Optional[str] = None
    height: Optional[str] = None
    landscape: bool = False
    margin: Dict[str, str] = field(default_factory=_default_margin)
    page_ranges: Optional[str] = None
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None

    # Extra wait after network idle, for pages that keep painting (map tiles)
    settle_ms: int = 0

    def pdf_kwargs(self) -> Dict:
        """Keyword arguments for Page.pdf."""
        kwargs = {
            "print_background": True,
            "margin": self.margin,
            "landscape": self.landscape,
        }
        if self.width and self.height:
            kwargs["width"] = self.width
            kwargs["height"] = self.height
        else:
            kwargs["format"] = self.format or "A4"
        if self.page_ranges:
            kwargs["page_ranges"] = self.page_ranges
        return kwargs

    def viewport(self) -> Optional[Dict[str, int]]:
        if self.viewport_width and self.viewport_height:
            return {"width": self.viewport_width, "height": self.viewport_height}
        return None


class PdfPrintService:
    """
    Prints HTML to PDF through a per-render headless Chromium instance.

    Launch failures raise BrowserLaunchError, content that never reaches
    network idle raises ContentLoadTimeoutError, and a print step that runs
    too long raises PrintTimeoutError.
    """

    def __init__(self, browser_args: Optional[List[str]] = None,
                 page_load_timeout_ms: Optional[int] = None,
                 print_timeout_seconds: Optional[float] = None,
                 playwright_factory: Callable = async_playwright):
        """
        Initialize the print service.

        Args:
            browser_args: Chromium command line flags (defaults to settings)
            page_load_timeout_ms: Timeout for loading the HTML content
            print_timeout_seconds: Timeout for the print-to-PDF step
            playwright_factory: Returns the Playwright async context manager
        """
        self.browser_args = list(settings.browser_args if browser_args is None else browser_args)
        self.page_load_timeout_ms = page_load_timeout_ms or settings.page_load_timeout_ms
        self.print_timeout_seconds = print_timeout_seconds or settings.print_timeout_seconds
        self._playwright_factory = playwright_factory

    @asynccontextmanager
    async def browser_session(self):
        """
        Launch a headless browser and close it when the block exits.

        Yields:
            Playwright Browser
        """
        async with self._playwright_factory() as playwright:
            try:
                browser = await playwright.chromium.launch(headless=True, args=self.browser_args)
            except PlaywrightError as e:
                logger.error(f"Failed to launch headless browser: {e}")
                raise BrowserLaunchError("Failed to launch headless browser", details=str(e))

            logger.debug("Headless browser launched")
            try:
                yield browser
            finally:
                try:
                    await browser.close()
                    logger.debug("Headless browser closed")
                except PlaywrightError as e:
                    logger.warning(f"Error while closing headless browser: {e}")

    async def render_pdf(self, html: str, options: Optional[PageOptions] = None) -> bytes:
        """
        Load HTML, wait for the network to go idle and print it to PDF.

        Args:
            html: Complete HTML document
            options: Page geometry; A4 with default margins when omitted

        Returns:
            PDF bytes

        Raises:
            BrowserLaunchError: If Chromium cannot be started
            ContentLoadTimeoutError: If the content does not settle in time
            PrintTimeoutError: If printing exceeds its timeout
            UnknownExportError: On any other browser failure
        """
        options = options or PageOptions()

        async with self.browser_session() as browser:
            try:
                viewport = options.viewport()
                page = await (browser.new_page(viewport=viewport) if viewport else browser.new_page())

                try:
                    await page.set_content(
                        html,
                        wait_until="networkidle",
                        timeout=self.page_load_timeout_ms
                    )
                except PlaywrightTimeoutError as e:
                    raise ContentLoadTimeoutError(
                        f"Page content did not finish loading within {self.page_load_timeout_ms} ms",
                        details=str(e)
                    )

                if options.settle_ms:
                    await page.wait_for_timeout(options.settle_ms)

                try:
                    pdf_bytes = await asyncio.wait_for(
                        page.pdf(**options.pdf_kwargs()),
                        timeout=self.print_timeout_seconds
                    )
                except (asyncio.TimeoutError, PlaywrightTimeoutError) as e:
                    raise PrintTimeoutError(
                        f"Printing to PDF did not finish within {self.print_timeout_seconds} seconds",
                        details=str(e) or None
                    )
            except PlaywrightError as e:
                logger.error(f"Browser rendering failed: {e}")
                raise UnknownExportError("Browser rendering failed", details=str(e))

        logger.info(f"Rendered PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes
