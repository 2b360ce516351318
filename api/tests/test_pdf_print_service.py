"""
Unit tests for the headless browser print pipeline.

Playwright is replaced with a fake factory so no browser is launched; the
tests check the calls made and that the browser is always closed.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.export_errors import (
    BrowserLaunchError,
    ContentLoadTimeoutError,
    PrintTimeoutError,
    RenderTimeoutError,
    UnknownExportError,
)
from services.pdf_print_service import PageOptions, PdfPrintService

PDF_BYTES = b"%PDF-1.4 test document"


class FakePlaywright:
    """Async context manager standing in for async_playwright()."""

    def __init__(self, browser, launch_error=None):
        self.chromium = Mock()
        self.chromium.launch = AsyncMock(return_value=browser, side_effect=launch_error)
        self.exited = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        return False


class TestPdfPrintService:
    """Test suite for PdfPrintService."""

    @pytest.fixture
    def page(self):
        page = Mock()
        page.set_content = AsyncMock()
        page.wait_for_timeout = AsyncMock()
        page.pdf = AsyncMock(return_value=PDF_BYTES)
        return page

    @pytest.fixture
    def browser(self, page):
        browser = Mock()
        browser.new_page = AsyncMock(return_value=page)
        browser.close = AsyncMock()
        return browser

    @pytest.fixture
    def fake_playwright(self, browser):
        return FakePlaywright(browser)

    @pytest.fixture
    def service(self, fake_playwright):
        return PdfPrintService(
            browser_args=["--no-sandbox"],
            page_load_timeout_ms=5000,
            print_timeout_seconds=5,
            playwright_factory=lambda: fake_playwright
        )

    @pytest.mark.asyncio
    async def test_render_pdf_success(self, service, fake_playwright, browser, page):
        """HTML is loaded with networkidle and printed as A4."""
        pdf = await service.render_pdf("<html><body>Hi</body></html>")

        assert pdf == PDF_BYTES
        fake_playwright.chromium.launch.assert_awaited_once_with(headless=True, args=["--no-sandbox"])
        page.set_content.assert_awaited_once_with(
            "<html><body>Hi</body></html>", wait_until="networkidle", timeout=5000
        )
        pdf_kwargs = page.pdf.call_args.kwargs
        assert pdf_kwargs["format"] == "A4"
        assert pdf_kwargs["print_background"] is True
        assert pdf_kwargs["margin"] == {"top": "40px", "right": "20px", "bottom": "40px", "left": "20px"}
        page.wait_for_timeout.assert_not_awaited()
        browser.close.assert_awaited_once()
        assert fake_playwright.exited

    @pytest.mark.asyncio
    async def test_custom_geometry_and_settle(self, service, browser, page):
        options = PageOptions(width="11.69in", height="8.27in", page_ranges="1",
                              viewport_width=1169, viewport_height=827, settle_ms=3000)

        await service.render_pdf("<html></html>", options)

        browser.new_page.assert_awaited_once_with(viewport={"width": 1169, "height": 827})
        page.wait_for_timeout.assert_awaited_once_with(3000)
        pdf_kwargs = page.pdf.call_args.kwargs
        assert pdf_kwargs["width"] == "11.69in"
        assert pdf_kwargs["height"] == "8.27in"
        assert pdf_kwargs["page_ranges"] == "1"
        assert "format" not in pdf_kwargs

    @pytest.mark.asyncio
    async def test_content_load_timeout(self, service, browser, page):
        page.set_content.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")

        with pytest.raises(ContentLoadTimeoutError) as exc_info:
            await service.render_pdf("<html></html>")

        assert isinstance(exc_info.value, RenderTimeoutError)
        page.pdf.assert_not_awaited()
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_print_timeout(self, browser, page, fake_playwright):
        async def slow_pdf(**kwargs):
            await asyncio.sleep(1)
            return PDF_BYTES

        page.pdf = slow_pdf
        service = PdfPrintService(
            browser_args=[],
            page_load_timeout_ms=5000,
            print_timeout_seconds=0.01,
            playwright_factory=lambda: fake_playwright
        )

        with pytest.raises(PrintTimeoutError):
            await service.render_pdf("<html></html>")

        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_browser_error_is_unknown(self, service, browser, page):
        page.pdf.side_effect = PlaywrightError("Target page, context or browser has been closed")

        with pytest.raises(UnknownExportError) as exc_info:
            await service.render_pdf("<html></html>")

        assert "closed" in exc_info.value.details
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_called_once_on_unexpected_failure(self, service, browser, page):
        page.set_content.side_effect = RuntimeError("forced failure")

        with pytest.raises(RuntimeError):
            await service.render_pdf("<html></html>")

        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_error_does_not_mask_result(self, service, browser):
        browser.close.side_effect = PlaywrightError("already closed")

        assert await service.render_pdf("<html></html>") == PDF_BYTES

    @pytest.mark.asyncio
    async def test_launch_failure(self, browser):
        fake = FakePlaywright(browser, launch_error=PlaywrightError("Executable doesn't exist"))
        service = PdfPrintService(playwright_factory=lambda: fake)

        with pytest.raises(BrowserLaunchError) as exc_info:
            await service.render_pdf("<html></html>")

        assert exc_info.value.kind.value == "unknown"
        browser.close.assert_not_awaited()

    def test_page_options_landscape(self):
        options = PageOptions(landscape=True, margin={"top": "10mm", "right": "10mm",
                                                      "bottom": "10mm", "left": "10mm"})
        kwargs = options.pdf_kwargs()

        assert kwargs["landscape"] is True
        assert kwargs["format"] == "A4"
        assert options.viewport() is None
