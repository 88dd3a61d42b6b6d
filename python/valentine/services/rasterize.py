"""Card rasterization.

Turns a CardSurface into PNG bytes:
1. Load the card HTML in headless Chromium (Playwright)
2. Screenshot the card element at the requested device scale with a
   transparent background
3. Flatten the result onto the theme backdrop with Pillow

The browser is launched lazily on first use and reused until close().
"""

import asyncio
import io
from typing import Protocol

from PIL import Image, ImageColor, UnidentifiedImageError
from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from starlette.concurrency import run_in_threadpool

from valentine.logging import get_logger
from valentine.services.card import CardSurface

logger = get_logger(__name__)

DEFAULT_VIEWPORT = {"width": 640, "height": 900}


class RasterizeError(Exception):
    """Raised when a card surface cannot be turned into an image."""


class Rasterizer(Protocol):
    async def rasterize(self, surface: CardSurface, *, scale: float) -> bytes: ...


def flatten_onto_background(png_bytes: bytes, background: str) -> bytes:
    """Composite a (possibly transparent) PNG over a solid background color.

    Args:
        png_bytes: Source PNG.
        background: Any color string PIL.ImageColor understands
            (e.g. "hsl(350, 50%, 98%)" or "#fdf2f8").

    Returns:
        Opaque RGB PNG bytes with the same dimensions.

    Raises:
        RasterizeError: If the source is not a decodable image or the color
            is invalid.
    """
    try:
        fill = ImageColor.getrgb(background)
    except ValueError as e:
        raise RasterizeError(f"Invalid background color: {background}") from e

    try:
        with Image.open(io.BytesIO(png_bytes)) as source:
            rgba = source.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise RasterizeError("Captured image could not be decoded") from e

    canvas = Image.new("RGBA", rgba.size, fill[:3] + (255,))
    canvas.alpha_composite(rgba)

    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="PNG")
    return out.getvalue()


class PlaywrightRasterizer:
    """Headless Chromium rasterizer."""

    def __init__(self, viewport: dict[str, int] | None = None):
        self._viewport = viewport or DEFAULT_VIEWPORT
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    async def _get_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                playwright = await async_playwright().start()
                try:
                    self._browser = await playwright.chromium.launch()
                except BaseException:
                    # close() only stops the driver of a launched browser
                    await playwright.stop()
                    raise
                self._playwright = playwright
                logger.info("rasterizer_browser_launched")
            return self._browser

    async def rasterize(self, surface: CardSurface, *, scale: float) -> bytes:
        try:
            browser = await self._get_browser()
            context = await browser.new_context(
                viewport=self._viewport, device_scale_factor=scale
            )
            try:
                page = await context.new_page()
                await page.set_content(surface.html, wait_until="load")
                raw = await page.locator(surface.selector).screenshot(
                    type="png", omit_background=True
                )
            finally:
                await context.close()
        except PlaywrightError as e:
            raise RasterizeError(f"Browser capture failed: {e}") from e

        return await run_in_threadpool(flatten_onto_background, raw, surface.background)

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
