"""Playwright-based renderer for JavaScript-rendered listing pages."""

from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

logger = structlog.get_logger()

# Browser fallback order
BROWSERS = ["chromium", "firefox"]

PAGE_TIMEOUT = 20000  # 20 seconds


async def get_rendered_html(url: str, timeout_ms: int = PAGE_TIMEOUT) -> Optional[str]:
    """Fetch a page with a headless browser and return the rendered HTML.

    Args:
        url: URL to render
        timeout_ms: Navigation timeout in milliseconds

    Returns:
        Rendered HTML content, or None when every browser failed
    """
    for browser_type in BROWSERS:
        try:
            logger.debug("Rendering with Playwright", url=url, browser=browser_type)
            async with async_playwright() as p:
                browser = await getattr(p, browser_type).launch(headless=True)
                try:
                    context = await browser.new_context(
                        locale="ro-RO",
                        user_agent="Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
                    )
                    page = await context.new_page()
                    await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

                    # Late JS (prices are often injected after load)
                    await page.wait_for_timeout(1000)

                    html = await page.content()
                    logger.debug("Page rendered", url=url, size=len(html))
                    return html
                finally:
                    await browser.close()

        except PlaywrightError as e:
            logger.debug("Playwright failed", browser=browser_type, url=url, error=str(e))
            continue

    logger.warning("All browsers failed to render page", url=url)
    return None


class PlaywrightRenderer:
    """``PageRenderer`` backed by a local headless browser."""

    def __init__(self, timeout_ms: int = PAGE_TIMEOUT):
        self.timeout_ms = timeout_ms

    async def render(self, url: str) -> Optional[str]:
        return await get_rendered_html(url, timeout_ms=self.timeout_ms)
