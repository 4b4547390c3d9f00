"""
Browser session for the mobile QA harness, backed by Playwright.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

try:
    from playwright.async_api import ElementHandle, Page, async_playwright
except ImportError:
    print("ERROR: playwright not installed. Run: pip install playwright && playwright install chromium")
    raise SystemExit(1)

from qa_config import DeviceProfile

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-gpu"]


class PlaywrightSession:
    """One tab, reused across pages.

    The runner and the menu probe only use these methods, so any object with
    the same coroutine methods can stand in for it.
    """

    def __init__(self, page: Page):
        self.page = page

    async def navigate(self, url: str, wait_until: str = "networkidle", timeout_ms: int = 30000) -> Optional[int]:
        response = await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        return response.status if response else None

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def query_selector_all(self, selector: str) -> List[ElementHandle]:
        return await self.page.query_selector_all(selector)

    async def click(self, handle: ElementHandle) -> None:
        await handle.click()

    async def is_visible(self, handle: ElementHandle) -> bool:
        return await handle.is_visible()

    async def screenshot(self, path: str, full_page: bool = True) -> None:
        await self.page.screenshot(path=path, full_page=full_page)

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)


@asynccontextmanager
async def open_session(device: Optional[DeviceProfile] = None, headless: bool = True) -> AsyncIterator[PlaywrightSession]:
    device = device or DeviceProfile()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless, args=LAUNCH_ARGS)
        try:
            context = await browser.new_context(
                viewport=device.viewport,
                device_scale_factor=device.device_scale_factor,
                is_mobile=device.is_mobile,
                has_touch=device.has_touch,
                user_agent=device.user_agent,
            )
            page = await context.new_page()
            yield PlaywrightSession(page)
        finally:
            await browser.close()
