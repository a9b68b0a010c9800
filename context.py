import logging

from playwright.async_api import async_playwright, Error as PlaywrightError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


class PlaywrightDriver:
    def __init__(self, headless: bool = True):
        self._headless = headless
        self._play = None
        self._browser = None
        self.page = None

    async def start(self):
        self._play = await async_playwright().start()
        self._browser = await self._play.chromium.launch(headless=self._headless)
        self.page = await self._browser.new_page()

    async def stop(self):
        if self._browser:
            await self._browser.close()
            logger.info("Browser closed.")
        if self._play:
            await self._play.stop()

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1.2, min=1, max=8),
        retry=retry_if_exception_type(PlaywrightError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def goto(self, url: str, wait_until: str = "domcontentloaded"):
        logger.info("Navigating to %s", url)
        await self.page.goto(url, wait_until=wait_until)

    async def describe(self):
        return {"url": self.page.url, "title": await self.page.title()}
