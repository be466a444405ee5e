"""브라우저 세션 -- 실행 중인 Chrome 에 CDP 로 붙어서 페이지 하나를 빌려온다.

프로세스당 세션 하나를 명시적으로 만들어 드라이버에 넘긴다 (전역 page 없음).
재시작 시에는 세션을 통째로 새로 만든다.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from crawler.config import CrawlerSettings, crawler_settings


class BrowserSession:
    """CDP 연결 + 다운로드 경로 설정 + 기본 타임아웃."""

    def __init__(self, settings: CrawlerSettings | None = None):
        self.settings = settings or crawler_settings
        self._playwright = None
        self._browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None

    # ── Lifecycle ──

    async def start(self) -> Page:
        s = self.settings
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.connect_over_cdp(s.cdp_url)

        # 사용자가 띄워둔 기존 컨텍스트/탭 재사용
        self.context = self._browser.contexts[0] if self._browser.contexts else await self._browser.new_context()
        self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
        self.context.set_default_timeout(s.page_timeout_ms)
        self.context.set_default_navigation_timeout(s.navigation_timeout_ms)

        download_dir = Path(s.download_dir).resolve()
        download_dir.mkdir(parents=True, exist_ok=True)
        cdp = await self.context.new_cdp_session(self.page)
        await cdp.send("Page.setDownloadBehavior", {
            "behavior": "allow",
            "downloadPath": str(download_dir),
        })

        logger.info(f"[session] CDP 연결 완료 ({s.cdp_url}), 다운로드 경로: {download_dir}")
        return self.page

    async def stop(self):
        """Playwright 만 정리. 사용자 Chrome 은 닫지 않는다."""
        if self._playwright:
            await self._playwright.stop()
        self._playwright = None
        self._browser = None
        self.context = None
        self.page = None
        logger.info("[session] 연결 해제")

    async def __aenter__(self) -> Page:
        return await self.start()

    async def __aexit__(self, *args):
        await self.stop()
