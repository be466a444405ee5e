"""Google Photos 페이지 드라이버 -- Playwright 로 상세 화면 Info 패널을 읽고 조작.

셀렉터는 2026-01 기준 photos.google.com 마크업.
UI 가 느리게 뜨는 경우가 많아 패널 폴링(5회 x 500ms) 후에만 'Open info' 클릭을 시도한다.
"""

from __future__ import annotations

import re
from pathlib import Path

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from crawler.config import CrawlerSettings, crawler_settings
from crawler.page_driver import DateComponents, DateFields, DriverError, ItemAttributes, PageDriver

_PHOTO_ID_RE = re.compile(r"/photo/([A-Za-z0-9_-]+)")
_FILE_SIZE_RE = re.compile(r"File size:\s*([\d.]+)\s*(KB|MB|GB|B)", re.IGNORECASE)
_BACKED_UP_RE = re.compile(r"Backed up\s*\([\d.]+\s*(KB|MB|GB|B)\)", re.IGNORECASE)
_BACKED_UP_SIZE_RE = re.compile(r"\(([\d.]+\s*(KB|MB|GB|B))\)", re.IGNORECASE)
_RECOVER_RE = re.compile(r"recover\s+([\d.]+)\s*(KB|MB|GB)", re.IGNORECASE)
_DIMENSIONS_RE = re.compile(r"^\d+\s*[×x]\s*\d+")
_LABEL_VALUE_RE = re.compile(r"^[^:]+:\s*(.+)$")

_NOT_TAKING_SPACE = "This item doesn't take up space in your account storage."

# 날짜 편집 다이얼로그 입력칸: (컨테이너 jsname, aria-label, DateComponents 필드)
_DATE_INPUTS = (
    ("A1zabe", "Year", "year"),
    ("byRamd", "Month", "month"),
    ("SSBzX", "Day", "day"),
    ("UJav8d", "Hour", "hour"),
    ("jtSTYe", "Minutes", "minute"),
)


class GooglePhotosDriver(PageDriver):
    """photos.google.com 상세 화면 드라이버."""

    def __init__(self, page: Page, settings: CrawlerSettings | None = None):
        self.page = page
        self.settings = settings or crawler_settings

    # ── 내비게이션 ──

    async def goto_item(self, item_id: str) -> None:
        await self._goto(f"{self.settings.base_url}/photo/{item_id}")

    async def goto_library_root(self) -> None:
        try:
            await self.page.goto(self.settings.base_url, wait_until="domcontentloaded")
            grid = self.page.locator('div[jsname="ni8Knc"]')
            await grid.wait_for(state="visible")
            first = grid.get_by_role("link", name=re.compile(r"^Photo -")).first
            await first.wait_for(state="visible")
            await first.click()
            await self.page.wait_for_timeout(self.settings.navigation_settle_ms)
        except PlaywrightError as e:
            raise DriverError(f"library grid not available: {e}") from e
        logger.info("[google-photos] 라이브러리 첫 사진 열기")

    async def send_next(self) -> None:
        try:
            await self.page.keyboard.press("ArrowRight")
        except PlaywrightError as e:
            raise DriverError(f"ArrowRight failed: {e}") from e

    async def _goto(self, url: str) -> None:
        try:
            await self.page.goto(url, wait_until="domcontentloaded")
            await self.page.wait_for_timeout(self.settings.navigation_settle_ms)
        except PlaywrightError as e:
            raise DriverError(f"navigation to {url} failed: {e}") from e

    # ── Info 패널 ──

    def _info_panel(self) -> Locator:
        heading = self.page.get_by_role("heading", name="Info")
        return self.page.locator("div.YW656b").filter(has=heading)

    async def _open_info_panel(self) -> Locator:
        s = self.settings
        panel = self._info_panel()

        for _ in range(s.panel_poll_attempts):
            if await _is_visible(panel):
                return panel
            await self.page.wait_for_timeout(s.panel_poll_interval_ms)

        # 폴링 실패 후에만 버튼 클릭 (첫 클릭이 패널을 닫는 경우가 있어 한 번 더)
        button = self.page.get_by_role("button", name="Open info")
        await button.wait_for(state="visible", timeout=s.element_timeout_ms)
        await button.click()
        await self.page.wait_for_timeout(300)
        if not await _is_visible(panel):
            logger.debug("[google-photos] Info 패널 미노출, 재클릭")
            await button.click()
            await self.page.wait_for_timeout(300)
        await panel.wait_for(state="visible", timeout=s.element_timeout_ms)
        return panel

    async def current_attributes(self) -> ItemAttributes:
        await self.page.wait_for_timeout(self.settings.extract_settle_ms)
        match = _PHOTO_ID_RE.search(self.page.url)
        item_id = match.group(1) if match else None
        return await self._read_attributes(item_id)

    async def read_removed_item(self, item_id: str) -> ItemAttributes:
        await self._goto(f"{self.settings.base_url}/trash/{item_id}")
        return await self._read_attributes(item_id)

    async def _read_attributes(self, item_id: str | None) -> ItemAttributes:
        try:
            panel = await self._open_info_panel()
            filename_el = panel.locator('div.R9U8ab[aria-label^="Filename: "]')
            await filename_el.wait_for(state="visible", timeout=self.settings.element_timeout_ms)
            filename = (await filename_el.text_content() or "").strip() or None
        except PlaywrightError as e:
            raise DriverError(f"info panel not readable: {e}") from e

        return ItemAttributes(
            id=item_id,
            filename=filename,
            size_descriptor=await self._file_size(panel),
            quota_exempt=await _is_visible(panel.locator("span").filter(has_text=_NOT_TAKING_SPACE).first),
            dates=await self._date_fields(panel),
            dimensions=await self._dimensions(panel),
        )

    async def _file_size(self, panel: Locator) -> str | None:
        try:
            size_el = panel.locator('[aria-label^="File size:"]')
            if await _is_visible(size_el):
                label = await size_el.get_attribute("aria-label") or ""
                m = _FILE_SIZE_RE.search(label)
                return f"{m.group(1)} {m.group(2)}" if m else None

            backed_up = panel.locator("span").filter(has_text=_BACKED_UP_RE).first
            if await _is_visible(backed_up):
                m = _BACKED_UP_SIZE_RE.search(await backed_up.text_content() or "")
                return m.group(1) if m else None
        except PlaywrightError as e:
            logger.debug(f"[google-photos] file size skip: {e}")
        return None

    async def _date_fields(self, panel: Locator) -> DateFields:
        try:
            date_el = panel.locator('div.R9U8ab[jsname="pG3jE"][aria-label^="Date taken:"]')
            if not await _is_visible(date_el):
                return DateFields()
            date_text = _label_value(await date_el.get_attribute("aria-label"))
            time_text = None
            time_el = panel.locator('span.sprMUb[aria-label^="Time taken:"]')
            if await _is_visible(time_el):
                time_text = _label_value(await time_el.get_attribute("aria-label"))
            tz_text = None
            tz_el = panel.locator('span.sprMUb[aria-label^="GMT"]')
            if await _is_visible(tz_el):
                tz_text = (await tz_el.get_attribute("aria-label") or "").strip() or None
            return DateFields(date_text=date_text, time_text=time_text, timezone_text=tz_text)
        except PlaywrightError as e:
            logger.debug(f"[google-photos] date skip: {e}")
            return DateFields()

    async def _dimensions(self, panel: Locator) -> str | None:
        try:
            dim_el = panel.locator('[aria-label*="dimension" i], [aria-label*="×" i], [aria-label*=" x " i]').first
            if await _is_visible(dim_el):
                label = await dim_el.get_attribute("aria-label")
                if label:
                    return " ".join(label.split())
            for node in await panel.locator('div.R9U8ab[aria-label*="0"]').all():
                label = await node.get_attribute("aria-label")
                if label and _DIMENSIONS_RE.match(label):
                    return label.strip()
        except PlaywrightError as e:
            logger.debug(f"[google-photos] dimensions skip: {e}")
        return None

    # ── 액션 ──

    async def download(self) -> Path:
        s = self.settings
        try:
            async with self.page.expect_download(timeout=s.download_timeout_ms) as download_info:
                await self.page.keyboard.press("Shift+D")
            download = await download_info.value
            failure = await download.failure()
            if failure:
                raise DriverError(f"download failed: {failure}")
            try:
                path = await download.path()
            except PlaywrightError:
                # CDP 다운로드 경로로 저장된 경우 경로 조회가 막힐 수 있음
                path = Path(s.download_dir) / download.suggested_filename
            await self.page.wait_for_timeout(1000)
        except PlaywrightError as e:
            raise DriverError(f"download failed: {e}") from e
        logger.debug(f"[google-photos] 다운로드: {path}")
        return Path(path)

    async def request_delete(self) -> None:
        s = self.settings
        last_error: Exception | None = None
        for attempt in range(1, s.delete_max_retries + 1):
            try:
                if attempt > 1:
                    logger.info(f"[google-photos] 삭제 재시도 {attempt}/{s.delete_max_retries}")
                    await self.page.wait_for_timeout(s.delete_retry_delay_ms)
                await self.page.get_by_role("button", name="Move to trash").click()
                await self._confirm_move_to_trash()
                return
            except PlaywrightError as e:
                last_error = e
                logger.warning(f"[google-photos] 삭제 시도 {attempt}/{s.delete_max_retries} 실패: {e}")
                if attempt < s.delete_max_retries:
                    await self._close_stray_dialog()
        raise DriverError(f"move to trash failed after {s.delete_max_retries} attempts: {last_error}")

    async def _confirm_move_to_trash(self) -> None:
        modal_text = self.page.locator("text=Remove from your Google Account")
        await modal_text.wait_for(state="visible")
        m = _RECOVER_RE.search(await modal_text.inner_text())
        if m:
            logger.info(f"[google-photos] 휴지통 이동, {m.group(1)} {m.group(2)} 확보")
        dialog = self.page.get_by_role("dialog")
        await dialog.get_by_role("button", name="Move to trash").click()
        await self.page.wait_for_selector("text=Moved to trash", timeout=self.settings.element_timeout_ms)

    async def _close_stray_dialog(self) -> None:
        await self.page.wait_for_timeout(self.settings.delete_retry_delay_ms)
        try:
            close = self.page.get_by_role("button", name=re.compile(r"close|cancel", re.IGNORECASE))
            if await _is_visible(close):
                await close.click()
                await self.page.wait_for_timeout(500)
        except PlaywrightError as e:
            logger.debug(f"[google-photos] dialog close skip: {e}")

    async def write_date_fields(self, components: DateComponents) -> None:
        s = self.settings
        try:
            panel = await self._open_info_panel()
            edit = panel.locator('div[jsname="sMyUPe"]')
            await edit.wait_for(state="visible", timeout=s.dialog_timeout_ms)
            button = edit.locator('div[jsaction="click:pRBiFd"]')
            await button.wait_for(state="visible", timeout=s.element_timeout_ms)
            await button.click()
            await self.page.wait_for_timeout(500)

            popup = self.page.locator('div.uW2Fw-P5QLlc.cPSYW[aria-modal="true"]')
            await popup.wait_for(state="visible", timeout=s.dialog_timeout_ms)

            for container, label, field in _DATE_INPUTS:
                field_input = self.page.locator(f'div[jsname="{container}"]').locator(
                    f'input[jsname="YPqjbf"][aria-label="{label}"]'
                )
                await self._fill(field_input, getattr(components, field))
            await self._fill(self.page.locator('input[jsname="nhrP1"][aria-label="AM/PM"]'), components.ampm)

            # 시간대 필드는 건드리지 않는다 (계정 표시 시간대 = 보정 오프셋 전제)
            save = self.page.locator('button[data-mdc-dialog-action="EBS5u"]')
            await save.wait_for(state="visible", timeout=s.element_timeout_ms)
            await save.click()
        except PlaywrightError as e:
            raise DriverError(f"date edit failed: {e}") from e

        try:
            await popup.wait_for(state="hidden", timeout=s.dialog_timeout_ms)
        except PlaywrightError:
            logger.debug("[google-photos] 편집 다이얼로그가 닫히지 않음, 추가 대기")
            await self.page.wait_for_timeout(2000)
        await self.page.wait_for_timeout(s.navigation_settle_ms)

    async def _fill(self, field_input: Locator, value: str) -> None:
        await field_input.wait_for(state="visible", timeout=self.settings.element_timeout_ms)
        await field_input.clear()
        await field_input.fill(value)
        await self.page.wait_for_timeout(self.settings.field_input_pause_ms)


async def _is_visible(locator: Locator) -> bool:
    try:
        return await locator.is_visible()
    except PlaywrightError:
        return False


def _label_value(label: str | None) -> str | None:
    """'Date taken: Aug 26, 2024' -> 'Aug 26, 2024'."""
    if not label:
        return None
    m = _LABEL_VALUE_RE.match(label.strip())
    return m.group(1).strip() if m else None
