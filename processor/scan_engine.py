"""Sequential scan engine -- one cursor over the library, one ledger line per item.

States: Positioning -> Extracting -> StallCheck -> Acting -> Advancing -> Extracting ...
Only a confirmed stall (the cursor does not move after the bounded retries)
ends the run, by raising NavigationStalled. The run is then restarted with a
fresh browser session and re-enters through the checkpoint resolver
(processor.supervisor, or an external restart on exit code 75).
"""

from __future__ import annotations

import asyncio
from collections import Counter, deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from crawler.page_driver import DriverError, ItemAttributes, PageDriver, same_item
from processor.checkpoint import ResumeTarget, position
from processor.config import ProcessorSettings, processor_settings

if TYPE_CHECKING:
    from processor.scan_handlers import ItemHandler

# EX_TEMPFAIL: supervisor should restart the process
EXIT_STALLED = 75


class NavigationStalled(Exception):
    """Cursor did not advance (or the item could not be read) after all retries."""

    def __init__(self, message: str, last_seen: ItemAttributes | None = None, attempts: int = 0):
        super().__init__(message)
        self.last_seen = last_seen
        self.attempts = attempts


class RecentIds:
    """Membership over the last ``maxlen`` ids added; older ids are forgotten."""

    def __init__(self, maxlen: int, initial: Iterable[str] = ()):
        if maxlen < 1:
            raise ValueError(f"maxlen must be >= 1, got {maxlen}")
        self.maxlen = maxlen
        self._order: deque[str] = deque()
        self._ids: set[str] = set()
        for item_id in initial:
            self.add(item_id)

    def add(self, item_id: str) -> None:
        if item_id in self._ids:
            return
        self._order.append(item_id)
        self._ids.add(item_id)
        if len(self._order) > self.maxlen:
            self._ids.discard(self._order.popleft())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class ScanStats:
    processed: int = 0
    counts: Counter = field(default_factory=Counter)

    def summary(self) -> str:
        parts = [f"{self.processed} processed"]
        parts += [f"{n} {k}" for k, n in sorted(self.counts.items())]
        return ", ".join(parts)


class ScanEngine:
    def __init__(
        self,
        driver: PageDriver,
        handler: ItemHandler,
        settings: ProcessorSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.driver = driver
        self.handler = handler
        self.settings = settings or processor_settings
        self._sleep = sleep
        self._stop_requested = False
        self.stats = ScanStats(counts=handler.counts)

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self) -> None:
        """Finish the current item, then return (SIGINT/SIGTERM)."""
        self._stop_requested = True

    async def run(self, target: ResumeTarget, limit: int | None = None) -> ScanStats:
        s = self.settings

        # ── Positioning ──
        await position(self.driver, target)
        await self._sleep(s.advance_settle_sec)
        logger.info("[scan] positioned ({}), handler={}", target.source, self.handler.name)

        previous: ItemAttributes | None = None
        # 앵커는 이미 기록된 아이템. 최근 seen_window 개 id 만 기억
        anchor = [target.item_id] if target.item_id and target.advance else []
        seen = RecentIds(s.seen_window, anchor)

        def revisited(attrs: ItemAttributes) -> bool:
            if previous is not None and same_item(previous, attrs):
                return True
            return attrs.id is not None and attrs.id in seen

        while not self._stop_requested and (limit is None or self.stats.processed < limit):
            # ── Extracting ──
            current = await self._extract()

            # ── StallCheck ──
            if revisited(current):
                current = await self._wait_for_move(revisited, current)

            # ── Acting ──
            cursor_moved = await self.handler.handle(current)
            self.stats.processed += 1

            # ── Advancing ──
            if not cursor_moved:
                await self._advance()
            await self._sleep(s.advance_settle_sec)
            previous = current
            if current.id:
                seen.add(current.id)

        logger.info("[scan] done: {}", self.stats.summary())
        return self.stats

    async def _extract(self) -> ItemAttributes:
        s = self.settings
        for attempt in range(1, s.stall_max_retries + 1):
            try:
                return await self.driver.current_attributes()
            except DriverError as e:
                if attempt == s.stall_max_retries:
                    raise NavigationStalled(
                        f"item not readable after {attempt} attempts: {e}", attempts=attempt,
                    ) from e
                delay = s.stall_base_delay_sec * attempt
                logger.warning("[scan] extract failed ({}/{}), wait {:.1f}s: {}", attempt, s.stall_max_retries, delay, e)
                await self._sleep(delay)
        raise NavigationStalled("stall_max_retries must be >= 1")

    async def _wait_for_move(
        self,
        stuck: Callable[[ItemAttributes], bool],
        current: ItemAttributes,
    ) -> ItemAttributes:
        s = self.settings
        for attempt in range(1, s.stall_max_retries + 1):
            if attempt > 1:
                await self._advance()
            delay = s.stall_base_delay_sec * attempt
            logger.warning(
                "[scan] cursor unchanged ({}), retry {}/{} in {:.1f}s",
                current.id or current.filename, attempt, s.stall_max_retries, delay,
            )
            await self._sleep(delay)
            current = await self._extract()
            if not stuck(current):
                return current

        logger.error("[scan] stuck after {} retries at {}", s.stall_max_retries, current.id or current.filename)
        raise NavigationStalled(
            f"cursor stuck at {current.id or current.filename}",
            last_seen=current,
            attempts=s.stall_max_retries,
        )

    async def _advance(self) -> None:
        try:
            await self.driver.send_next()
        except DriverError as e:
            # 다음 회차 StallCheck 가 처리
            logger.warning("[scan] next failed: {}", e)
