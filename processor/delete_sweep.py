"""Delete sweep -- move already downloaded items to trash.

Phase 2 of the two-phase workflow. Works from the ledger only (no scanning):
every entry with an id that was downloaded and is not yet deleted is visited
directly and trashed. The ledger is rewritten after each item so an interrupted
sweep resumes exactly where it stopped.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable

from loguru import logger

from crawler.page_driver import DriverError, PageDriver
from ledger.schemas import PhotoEntry
from ledger.store import Ledger
from processor.classifier import select_for_delete
from processor.config import ProcessorSettings, processor_settings


async def run_delete_sweep(
    driver: PageDriver,
    ledger: Ledger[PhotoEntry],
    settings: ProcessorSettings | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    limit: int | None = None,
) -> Counter:
    s = settings or processor_settings
    counts: Counter = Counter()

    entries = ledger.read_all()
    targets = select_for_delete(entries)
    if limit is not None:
        targets = targets[:limit]
    if not targets:
        logger.info("[delete] 삭제 대상 없음")
        return counts

    logger.info(f"[delete] {len(targets)}건 삭제 시작 ({ledger.path.name})")

    for n, idx in enumerate(targets, start=1):
        entry = entries[idx]
        label = entry.filename or entry.id
        try:
            await driver.goto_item(entry.id)
            await driver.request_delete()
        except DriverError as e:
            entry.error = f"delete failed: {e}"
            counts["failed"] += 1
            logger.error(f"[delete] ({n}/{len(targets)}) 실패 {label}: {e}")
        else:
            entry.deleted = True
            entry.error = None
            counts["deleted"] += 1
            logger.info(f"[delete] ({n}/{len(targets)}) 휴지통 이동 {label}")

        ledger.rewrite(entries)
        await sleep(s.inter_item_delay_sec)

    logger.info(f"[delete] 완료: {counts['deleted']}건 삭제, {counts['failed']}건 실패")
    return counts
