"""Download retry sweep -- fetch non-free items whose download failed during the scan.

Works from the ledger only, like the delete sweep: the scan checkpoint moves
past failed items, so this pass visits each one directly by id. A success
makes the item eligible for the delete sweep.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable

from loguru import logger

from crawler.page_driver import DriverError, PageDriver
from ledger.schemas import PhotoEntry
from ledger.store import Ledger
from processor.classifier import select_for_download
from processor.config import ProcessorSettings, processor_settings


async def run_download_sweep(
    driver: PageDriver,
    ledger: Ledger[PhotoEntry],
    settings: ProcessorSettings | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    limit: int | None = None,
) -> Counter:
    s = settings or processor_settings
    counts: Counter = Counter()

    entries = ledger.read_all()
    targets = select_for_download(entries)
    if limit is not None:
        targets = targets[:limit]
    if not targets:
        logger.info("[download] 재시도 대상 없음")
        return counts

    logger.info(f"[download] {len(targets)}건 다운로드 재시도 ({ledger.path.name})")

    for n, idx in enumerate(targets, start=1):
        entry = entries[idx]
        label = entry.filename or entry.id
        try:
            await driver.goto_item(entry.id)
            path = await driver.download()
        except DriverError as e:
            entry.error = f"download failed: {e}"
            counts["failed"] += 1
            logger.error(f"[download] ({n}/{len(targets)}) 실패 {label}: {e}")
        else:
            entry.downloaded = True
            entry.error = None
            counts["downloaded"] += 1
            logger.info(f"[download] ({n}/{len(targets)}) {label} -> {path.name}")

        ledger.rewrite(entries)
        await sleep(s.inter_item_delay_sec)

    logger.info(f"[download] 완료: {counts['downloaded']}건 성공, {counts['failed']}건 실패")
    return counts
