"""Checkpoint resolver -- where a resumed scan starts.

The last eligible ledger entry is the anchor. The scan navigates to it and
advances exactly one item, so the next item examined is the first one not yet
logged. Advancing further would skip unclassified items.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from crawler.page_driver import PageDriver
from ledger.schemas import LedgerRecord, PhotoEntry
from ledger.store import Ledger


@dataclass(frozen=True)
class ResumeTarget:
    item_id: str | None
    advance: bool
    source: str  # "explicit" | "ledger" | "fresh"

    @classmethod
    def fresh(cls) -> ResumeTarget:
        return cls(item_id=None, advance=False, source="fresh")

    @property
    def is_fresh(self) -> bool:
        return self.item_id is None


# ── 워크플로별 앵커 조건 ──

def any_logged(entry: LedgerRecord) -> bool:
    return True


def not_deleted(entry: PhotoEntry) -> bool:
    # 휴지통으로 간 아이템은 라이브러리에서 열 수 없다
    return not entry.deleted


def resolve(
    ledger: Ledger,
    explicit_start_id: str | None = None,
    eligible: Callable[[LedgerRecord], bool] = any_logged,
) -> ResumeTarget:
    if explicit_start_id:
        logger.info("[checkpoint] explicit start id: {}", explicit_start_id)
        return ResumeTarget(item_id=explicit_start_id, advance=True, source="explicit")

    anchor = ledger.last_matching(lambda e: bool(e.id) and eligible(e))
    if anchor is not None:
        logger.info("[checkpoint] resuming after {} ({})", anchor.id, anchor.filename)
        return ResumeTarget(item_id=anchor.id, advance=True, source="ledger")

    logger.info("[checkpoint] no usable entry in {}, starting fresh", ledger.path.name)
    return ResumeTarget.fresh()


async def position(driver: PageDriver, target: ResumeTarget) -> None:
    """Apply the resolver's instruction: anchor + one step, or the library's first item."""
    if target.is_fresh:
        await driver.goto_library_root()
        return
    await driver.goto_item(target.item_id)
    if target.advance:
        await driver.send_next()

