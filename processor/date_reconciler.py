"""Date reconciler -- find capture dates that drifted and write the right one back.

Batch passes over the date ledger (no scanning):

  1. backfill_filename_dates  -- fill ``dateFromName`` with every known filename
     pattern, for entries logged by an older parser.
  2. resolve_targets          -- for entries whose displayed date disagrees with
     the filename by the skew threshold or more (or that have no filename date),
     look up the id the same file had before its trash/restore cycle in the
     photo ledger, read that removed item's date and store it as
     ``correctionTarget``.
  3. apply_corrections        -- write each target back through the date edit
     dialog and mark the entry ``applied``.

The ledger is rewritten after every item; an interrupted pass resumes without
redoing finished items.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime, timedelta

from loguru import logger

from crawler.page_driver import DateComponents, DriverError, PageDriver
from ledger.schemas import DateEntry, PhotoEntry
from ledger.store import Ledger
from processor.classifier import select_for_correction
from processor.config import ProcessorSettings, processor_settings
from processor.filename_dates import parse_filename_date
from processor.metadata_dates import parse_metadata_date

Sleep = Callable[[float], Awaitable[None]]


# ── 순수 로직 ──

def skew_hours(a: datetime | None, b: datetime | None) -> float | None:
    """Absolute difference in hours, no calendar logic."""
    if a is None or b is None:
        return None
    diff_ms = abs((a - b) / timedelta(milliseconds=1))
    return diff_ms / 3_600_000


def backfill_filename_dates(entries: Sequence[DateEntry], timezone: str = "UTC") -> int:
    """Fill missing filename dates in place. Returns how many entries changed."""
    updated = 0
    for entry in entries:
        if entry.filename and entry.date_from_name is None:
            parsed = parse_filename_date(entry.filename, timezone=timezone)
            if parsed is not None:
                entry.date_from_name = parsed
                updated += 1
    return updated


def needs_reconciliation(entry: DateEntry, settings: ProcessorSettings | None = None) -> bool:
    s = settings or processor_settings
    if entry.applied or entry.correction_target is not None:
        return False
    if entry.filename and entry.filename.startswith(tuple(s.excluded_filename_prefixes)):
        return False
    if entry.date_from_name is None:
        return True
    skew = skew_hours(entry.date_from_name, entry.date_metadata)
    return skew is not None and skew >= s.skew_threshold_hours


def select_for_reconciliation(
    entries: Sequence[DateEntry],
    settings: ProcessorSettings | None = None,
) -> list[int]:
    return [i for i, entry in enumerate(entries) if needs_reconciliation(entry, settings)]


def index_previous_ids(photo_entries: Sequence[PhotoEntry]) -> dict[str, str]:
    """filename -> first id it was logged under in the photo ledger."""
    index: dict[str, str] = {}
    for entry in photo_entries:
        if entry.filename and entry.id and entry.filename not in index:
            index[entry.filename] = entry.id
    return index


def to_display_components(target: datetime, utc_offset_hours: float = 3.0) -> DateComponents:
    """UTC instant -> edit dialog fields in a fixed offset, 12-hour clock."""
    if target.tzinfo is None:
        target = target.replace(tzinfo=UTC)
    local = target.astimezone(UTC) + timedelta(hours=utc_offset_hours)

    hour = local.hour
    ampm = "PM" if hour >= 12 else "AM"
    if hour == 0:
        hour = 12
    elif hour > 12:
        hour -= 12

    return DateComponents(
        year=str(local.year),
        month=f"{local.month:02d}",
        day=f"{local.day:02d}",
        hour=f"{hour:02d}",
        minute=f"{local.minute:02d}",
        ampm=ampm,
    )


# ── 브라우저 패스 ──

async def resolve_targets(
    driver: PageDriver,
    date_ledger: Ledger[DateEntry],
    photo_ledger: Ledger[PhotoEntry],
    settings: ProcessorSettings | None = None,
    sleep: Sleep = asyncio.sleep,
) -> Counter:
    s = settings or processor_settings
    counts: Counter = Counter()

    entries = date_ledger.read_all()
    backfilled = backfill_filename_dates(entries, timezone=s.filename_timezone)
    if backfilled:
        date_ledger.rewrite(entries)
        logger.info(f"[dates] 파일명 날짜 보강 {backfilled}건")
    counts["backfilled"] = backfilled

    targets = select_for_reconciliation(entries, s)
    logger.info(f"[dates] 보정 후보 {len(targets)}건 / 전체 {len(entries)}건")
    if not targets:
        return counts

    previous_ids = index_previous_ids(photo_ledger.read_all())

    for idx in targets:
        entry = entries[idx]
        if not entry.filename or not entry.id:
            logger.debug(f"[dates] id/파일명 없음, 건너뜀: {entry.id or entry.filename}")
            counts["skipped"] += 1
            continue

        old_id = previous_ids.get(entry.filename)
        if not old_id:
            logger.info(f"[dates] 이전 id 없음: {entry.filename}")
            counts["no-previous-id"] += 1
            continue

        skew = skew_hours(entry.date_from_name, entry.date_metadata)
        logger.info(
            f"[dates] {entry.filename}: {old_id} -> {entry.id}, "
            f"skew={'N/A' if skew is None else f'{skew:.2f}h'}"
        )

        try:
            removed = await driver.read_removed_item(old_id)
        except DriverError as e:
            logger.error(f"[dates] 휴지통 조회 실패 {entry.filename}: {e}")
            counts["failed"] += 1
            continue

        target = parse_metadata_date(removed.dates, display_timezone=s.display_timezone)
        if target is None:
            logger.warning(f"[dates] 휴지통 날짜 없음/해석 불가: {entry.filename} ({removed.dates.display})")
            counts["failed"] += 1
            continue

        entry.correction_target = target
        date_ledger.rewrite(entries)
        counts["resolved"] += 1
        logger.info(f"[dates] correctionTarget {entry.filename} = {target.isoformat()}")
        await sleep(s.inter_item_delay_sec)

    return counts


async def verify_applied(
    driver: PageDriver,
    target: datetime,
    settings: ProcessorSettings | None = None,
) -> bool:
    """Read the date back after saving. Best effort; False never blocks ``applied``."""
    s = settings or processor_settings
    try:
        attributes = await driver.current_attributes()
    except DriverError as e:
        logger.debug(f"[dates] 확인용 재조회 실패: {e}")
        return False

    shown = parse_metadata_date(attributes.dates, display_timezone=s.display_timezone)
    if shown is None:
        return False
    return abs((shown - target).total_seconds()) <= s.verify_tolerance_sec


async def apply_corrections(
    driver: PageDriver,
    date_ledger: Ledger[DateEntry],
    settings: ProcessorSettings | None = None,
    sleep: Sleep = asyncio.sleep,
    limit: int | None = None,
) -> Counter:
    s = settings or processor_settings
    counts: Counter = Counter()

    entries = date_ledger.read_all()
    targets = select_for_correction(entries)
    if limit is not None:
        targets = targets[:limit]
    if not targets:
        logger.info("[dates] 적용할 보정 없음")
        return counts

    logger.info(f"[dates] {len(targets)}건 날짜 보정 시작 (UTC{s.correction_utc_offset_hours:+g})")

    for n, idx in enumerate(targets, start=1):
        entry = entries[idx]
        components = to_display_components(entry.correction_target, s.correction_utc_offset_hours)
        label = entry.filename or entry.id
        try:
            await driver.goto_item(entry.id)
            await driver.write_date_fields(components)
        except DriverError as e:
            entry.error = f"date write failed: {e}"
            counts["failed"] += 1
            logger.error(f"[dates] ({n}/{len(targets)}) 저장 실패 {label}: {e}")
        else:
            entry.applied = True
            entry.error = None
            counts["applied"] += 1
            logger.info(f"[dates] ({n}/{len(targets)}) {label} -> {components}")
            if not await verify_applied(driver, entry.correction_target, s):
                counts["unverified"] += 1
                logger.warning(f"[dates] 저장 후 날짜 확인 안 됨 (계속 진행): {label}")

        date_ledger.rewrite(entries)
        await sleep(s.inter_item_delay_sec)

    logger.info(f"[dates] 완료: {counts['applied']}건 적용, {counts['failed']}건 실패")
    return counts
