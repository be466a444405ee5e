"""Per-item workflow actions run by the scan engine.

Each handler appends exactly one ledger entry per item it is given. Action
failures land in the entry's ``error`` field with the matching flag left false,
so the item stays eligible for a later sweep; they never stop the scan.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Callable

from loguru import logger

from crawler.page_driver import DriverError, ItemAttributes, PageDriver
from ledger.schemas import DateEntry, LedgerRecord, PhotoEntry
from ledger.store import Ledger
from processor.checkpoint import any_logged, not_deleted
from processor.classifier import Action, classify, plan_action
from processor.config import ProcessorSettings, processor_settings
from processor.filename_dates import parse_filename_date
from processor.metadata_dates import parse_metadata_date


class ItemHandler(ABC):
    name = "base"

    def __init__(self, driver: PageDriver, ledger: Ledger):
        self.driver = driver
        self.ledger = ledger
        self.counts: Counter = Counter()

    @property
    def checkpoint_eligible(self) -> Callable[[LedgerRecord], bool]:
        """Which ledger entries may serve as the resume anchor for this workflow."""
        return any_logged

    @abstractmethod
    async def handle(self, attributes: ItemAttributes) -> bool:
        """Act on the item and log it. Returns True if the UI already moved to the next item."""


class DownloadHandler(ItemHandler):
    """Classify; download non-free items."""

    name = "download"
    inline_delete = False

    async def handle(self, attributes: ItemAttributes) -> bool:
        action = plan_action(attributes, inline_delete=self.inline_delete)
        entry = PhotoEntry(
            id=attributes.id,
            filename=attributes.filename,
            classification=classify(attributes),
            size_descriptor=attributes.size_descriptor,
            quota_exempt=attributes.quota_exempt,
            date_taken=attributes.dates.display,
            dimensions=attributes.dimensions,
        )
        label = attributes.filename or attributes.id

        if action is Action.LOG_ONLY:
            logger.info("[scan] free     {}", label)
            self.counts["free"] += 1
            self.ledger.append(entry)
            return False

        self.counts["non-free"] += 1
        try:
            path = await self.driver.download()
            entry.downloaded = True
            self.counts["downloaded"] += 1
            logger.info("[scan] download {} ({}) -> {}", label, attributes.size_descriptor, path.name)
        except DriverError as e:
            entry.error = f"download failed: {e}"
            self.counts["failed"] += 1
            logger.error("[scan] download failed {}: {}", label, e)

        moved = False
        if action is Action.DOWNLOAD_AND_DELETE and entry.downloaded:
            moved = await self._delete(entry, label)

        self.ledger.append(entry)
        return moved

    async def _delete(self, entry: PhotoEntry, label: str | None) -> bool:
        if not entry.id:
            # id 없는 아이템은 원격 변경하지 않는다
            logger.warning("[scan] no id for {}, delete skipped", label)
            return False
        try:
            await self.driver.request_delete()
        except DriverError as e:
            entry.error = f"delete failed: {e}"
            self.counts["failed"] += 1
            logger.error("[scan] delete failed {}: {}", label, e)
            return False
        entry.deleted = True
        self.counts["deleted"] += 1
        logger.info("[scan] trashed  {}", label)
        # 휴지통 이동 후 뷰어가 자동으로 다음 아이템을 연다
        return True


class TriageHandler(DownloadHandler):
    """Download non-free items and move them to trash in the same pass."""

    name = "triage"
    inline_delete = True

    @property
    def checkpoint_eligible(self) -> Callable[[LedgerRecord], bool]:
        return not_deleted


class DateScanHandler(ItemHandler):
    """Record displayed capture date and the filename-derived date."""

    name = "dates"

    def __init__(self, driver: PageDriver, ledger: Ledger, settings: ProcessorSettings | None = None):
        super().__init__(driver, ledger)
        self.settings = settings or processor_settings

    async def handle(self, attributes: ItemAttributes) -> bool:
        s = self.settings
        entry = DateEntry(
            id=attributes.id,
            filename=attributes.filename,
            date_metadata=parse_metadata_date(attributes.dates, display_timezone=s.display_timezone),
            date_from_name=parse_filename_date(attributes.filename, timezone=s.filename_timezone),
        )
        self.ledger.append(entry)

        self.counts["with-metadata"] += entry.date_metadata is not None
        self.counts["with-name-date"] += entry.date_from_name is not None
        logger.info(
            "[scan] dates    {} meta={} name={}",
            attributes.filename or attributes.id,
            entry.date_metadata.isoformat() if entry.date_metadata else "-",
            entry.date_from_name.isoformat() if entry.date_from_name else "-",
        )
        return False
