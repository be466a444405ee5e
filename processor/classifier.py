"""Item classifier -- pure decision logic, no I/O.

The size descriptor is the only quota signal: an item is free iff the info
panel shows no size. The "doesn't take up space" flag is recorded on the
ledger entry but does not change the decision.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from crawler.page_driver import ItemAttributes
from ledger.schemas import Classification, DateEntry, PhotoEntry


class Action(str, Enum):
    LOG_ONLY = "log_only"
    DOWNLOAD = "download"
    DOWNLOAD_AND_DELETE = "download_and_delete"


def classify(attributes: ItemAttributes) -> Classification:
    if attributes.size_descriptor is None:
        return Classification.FREE
    return Classification.NON_FREE


def plan_action(attributes: ItemAttributes, inline_delete: bool = False) -> Action:
    if classify(attributes) is Classification.FREE:
        return Action.LOG_ONLY
    return Action.DOWNLOAD_AND_DELETE if inline_delete else Action.DOWNLOAD


def is_download_candidate(entry: PhotoEntry) -> bool:
    return (
        bool(entry.id)
        and entry.classification is Classification.NON_FREE
        and not entry.downloaded
        and not entry.deleted
    )


def select_for_download(entries: Sequence[PhotoEntry]) -> list[int]:
    """Indices of non-free entries whose download failed or never ran."""
    return [i for i, entry in enumerate(entries) if is_download_candidate(entry)]


def is_delete_candidate(entry: PhotoEntry) -> bool:
    return bool(entry.id) and entry.downloaded and not entry.deleted


def select_for_delete(entries: Sequence[PhotoEntry]) -> list[int]:
    """Indices of entries that are downloaded but not yet moved to trash."""
    return [i for i, entry in enumerate(entries) if is_delete_candidate(entry)]


def is_correction_candidate(entry: DateEntry) -> bool:
    return bool(entry.id) and entry.correction_target is not None and not entry.applied


def select_for_correction(entries: Sequence[DateEntry]) -> list[int]:
    return [i for i, entry in enumerate(entries) if is_correction_candidate(entry)]
