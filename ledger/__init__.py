"""Ledger bootstrap: typed JSONL stores for each workflow."""

from pathlib import Path

from ledger.schemas import Classification, DateEntry, LedgerRecord, PhotoEntry
from ledger.store import Ledger


def photo_ledger(path: str | Path) -> Ledger[PhotoEntry]:
    return Ledger(path, PhotoEntry)


def date_ledger(path: str | Path) -> Ledger[DateEntry]:
    return Ledger(path, DateEntry)


__all__ = [
    "Classification",
    "DateEntry",
    "Ledger",
    "LedgerRecord",
    "PhotoEntry",
    "date_ledger",
    "photo_ledger",
]
