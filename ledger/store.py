"""Append-only JSONL ledger, generic over the record schema.

One file per workflow: work queue, audit trail and restart checkpoint in one.
Every append is fsynced; a rewrite replaces the file atomically.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Generic, TypeVar

from loguru import logger
from pydantic import ValidationError

from ledger.schemas import LedgerRecord

RecordT = TypeVar("RecordT", bound=LedgerRecord)


class Ledger(Generic[RecordT]):
    """Line-delimited JSON record store for one record type."""

    def __init__(self, path: str | Path, record_type: type[RecordT]):
        self.path = Path(path)
        self.record_type = record_type

    def __repr__(self) -> str:
        return f"Ledger({str(self.path)!r}, {self.record_type.__name__})"

    @staticmethod
    def _serialize(entry: LedgerRecord) -> str:
        return json.dumps(entry.to_record(), ensure_ascii=False) + "\n"

    def append(self, entry: RecordT) -> None:
        """Append one record and fsync, so a crash loses at most the in-flight item."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = self._serialize(entry).encode("utf-8")
        with open(self.path, "a+b") as f:
            # 중단된 마지막 줄 뒤에 이어 쓰지 않는다
            if f.seek(0, os.SEEK_END) > 0:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    data = b"\n" + data
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

    def read_all(self) -> list[RecordT]:
        """All valid records in write order. Malformed lines are skipped."""
        if not self.path.exists():
            return []

        entries: list[RecordT] = []
        with open(self.path, encoding="utf-8") as f:
            for lineno, raw in enumerate(f, start=1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    entries.append(self.record_type.model_validate(json.loads(raw)))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning(
                        "[ledger] {}:{} malformed record skipped: {}",
                        self.path.name, lineno, str(e).splitlines()[0],
                    )
        return entries

    def rewrite(self, entries: Iterable[RecordT]) -> None:
        """Replace the whole ledger (write temp file, fsync, rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            for entry in entries:
                f.write(self._serialize(entry))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    def last_matching(self, predicate: Callable[[RecordT], bool]) -> RecordT | None:
        for entry in reversed(self.read_all()):
            if predicate(entry):
                return entry
        return None
