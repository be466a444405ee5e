"""레저 집계 -- stats 명령용."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from ledger.schemas import Classification, DateEntry, PhotoEntry
from processor.classifier import is_correction_candidate, is_delete_candidate


def summarize_photos(entries: Iterable[PhotoEntry]) -> Counter:
    counts: Counter = Counter()
    for entry in entries:
        counts["total"] += 1
        counts[entry.classification.value] += 1
        counts["quota-exempt"] += entry.quota_exempt
        counts["downloaded"] += entry.downloaded
        counts["deleted"] += entry.deleted
        counts["errors"] += entry.error is not None
        counts["no-id"] += not entry.id
        counts["pending-delete"] += is_delete_candidate(entry)
        # 다운로드 대상인데 아직 못 받은 것
        counts["pending-download"] += (
            entry.classification is Classification.NON_FREE and not entry.downloaded and not entry.deleted
        )
    return counts


def summarize_dates(entries: Iterable[DateEntry]) -> Counter:
    counts: Counter = Counter()
    for entry in entries:
        counts["total"] += 1
        counts["with-metadata"] += entry.date_metadata is not None
        counts["with-name-date"] += entry.date_from_name is not None
        counts["with-target"] += entry.correction_target is not None
        counts["applied"] += entry.applied
        counts["pending-apply"] += is_correction_candidate(entry)
        counts["errors"] += entry.error is not None
    return counts


def format_counts(title: str, counts: Counter) -> str:
    if not counts:
        return f"{title}: (empty)"
    width = max(len(k) for k in counts)
    lines = [f"{title}:"]
    lines += [f"  {key:<{width}}  {value}" for key, value in counts.items()]
    return "\n".join(lines)
