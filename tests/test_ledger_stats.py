import sys
from datetime import UTC, datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ledger.schemas import Classification, DateEntry, PhotoEntry
from processor.ledger_stats import format_counts, summarize_dates, summarize_photos


def test_summarize_photos():
    entries = [
        PhotoEntry(id="a", classification=Classification.FREE, quota_exempt=True),
        PhotoEntry(id="b", classification=Classification.NON_FREE, size_descriptor="1 MB", downloaded=True),
        PhotoEntry(id="c", classification=Classification.NON_FREE, size_descriptor="1 MB",
                   downloaded=True, deleted=True),
        PhotoEntry(id=None, classification=Classification.NON_FREE, size_descriptor="1 MB", error="download failed"),
    ]
    counts = summarize_photos(entries)
    assert counts["total"] == 4
    assert counts["free"] == 1
    assert counts["non-free"] == 3
    assert counts["quota-exempt"] == 1
    assert counts["downloaded"] == 2
    assert counts["deleted"] == 1
    assert counts["pending-delete"] == 1
    assert counts["pending-download"] == 1
    assert counts["no-id"] == 1
    assert counts["errors"] == 1


def test_summarize_dates():
    t = datetime(2026, 1, 14, tzinfo=UTC)
    counts = summarize_dates([
        DateEntry(id="a", date_metadata=t, date_from_name=t),
        DateEntry(id="b", date_metadata=t, correction_target=t),
        DateEntry(id="c", correction_target=t, applied=True),
    ])
    assert counts["total"] == 3
    assert counts["with-metadata"] == 2
    assert counts["with-target"] == 2
    assert counts["pending-apply"] == 1
    assert counts["applied"] == 1


def test_format_counts():
    assert format_counts("photos", summarize_photos([])) == "photos: (empty)"
    text = format_counts("dates", summarize_dates([DateEntry(id="a")]))
    assert text.splitlines()[0] == "dates:"
    assert "total" in text
