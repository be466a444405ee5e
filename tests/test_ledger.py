"""JSONL 레저 저장소 단위 테스트."""

import json
import sys
from datetime import UTC, datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ledger import date_ledger, photo_ledger
from ledger.schemas import Classification, DateEntry, PhotoEntry


def _free(item_id):
    return PhotoEntry(id=item_id, filename=f"{item_id}.jpg", classification=Classification.FREE)


def _non_free(item_id, **kwargs):
    return PhotoEntry(
        id=item_id, filename=f"{item_id}.jpg",
        classification=Classification.NON_FREE, size_descriptor="2.1 MB", **kwargs,
    )


def test_missing_file_reads_empty(tmp_path):
    assert photo_ledger(tmp_path / "photos.jsonl").read_all() == []


def test_append_writes_one_line_per_entry(tmp_path):
    path = tmp_path / "data" / "photos.jsonl"
    ledger = photo_ledger(path)
    ledger.append(_free("a"))
    ledger.append(_non_free("b", downloaded=True))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[1])["sizeDescriptor"] == "2.1 MB"
    assert path.read_text(encoding="utf-8").endswith("\n")

    entries = ledger.read_all()
    assert [e.id for e in entries] == ["a", "b"]
    assert entries[1].downloaded is True


def test_malformed_lines_skipped(tmp_path):
    path = tmp_path / "photos.jsonl"
    good = json.dumps(_free("a").to_record())
    bad_schema = json.dumps({"id": "x", "classification": "non-free"})  # size 없음
    path.write_text(
        "\n".join([good, "{not json", "", "[1, 2]", bad_schema, json.dumps(_free("b").to_record())]) + "\n",
        encoding="utf-8",
    )

    entries = photo_ledger(path).read_all()
    assert [e.id for e in entries] == ["a", "b"]


def test_truncated_last_line_does_not_hide_earlier_entries(tmp_path):
    path = tmp_path / "photos.jsonl"
    ledger = photo_ledger(path)
    ledger.append(_free("a"))
    with open(path, "a", encoding="utf-8") as f:
        f.write('{"id": "b", "classif')  # 기록 중 종료

    assert [e.id for e in ledger.read_all()] == ["a"]


def test_append_after_torn_line_starts_a_new_line(tmp_path):
    path = tmp_path / "photos.jsonl"
    ledger = photo_ledger(path)
    ledger.append(_free("a"))
    with open(path, "a", encoding="utf-8") as f:
        f.write('{"id": "b", "classif')  # 기록 중 종료
    ledger.append(_free("c"))

    assert [e.id for e in ledger.read_all()] == ["a", "c"]
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[1] == '{"id": "b", "classif'
    assert json.loads(lines[2])["id"] == "c"


def test_rewrite_replaces_content_in_order(tmp_path):
    path = tmp_path / "photos.jsonl"
    ledger = photo_ledger(path)
    for item_id in ("a", "b", "c"):
        ledger.append(_non_free(item_id, downloaded=True))

    entries = ledger.read_all()
    entries[1].deleted = True
    ledger.rewrite(entries)

    reread = ledger.read_all()
    assert [e.id for e in reread] == ["a", "b", "c"]
    assert [e.deleted for e in reread] == [False, True, False]
    assert not (tmp_path / ".photos.jsonl.tmp").exists()


def test_unknown_keys_survive_rewrite(tmp_path):
    path = tmp_path / "photos.jsonl"
    record = _free("a").to_record()
    record["note"] = "keep me"
    path.write_text(json.dumps(record) + "\n", encoding="utf-8")

    ledger = photo_ledger(path)
    ledger.rewrite(ledger.read_all())
    assert json.loads(path.read_text(encoding="utf-8"))["note"] == "keep me"


def test_last_matching_scans_from_end(tmp_path):
    ledger = photo_ledger(tmp_path / "photos.jsonl")
    ledger.append(_non_free("a", downloaded=True))
    ledger.append(_non_free("b", downloaded=True, deleted=True))
    ledger.append(_free("c"))

    assert ledger.last_matching(lambda e: True).id == "c"
    assert ledger.last_matching(lambda e: e.classification is Classification.NON_FREE).id == "b"
    assert ledger.last_matching(lambda e: e.id == "zzz") is None


def test_date_entries_round_trip(tmp_path):
    path = tmp_path / "dates.jsonl"
    ledger = date_ledger(path)
    ledger.append(DateEntry(
        id="a", filename="PXL_20260114_100210191.jpg",
        date_metadata=datetime(2026, 1, 14, 18, 2, tzinfo=UTC),
        date_from_name=datetime(2026, 1, 14, 10, 2, 10, 191000, tzinfo=UTC),
    ))

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["dateFromName"] == "2026-01-14T10:02:10.191Z"
    assert raw["dateMetadata"] == "2026-01-14T18:02:00.000Z"
    assert raw["correctionTarget"] is None

    entry = ledger.read_all()[0]
    assert entry.date_from_name == datetime(2026, 1, 14, 10, 2, 10, 191000, tzinfo=UTC)
    assert entry.applied is False
