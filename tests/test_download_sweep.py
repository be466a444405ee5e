import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from conftest import FakePageDriver, make_item
from ledger import photo_ledger
from ledger.schemas import Classification, PhotoEntry
from processor.classifier import select_for_delete
from processor.download_sweep import run_download_sweep


def _seed(ledger):
    def non_free(item_id, downloaded=False, deleted=False, error=None):
        return PhotoEntry(id=item_id, filename=f"{item_id}.jpg", classification=Classification.NON_FREE,
                          size_descriptor="1 MB", downloaded=downloaded, deleted=deleted, error=error)

    ledger.append(non_free("a", downloaded=True))
    ledger.append(non_free("b", error="download failed: download did not start"))
    ledger.append(PhotoEntry(id="c", filename="c.jpg", classification=Classification.FREE))
    ledger.append(non_free("d", downloaded=True, deleted=True))
    ledger.append(non_free("e", error="download failed: timeout"))


@pytest.mark.asyncio
async def test_sweep_retries_failed_downloads_only(tmp_path, settings, sleep):
    ledger = photo_ledger(tmp_path / "photos.jsonl")
    _seed(ledger)
    driver = FakePageDriver([make_item(x, size="1 MB") for x in "abce"])

    counts = await run_download_sweep(driver, ledger, settings=settings, sleep=sleep)

    assert driver.downloads == ["b", "e"]
    assert counts == {"downloaded": 2}
    entries = ledger.read_all()
    assert [e.downloaded for e in entries] == [True, True, False, True, True]
    assert [e.error for e in entries] == [None] * 5
    # 다운로드가 끝나면 삭제 스윕 대상이 된다
    assert select_for_delete(entries) == [0, 1, 4]


@pytest.mark.asyncio
async def test_failed_retry_stays_eligible(tmp_path, settings, sleep):
    ledger = photo_ledger(tmp_path / "photos.jsonl")
    _seed(ledger)
    driver = FakePageDriver([make_item(x, size="1 MB") for x in "abce"])
    driver.fail_download = {"b"}

    counts = await run_download_sweep(driver, ledger, settings=settings, sleep=sleep)
    assert counts == {"failed": 1, "downloaded": 1}
    b = ledger.read_all()[1]
    assert b.downloaded is False
    assert b.error == "download failed: download did not start"

    driver.fail_download = set()
    await run_download_sweep(driver, ledger, settings=settings, sleep=sleep)
    b = ledger.read_all()[1]
    assert b.downloaded is True
    assert b.error is None
    assert driver.downloads == ["e", "b"]


@pytest.mark.asyncio
async def test_item_missing_remotely_is_recorded(tmp_path, settings, sleep):
    ledger = photo_ledger(tmp_path / "photos.jsonl")
    _seed(ledger)
    driver = FakePageDriver([make_item("e", size="1 MB")])

    counts = await run_download_sweep(driver, ledger, settings=settings, sleep=sleep)
    assert counts == {"failed": 1, "downloaded": 1}
    assert "no such item" in ledger.read_all()[1].error


@pytest.mark.asyncio
async def test_nothing_to_retry(tmp_path, settings, sleep):
    ledger = photo_ledger(tmp_path / "photos.jsonl")
    ledger.append(PhotoEntry(id="c", filename="c.jpg", classification=Classification.FREE))
    before = (tmp_path / "photos.jsonl").read_text(encoding="utf-8")
    driver = FakePageDriver([])

    counts = await run_download_sweep(driver, ledger, settings=settings, sleep=sleep)

    assert not counts
    assert driver.calls == []
    assert (tmp_path / "photos.jsonl").read_text(encoding="utf-8") == before


@pytest.mark.asyncio
async def test_limit(tmp_path, settings, sleep):
    ledger = photo_ledger(tmp_path / "photos.jsonl")
    _seed(ledger)
    driver = FakePageDriver([make_item(x, size="1 MB") for x in "abce"])

    await run_download_sweep(driver, ledger, settings=settings, sleep=sleep, limit=1)
    assert driver.downloads == ["b"]
    assert ledger.read_all()[4].downloaded is False
