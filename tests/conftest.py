"""공용 픽스처 -- 브라우저 없이 돌아가는 가짜 페이지 드라이버."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from crawler.page_driver import DateComponents, DateFields, DriverError, ItemAttributes, PageDriver
from processor.config import ProcessorSettings


def make_item(item_id, filename=None, size=None, date_text="Jan 14, 2026", time_text="Wed, 10:02 AM",
              timezone_text="GMT+00:00", dimensions="4000 x 3000", quota_exempt=False):
    return ItemAttributes(
        id=item_id,
        filename=filename or f"{item_id}.jpg",
        size_descriptor=size,
        quota_exempt=quota_exempt,
        dates=DateFields(date_text, time_text, timezone_text),
        dimensions=dimensions,
    )


class FakePageDriver(PageDriver):
    """라이브러리를 리스트로 흉내내는 드라이버.

    - send_next 는 커서를 한 칸 옮긴다. 마지막 아이템에서는 움직이지 않는다.
    - ignore_next 횟수만큼 send_next 를 무시한다 (UI 멈춤 재현).
    - request_delete 는 현재 아이템을 휴지통으로 옮기고, 커서는 다음 아이템을 가리킨다.
    """

    def __init__(self, items, trash=None):
        self.items = list(items)
        self.trash = {item.id: item for item in (trash or [])}
        self.cursor = 0
        self.ignore_next = 0
        self.fail_download = set()
        self.fail_delete = set()
        self.fail_extract = 0
        self.fail_write = set()
        self.calls = []
        self.extract_calls = 0
        self.downloads = []
        self.deleted = []
        self.written = {}

    @property
    def current(self):
        return self.items[self.cursor]

    async def goto_item(self, item_id):
        self.calls.append(("goto_item", item_id))
        for i, item in enumerate(self.items):
            if item.id == item_id:
                self.cursor = i
                return
        raise DriverError(f"no such item: {item_id}")

    async def goto_library_root(self):
        self.calls.append(("goto_library_root",))
        self.cursor = 0

    async def current_attributes(self):
        self.extract_calls += 1
        if self.fail_extract > 0:
            self.fail_extract -= 1
            raise DriverError("info panel did not open")
        return self.current

    async def send_next(self):
        self.calls.append(("send_next",))
        if self.ignore_next > 0:
            self.ignore_next -= 1
            return
        if self.cursor < len(self.items) - 1:
            self.cursor += 1

    async def download(self):
        item = self.current
        if item.id in self.fail_download:
            raise DriverError("download did not start")
        self.downloads.append(item.id)
        return Path("/tmp/downloads") / item.filename

    async def request_delete(self):
        item = self.current
        if item.id in self.fail_delete:
            raise DriverError("confirm dialog not found")
        self.deleted.append(item.id)
        self.trash[item.id] = self.items.pop(self.cursor)
        self.cursor = min(self.cursor, len(self.items) - 1)

    async def write_date_fields(self, components: DateComponents):
        item = self.current
        if item.id in self.fail_write:
            raise DriverError("date dialog did not open")
        self.written[item.id] = components

    async def read_removed_item(self, item_id):
        self.calls.append(("read_removed_item", item_id))
        if item_id not in self.trash:
            raise DriverError(f"not in trash: {item_id}")
        return self.trash[item_id]


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def settings(tmp_path):
    return ProcessorSettings(
        data_dir=str(tmp_path),
        stall_max_retries=5,
        stall_base_delay_sec=5.0,
        advance_settle_sec=0.0,
        inter_item_delay_sec=0.0,
        restart_delay_sec=0.0,
        filename_timezone="UTC",
        display_timezone="UTC",
    )


@pytest.fixture
def sleep():
    return SleepRecorder()
