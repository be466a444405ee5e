"""페이지 드라이버 인터페이스 -- 스캔 엔진/날짜 보정이 사용하는 원격 UI 기능 목록.

코어는 이 인터페이스만 알고, 실제 셀렉터/키 입력은 구현체(google_photos.py)가 담당.
모든 실패는 DriverError 로 올라온다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class DriverError(Exception):
    """페이지 드라이버 동작 실패 (타임아웃, 요소 없음, 다이얼로그 실패 등)."""


@dataclass(frozen=True)
class DateFields:
    """Info 패널에 표시된 촬영일 원문 그대로."""

    date_text: str | None = None  # "Aug 26, 2024", "Jan 14", "Today"
    time_text: str | None = None  # "Mon, 8:38 PM"
    timezone_text: str | None = None  # "GMT+03:00"

    @property
    def display(self) -> str | None:
        parts = [p for p in (self.date_text, self.time_text, self.timezone_text) if p]
        return " ".join(parts) if parts else None


@dataclass(frozen=True)
class ItemAttributes:
    """현재 커서가 가리키는 아이템의 표시 속성.

    size_descriptor 가 있으면 저장 용량을 차지하는 아이템이다.
    """

    id: str | None
    filename: str | None
    size_descriptor: str | None = None
    quota_exempt: bool = False
    dates: DateFields = DateFields()
    dimensions: str | None = None

    def fingerprint(self) -> str:
        """id 가 없을 때 쓰는 합성 식별자."""
        return "|".join([
            self.filename or "",
            self.size_descriptor or "",
            self.dates.display or "",
            self.dimensions or "",
        ])


def same_item(prev: ItemAttributes, curr: ItemAttributes) -> bool:
    """이전/현재가 같은 아이템이면 True (커서가 움직이지 않음).

    id 가 둘 다 있으면 id 로만 판단하고, 하나라도 없을 때만 속성 지문으로 비교한다.
    """
    if prev.id is not None and curr.id is not None:
        return prev.id == curr.id
    return prev.fingerprint() == curr.fingerprint()


@dataclass(frozen=True)
class DateComponents:
    """날짜 편집 다이얼로그 입력값 (12시간제, 0 패딩 문자열)."""

    year: str
    month: str
    day: str
    hour: str
    minute: str
    ampm: str  # "AM" | "PM"

    def __str__(self) -> str:
        return f"{self.year}-{self.month}-{self.day} {self.hour}:{self.minute} {self.ampm}"


class PageDriver(ABC):
    """원격 사진 라이브러리 UI 커서 하나."""

    @abstractmethod
    async def goto_item(self, item_id: str) -> None:
        """아이템 상세 화면으로 직접 이동."""

    @abstractmethod
    async def goto_library_root(self) -> None:
        """라이브러리 기본 정렬의 첫 아이템을 연다."""

    @abstractmethod
    async def current_attributes(self) -> ItemAttributes:
        """현재 아이템 속성 추출. 필드 단위 실패는 None 으로 강등."""

    @abstractmethod
    async def send_next(self) -> None:
        """다음 아이템으로 커서 이동 (키 입력 한 번)."""

    @abstractmethod
    async def download(self) -> Path:
        """현재 아이템 원본 다운로드, 로컬 경로 반환."""

    @abstractmethod
    async def request_delete(self) -> None:
        """현재 아이템을 휴지통으로 이동하고 완료를 확인."""

    @abstractmethod
    async def write_date_fields(self, components: DateComponents) -> None:
        """현재 아이템의 촬영일을 편집 다이얼로그로 저장."""

    @abstractmethod
    async def read_removed_item(self, item_id: str) -> ItemAttributes:
        """휴지통 화면에서 삭제된 아이템 속성 읽기 (읽기 전용)."""
