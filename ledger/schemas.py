"""Pydantic 스키마 -- 레저(JSONL) 레코드 직렬화.

필드 네이밍 규칙:
  - 파일에는 camelCase 키로 기록한다 (sizeDescriptor, dateMetadata ...).
  - 이전 스크립트가 남긴 로그 키(fileSize, metadataDate, targetDate, processed,
    free, notTakingSpace)도 읽을 수 있다. 다시 쓸 때는 새 키로 기록된다.
  - 모르는 키는 그대로 보존한다 (rewrite 후에도 유지).
  모든 시각: UTC ISO-8601, 밀리초 + 'Z' (예: 2026-01-14T10:02:10.191Z).
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


def format_instant(value: datetime) -> str:
    """UTC 밀리초 ISO 문자열 (JS Date.toISOString 과 동일한 모양)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Classification(str, Enum):
    FREE = "free"
    NON_FREE = "non-free"


# ── 공통 ──
class LedgerRecord(BaseModel):
    """모든 레저 레코드의 공통 필드."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    filename: str | None = None
    error: str | None = Field(default=None, description="마지막 액션 실패 메시지")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ── 사진 스캔 / 삭제 ──
class PhotoEntry(LedgerRecord):
    classification: Classification
    size_descriptor: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sizeDescriptor", "size_descriptor", "fileSize"),
        serialization_alias="sizeDescriptor",
    )
    quota_exempt: bool = Field(
        default=False,
        validation_alias=AliasChoices("quotaExempt", "quota_exempt", "notTakingSpace"),
        serialization_alias="quotaExempt",
        description="'doesn't take up space' 문구 노출 여부 (분류 기준 아님)",
    )
    date_taken: str | None = Field(
        default=None,
        validation_alias=AliasChoices("dateTaken", "date_taken"),
        serialization_alias="dateTaken",
    )
    dimensions: str | None = None
    downloaded: bool = False
    deleted: bool = False

    @model_validator(mode="before")
    @classmethod
    def _legacy_free_flag(cls, data):
        # 예전 로그는 classification 대신 free: bool 을 기록했다
        if not isinstance(data, dict):
            return data
        data = dict(data)
        free = data.pop("free", None)
        if "classification" not in data:
            if free is None:
                size = next(
                    (data[k] for k in ("sizeDescriptor", "size_descriptor", "fileSize") if k in data),
                    None,
                )
                free = size is None
            data["classification"] = Classification.FREE if free else Classification.NON_FREE
        for key in ("downloaded", "deleted", "quotaExempt", "notTakingSpace"):
            if key in data and data[key] is None:
                data[key] = False
        return data

    @model_validator(mode="after")
    def _size_iff_non_free(self):
        if (self.classification is Classification.NON_FREE) != (self.size_descriptor is not None):
            raise ValueError(
                f"sizeDescriptor must be present iff non-free "
                f"(classification={self.classification.value}, sizeDescriptor={self.size_descriptor!r})"
            )
        return self


# ── 날짜 스캔 / 보정 ──
class DateEntry(LedgerRecord):
    date_metadata: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("dateMetadata", "date_metadata", "metadataDate"),
        serialization_alias="dateMetadata",
    )
    date_from_name: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("dateFromName", "date_from_name", "filenameDate"),
        serialization_alias="dateFromName",
    )
    correction_target: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("correctionTarget", "correction_target", "targetDate"),
        serialization_alias="correctionTarget",
    )
    applied: bool = Field(
        default=False,
        validation_alias=AliasChoices("applied", "processed"),
        serialization_alias="applied",
    )

    @field_validator("applied", mode="before")
    @classmethod
    def _none_is_false(cls, value):
        return False if value is None else value

    @field_validator("date_metadata", "date_from_name", "correction_target")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @field_serializer("date_metadata", "date_from_name", "correction_target")
    def _serialize_instant(self, value: datetime | None) -> str | None:
        return format_instant(value) if value is not None else None
