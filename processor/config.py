"""스캔/날짜 보정 처리 설정."""

from pathlib import Path

from pydantic_settings import BaseSettings


class ProcessorSettings(BaseSettings):
    # 레저 파일
    data_dir: str = "data"
    photo_ledger: str = "photos.jsonl"
    date_ledger: str = "dates.jsonl"

    # 정체(stall) 감지: 5회, 회차마다 5초씩 증가
    stall_max_retries: int = 5
    stall_base_delay_sec: float = 5.0
    # 재방문 판정에 기억할 최근 id 개수
    seen_window: int = 1000

    # 커서 이동 후 대기
    advance_settle_sec: float = 0.5
    inter_item_delay_sec: float = 1.0

    # 프로세스 재시작 (in-process supervisor 사용 시)
    max_restarts: int = 20
    restart_delay_sec: float = 10.0

    # 날짜 보정
    skew_threshold_hours: float = 8.0
    excluded_filename_prefixes: list[str] = ["BEST_OF_MONTH", "RECAP"]
    correction_utc_offset_hours: float = 3.0
    filename_timezone: str = "UTC"
    display_timezone: str = "UTC"
    verify_tolerance_sec: float = 60.0

    model_config = {"env_prefix": "TRIAGE_"}

    def photo_ledger_path(self) -> Path:
        return Path(self.data_dir) / self.photo_ledger

    def date_ledger_path(self) -> Path:
        return Path(self.data_dir) / self.date_ledger


processor_settings = ProcessorSettings()
