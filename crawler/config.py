"""페이지 드라이버 전역 설정."""

from pydantic_settings import BaseSettings


class CrawlerSettings(BaseSettings):
    # 브라우저 연결 (이미 로그인된 Chrome, --remote-debugging-port)
    cdp_url: str = "http://localhost:9223"
    base_url: str = "https://photos.google.com"

    # 다운로드
    download_dir: str = "google-photos-downloads"
    download_timeout_ms: int = 5 * 60 * 1000

    # 타임아웃
    page_timeout_ms: int = 30_000
    navigation_timeout_ms: int = 15_000
    element_timeout_ms: int = 5_000
    dialog_timeout_ms: int = 10_000

    # Info 패널 폴링 (5회 x 500ms)
    panel_poll_attempts: int = 5
    panel_poll_interval_ms: int = 500

    # 대기
    navigation_settle_ms: int = 1_000
    extract_settle_ms: int = 500
    field_input_pause_ms: int = 200

    # 삭제 재시도
    delete_max_retries: int = 2
    delete_retry_delay_ms: int = 1_000

    model_config = {"env_prefix": "CRAWLER_"}


crawler_settings = CrawlerSettings()
