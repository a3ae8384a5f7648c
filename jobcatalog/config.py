from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote


@dataclass
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./db/jobs.db")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    job_board_base_url: str = os.getenv("JOB_BOARD_BASE_URL", "https://au.jora.com")
    job_board_site: str = os.getenv("JOB_BOARD_SITE", "Jora")
    scraper_user_agent: str = os.getenv(
        "SCRAPER_USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )
    scrape_delay_seconds: float = float(os.getenv("SCRAPE_DELAY_SECONDS", "1.0"))
    max_scrape_pages: int = int(os.getenv("MAX_SCRAPE_PAGES", "5"))
    page_fetch_timeout_seconds: float = float(os.getenv("PAGE_FETCH_TIMEOUT_SECONDS", "30"))
    abort_on_stalled_pagination: bool = os.getenv("ABORT_ON_STALLED_PAGINATION", "true").lower() == "true"

    persist_retry_attempts: int = int(os.getenv("PERSIST_RETRY_ATTEMPTS", "3"))
    persist_retry_wait_seconds: float = float(os.getenv("PERSIST_RETRY_WAIT_SECONDS", "0.2"))
    max_job_age_days: int = int(os.getenv("MAX_JOB_AGE_DAYS", "21"))

    match_batch_size: int = int(os.getenv("MATCH_BATCH_SIZE", "10"))
    embedding_model_name: str = os.getenv("EMBEDDING_MODEL_NAME", "sentence-transformers/all-MiniLM-L6-v2")
    matching_config_path: str = os.getenv("MATCHING_CONFIG_PATH", "")

    def ensure_directories(self) -> None:
        self._ensure_sqlite_directory()

    def _ensure_sqlite_directory(self) -> None:
        if not self.database_url.startswith("sqlite:///"):
            return
        raw_path = self.database_url.replace("sqlite:///", "", 1)
        if not raw_path or raw_path == ":memory:":
            return
        db_path = Path(unquote(raw_path))
        if not db_path.is_absolute():
            db_path = Path(".") / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)


settings = Settings()
