import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("REVENUE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "revenue.db"
    database_url = os.getenv("REVENUE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("REVENUE_TIMEZONE", "Europe/Amsterdam")
    csrf_secret = os.getenv(
        "REVENUE_CSRF_SECRET",
        "5c1f0d8e2a7b4b3f9e61c0a4d2f87b19a3e6c5d40f2b8a17e9c3d6b0a4f1e872",
    )
    log_level = os.getenv("REVENUE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        log_level=log_level,
    )
