import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        default_alert_at: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.default_alert_at = default_alert_at
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("GASTOS_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "gastos.db"
    database_url = os.getenv("GASTOS_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("GASTOS_TIMEZONE", "Europe/Madrid")
    default_alert_at = int(os.getenv("GASTOS_DEFAULT_ALERT_AT", "80"))
    log_level = os.getenv("GASTOS_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        default_alert_at=default_alert_at,
        log_level=log_level,
    )
