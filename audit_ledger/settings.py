import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    session_ttl_minutes: int = 60
    report_batch_size: int = 500
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be positive")
    return value


def get_settings() -> Settings:
    load_dotenv()
    data_dir = Path(os.getenv("AUDIT_LEDGER_DATA_DIR") or Path.cwd() / ".data")
    db_path = Path(os.getenv("AUDIT_LEDGER_DB_PATH") or data_dir / "ledger.sqlite")
    return Settings(
        data_dir=data_dir,
        db_path=db_path,
        session_ttl_minutes=_int_env("AUDIT_LEDGER_SESSION_TTL_MINUTES", 60),
        report_batch_size=_int_env("AUDIT_LEDGER_REPORT_BATCH_SIZE", 500),
        log_level=(os.getenv("AUDIT_LEDGER_LOG_LEVEL") or "INFO").upper(),
    )
