import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_THRESHOLD = 0.7
DEFAULT_DB_PATH = "data/cases.db"


def load_env() -> None:
    """Load .env from project root if present."""
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise SystemExit(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    """Runtime configuration, read from CASEDEDUP_* environment variables."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    threshold: float = DEFAULT_THRESHOLD
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    canonical_pairs: bool = False
    detect_timeout: Optional[float] = None


def load_settings() -> Settings:
    """
    Build settings from the environment (after loading .env).

    Returns:
        Settings populated from CASEDEDUP_DB_PATH, CASEDEDUP_THRESHOLD,
        CASEDEDUP_LOG_LEVEL, CASEDEDUP_LOG_DIR, CASEDEDUP_CANONICAL_PAIRS
        and CASEDEDUP_DETECT_TIMEOUT.
    """
    load_env()
    threshold = _env_float("CASEDEDUP_THRESHOLD")
    return Settings(
        db_path=Path(os.getenv("CASEDEDUP_DB_PATH") or DEFAULT_DB_PATH),
        threshold=DEFAULT_THRESHOLD if threshold is None else threshold,
        log_level=(os.getenv("CASEDEDUP_LOG_LEVEL") or "INFO").upper(),
        log_dir=Path(os.getenv("CASEDEDUP_LOG_DIR") or "logs"),
        canonical_pairs=_env_bool("CASEDEDUP_CANONICAL_PAIRS"),
        detect_timeout=_env_float("CASEDEDUP_DETECT_TIMEOUT"),
    )
