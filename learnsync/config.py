"""Application configuration and constants."""
import logging
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Database (reference quiz/progress service)
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'learnsync.db'}"
)

# Local write-ahead cache (client engine)
LOCAL_CACHE_URL = os.environ.get(
    "LOCAL_CACHE_URL", f"sqlite:///{DB_DIR / 'local_cache.db'}"
)

# Remote services
SERVICE_BASE_URL = os.environ.get("SERVICE_BASE_URL", "http://127.0.0.1:8000")
REQUEST_TIMEOUT_SECONDS = _parse_float_env("REQUEST_TIMEOUT_SECONDS", 10.0)

# Quiz session
AUTOSAVE_INTERVAL_SECONDS = _parse_float_env("AUTOSAVE_INTERVAL_SECONDS", 30.0)
LOW_TIME_WARNING_SECONDS = _parse_int_env("LOW_TIME_WARNING_SECONDS", 300)
LOW_TIME_WARNING_RATIO = _parse_float_env("LOW_TIME_WARNING_RATIO", 0.1)
MIN_TEXT_ANSWER_LENGTH = _parse_int_env("MIN_TEXT_ANSWER_LENGTH", 10)

# Progress
LECTURE_COMPLETION_PERCENT = _parse_float_env("LECTURE_COMPLETION_PERCENT", 90.0)
CERTIFICATE_THRESHOLD_PERCENT = _parse_int_env("CERTIFICATE_THRESHOLD_PERCENT", 90)
PROGRESS_PUSH_MIN_DELTA_PERCENT = _parse_float_env("PROGRESS_PUSH_MIN_DELTA_PERCENT", 1.0)
PROGRESS_PUSH_INTERVAL_SECONDS = _parse_float_env("PROGRESS_PUSH_INTERVAL_SECONDS", 30.0)
PROGRESS_PUSH_DEBOUNCE_SECONDS = _parse_float_env("PROGRESS_PUSH_DEBOUNCE_SECONDS", 3.0)

# Logging
LOG_LEVEL = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
