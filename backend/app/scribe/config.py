"""
Recorder Configuration

Defaults for the recording pipeline, overridable through SCRIBE_*
environment variables (loaded from backend/.env by main.py).
"""

import os
from dataclasses import dataclass, field
from typing import List, Tuple


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ScribeConfig:
    """Configuration for the recorder"""
    # Sessions
    history_limit: int = 50
    dedup_window_ms: int = 500
    rearm_retry_delays_ms: Tuple[int, ...] = (500, 1000)

    # Network capture
    max_body_size: int = 100000
    stale_request_timeout_ms: int = 0  # 0 keeps orphaned requests forever

    # Selectors
    text_selector_max_length: int = 30

    # Generation
    default_framework: str = "playwright"

    # Storage
    data_dir: str = "data/recordings"
    persist_history: bool = False

    # Server
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"])

    @classmethod
    def from_env(cls) -> "ScribeConfig":
        defaults = cls()
        delays = os.getenv("SCRIBE_REARM_RETRY_DELAYS_MS")
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            history_limit=_int_env("SCRIBE_HISTORY_LIMIT", defaults.history_limit),
            dedup_window_ms=_int_env("SCRIBE_DEDUP_WINDOW_MS", defaults.dedup_window_ms),
            rearm_retry_delays_ms=(
                tuple(int(d) for d in delays.split(",") if d.strip())
                if delays else defaults.rearm_retry_delays_ms
            ),
            max_body_size=_int_env("SCRIBE_MAX_BODY_SIZE", defaults.max_body_size),
            stale_request_timeout_ms=_int_env("SCRIBE_STALE_REQUEST_TIMEOUT_MS", defaults.stale_request_timeout_ms),
            text_selector_max_length=_int_env("SCRIBE_TEXT_SELECTOR_MAX_LENGTH", defaults.text_selector_max_length),
            default_framework=os.getenv("SCRIBE_DEFAULT_FRAMEWORK", defaults.default_framework),
            data_dir=os.getenv("SCRIBE_DATA_DIR", defaults.data_dir),
            persist_history=_bool_env("SCRIBE_PERSIST_HISTORY", defaults.persist_history),
            log_level=os.getenv("SCRIBE_LOG_LEVEL", defaults.log_level).upper(),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins else defaults.cors_origins
            ),
        )


# Global config instance
_config: ScribeConfig = None


def get_config() -> ScribeConfig:
    global _config
    if _config is None:
        _config = ScribeConfig.from_env()
    return _config
