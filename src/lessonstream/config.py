# settings loaded from the environment and an optional .env file
import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def _parse_float(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number {value!r}, using default {default}")
        return default


def _parse_int(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer {value!r}, using default {default}")
        return default


@dataclass
class Settings:
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    gemini_temperature: float = 0.7
    gemini_timeout: float = 120.0
    output_dir: str = "outputs"
    presenter_min_interval: float = 1 / 60
    source_max_chars: int = 30000
    log_level: str = "INFO"
    max_sessions: int = 256


def load_settings() -> Settings:
    """Read settings from the environment, after loading .env if present."""
    load_dotenv()

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL).rstrip("/"),
        gemini_temperature=_parse_float(os.getenv("GEMINI_TEMPERATURE"), 0.7),
        gemini_timeout=_parse_float(os.getenv("GEMINI_TIMEOUT"), 120.0),
        output_dir=os.getenv("OUTPUT_DIR", "outputs"),
        presenter_min_interval=_parse_float(os.getenv("PRESENTER_MIN_INTERVAL"), 1 / 60),
        source_max_chars=_parse_int(os.getenv("SOURCE_MAX_CHARS"), 30000),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        max_sessions=_parse_int(os.getenv("MAX_SESSIONS"), 256),
    )
