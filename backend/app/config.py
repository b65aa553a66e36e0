"""Environment-driven settings for the compositor service."""

import os
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_DOWNLOAD_DIR = "downloads"
DEFAULT_CAPTURE_FPS = 30
DEFAULT_VIDEO_BITRATE = 5_000_000
DEFAULT_TICK_SECONDS = 0.1
DEFAULT_FETCH_TIMEOUT = 30.0

_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


def load_env() -> None:
    """Load backend/.env if present. Existing environment values win."""
    load_dotenv(_ENV_FILE, override=False)


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def get_download_dir() -> Path:
    """Directory finished videos are saved into."""
    return Path(_env("STORYREEL_DOWNLOAD_DIR") or DEFAULT_DOWNLOAD_DIR)


def get_capture_fps() -> int:
    return _env_int("STORYREEL_CAPTURE_FPS", DEFAULT_CAPTURE_FPS)


def get_video_bitrate() -> int:
    return _env_int("STORYREEL_VIDEO_BITRATE", DEFAULT_VIDEO_BITRATE)


def get_tick_seconds() -> float:
    """Polling granularity of the scene wait-out loop."""
    return _env_float("STORYREEL_TICK_SECONDS", DEFAULT_TICK_SECONDS)


def get_fetch_timeout() -> float:
    return _env_float("STORYREEL_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT)
