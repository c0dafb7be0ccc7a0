# core/debug.py
import os
import time
from pathlib import Path
from typing import Optional


_DEBUG = os.getenv("PLEYX_DEBUG") == "1"
_LOG_PATH: Optional[Path] = None


def set_debug(enabled: bool, log_dir: Optional[Path] = None) -> None:
    """
    Turn verbose logging on or off. PLEYX_DEBUG=1 in the environment always wins.
    """
    global _DEBUG, _LOG_PATH
    _DEBUG = bool(enabled) or os.getenv("PLEYX_DEBUG") == "1"
    if log_dir is not None:
        _LOG_PATH = Path(log_dir) / "pleyx_debug.log"


def debug_enabled() -> bool:
    return _DEBUG


def _log_path() -> Path:
    if _LOG_PATH is not None:
        return _LOG_PATH
    return Path(__file__).resolve().parents[1] / "pleyx_debug.log"


def debug_log(message: str) -> None:
    if not _DEBUG:
        return

    try:
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
    except Exception:
        ts = "unknown-time"

    line = f"[{ts}] {message}\n"
    try:
        with _log_path().open("a", encoding="utf-8") as f:
            f.write(line)
    except Exception:
        pass

    try:
        print(f"[DEBUG] {message}")
    except Exception:
        pass
