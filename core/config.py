# core/config.py
import json
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional


APP_DIR_NAME = "pleyx"
CONFIG_NAME = "config.json"
TOKEN_PLACEHOLDER = "YOUR_PLEX_TOKEN_HERE"


class ConfigError(Exception):
    pass


def _as_bool(value, default: bool) -> bool:
    # accepts JSON bools, numbers and strings such as "false"
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "yes", "on"):
            return True
        if text in ("false", "0", "no", "off", ""):
            return False
    return default


@dataclass(frozen=True)
class Config:
    plex_url: str = "http://localhost:32400"
    plex_token: str = TOKEN_PLACEHOLDER
    omdb_api_key: str = ""
    polling_interval_secs: int = 15
    start_at_boot: bool = False
    debug: bool = False

    def validate(self) -> None:
        if not self.plex_token or self.plex_token == TOKEN_PLACEHOLDER:
            raise ConfigError("Please configure your Plex token in the config file.")
        if not self.plex_url.strip():
            raise ConfigError("Please configure your Plex server URL in the config file.")

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        defaults = cls()
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v is not None}

        try:
            interval = int(values.get("polling_interval_secs", defaults.polling_interval_secs))
        except (TypeError, ValueError):
            interval = defaults.polling_interval_secs
        values["polling_interval_secs"] = max(1, interval)

        for key in ("plex_url", "plex_token", "omdb_api_key"):
            if key in values:
                values[key] = str(values[key]).strip()
        for key in ("start_at_boot", "debug"):
            if key in values:
                values[key] = _as_bool(values[key], getattr(defaults, key))

        if os.getenv("PLEYX_DEBUG") == "1":
            values["debug"] = True
        return cls(**values)

    def to_dict(self) -> dict:
        data = asdict(self)
        if not data["omdb_api_key"]:
            del data["omdb_api_key"]
        return data


def config_path() -> Path:
    # Portable mode: a config.json next to the launcher wins.
    portable = Path(sys.argv[0]).resolve().parent / CONFIG_NAME
    if portable.exists():
        return portable

    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA") or Path.home() / "AppData" / "Roaming")
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APP_DIR_NAME / CONFIG_NAME


def save(cfg: Config, path: Optional[Path] = None) -> Path:
    path = Path(path or config_path())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg.to_dict(), indent=4), encoding="utf-8")
    return path


def load(path: Optional[Path] = None) -> Config:
    path = Path(path or config_path())

    if not path.exists():
        try:
            save(Config(), path)
            print(f"[Config] Created default config at {path}")
        except OSError as e:
            print(f"[Config] Could not write default config: {e}")
        return Config.from_dict({})

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("top-level value is not an object")
    except (OSError, ValueError) as e:
        print(f"[Config] Error loading config: {e}")
        data = {}

    return Config.from_dict(data)
