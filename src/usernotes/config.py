"""Configuration loading from environment variables and usernotes.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_HOME = Path.home() / ".usernotes"
_DEFAULT_DB_PATH = _DEFAULT_HOME / "usernotes.xml"
_CONFIG_FILENAME = "usernotes.toml"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class UserNotesConfig:
    """Top-level usernotes configuration."""

    db_path: Path = _DEFAULT_DB_PATH
    log_level: str = "INFO"
    autosave: bool = True


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def load_config(config_path: Path | None = None) -> UserNotesConfig:
    """Load configuration from environment variables and optional usernotes.toml.

    Priority: environment variables > usernotes.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.usernotes/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_HOME / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    db_path = os.getenv("USERNOTES_DB_PATH", file_data.get("db_path", str(_DEFAULT_DB_PATH)))

    return UserNotesConfig(
        db_path=Path(db_path).expanduser(),
        log_level=os.getenv("USERNOTES_LOG_LEVEL", file_data.get("log_level", "INFO")),
        autosave=_as_bool(os.getenv("USERNOTES_AUTOSAVE", file_data.get("autosave", True))),
    )
