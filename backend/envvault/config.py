"""
Runtime settings for the EnvVault sidecar.

Values come from environment variables so the runner can hand them over before the
app is imported:

    ENVVAULT_DATA_DIR      directory holding vault.json and vault.key
    ENVVAULT_FILE          shell sync file (default ~/.envvault)
    ENVVAULT_SHELL_HOOKS   "0"/"false" disables editing shell profiles
    ENVVAULT_LOG_LEVEL     DEBUG, INFO, WARNING, ERROR
"""
import os
import sys
from pathlib import Path

from pydantic import BaseModel, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_FALSEY = ("0", "false", "no", "off")


def default_data_dir() -> Path:
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / "EnvVault"
    if os.name == "nt":
        base = os.getenv("APPDATA")
        return Path(base) / "EnvVault" if base else home / "AppData" / "Roaming" / "EnvVault"
    base = os.getenv("XDG_DATA_HOME")
    return (Path(base) if base else home / ".local" / "share") / "envvault"


class Settings(BaseModel):
    data_dir: Path
    envvault_file: Path = Path("~/.envvault")
    shell_hooks: bool = True
    log_level: str = "INFO"

    @field_validator("data_dir", "envvault_file")
    @classmethod
    def _expand_home(cls, v: Path) -> Path:
        return Path(os.path.expanduser(str(v)))

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=os.getenv("ENVVAULT_DATA_DIR") or default_data_dir(),
            envvault_file=os.getenv("ENVVAULT_FILE") or "~/.envvault",
            shell_hooks=os.getenv("ENVVAULT_SHELL_HOOKS", "1").strip().lower() not in _FALSEY,
            log_level=os.getenv("ENVVAULT_LOG_LEVEL", "INFO"),
        )
