"""
config.py — YAML configuration and credential loading.

Provides PROJECT_ROOT, DEFAULT_CONFIG, load_config, resolve_path,
logging_options and require_api_key. Credentials are read from the
environment after the project-root .env file (if any) has been loaded.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from tracker.shared.errors import ConfigError

# Path resolves correctly regardless of where this module is imported from:
#   tracker/shared/../..  ==  project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG = PROJECT_ROOT / "tracker" / "legislative" / "config.yaml"

API_SIGNUP_URL = "https://api.congress.gov/sign-up/"


def load_config(config_path: Path = DEFAULT_CONFIG) -> dict:
    """Load and return YAML configuration."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    with open(config_path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    for section in ("congress", "http", "paths", "discovery", "scoring", "monitor", "logging"):
        config.setdefault(section, {})
    return config


def resolve_path(config: dict, key: str, root: Path = PROJECT_ROOT) -> Path:
    """Resolve config["paths"][key] against the project root (absolute paths kept)."""
    try:
        value = config["paths"][key]
    except KeyError:
        raise ConfigError(f"Missing paths.{key} in config") from None
    path = Path(value)
    return path if path.is_absolute() else root / path


def require_api_key(config: dict) -> str:
    """Return the Congress.gov API key, or raise ConfigError with guidance."""
    load_dotenv(PROJECT_ROOT / ".env")
    env_var = config.get("congress", {}).get("env_var", "CONGRESS_API_KEY")
    key = os.environ.get(env_var, "").strip()
    if not key:
        raise ConfigError(
            f"{env_var} environment variable not set!\n"
            f"  To get an API key:\n"
            f"    1. Visit: {API_SIGNUP_URL}\n"
            f"    2. Set environment variable: export {env_var}=your_key_here"
        )
    return key


def log_file_path(config: dict, root: Path = PROJECT_ROOT) -> Optional[Path]:
    """Resolved logging.file from config, or None when file logging is off."""
    value = (config.get("logging") or {}).get("file")
    if not value:
        return None
    path = Path(value)
    return path if path.is_absolute() else root / path


def logging_options(config: dict, verbose: bool = False) -> dict:
    """Keyword arguments for setup_logging() from the `logging` section."""
    section = config.get("logging") or {}
    return {
        "level": "DEBUG" if verbose else section.get("level", "INFO"),
        "log_file": log_file_path(config),
        "max_bytes": int(section.get("max_bytes", 10_000_000)),
        "backup_count": int(section.get("backup_count", 5)),
    }
