"""
Shared helpers for the discovery and monitor agents.

Logging setup, JSON persistence for data/*.json and the DC-local date
used for every `lastUpdated` / `lastRun` stamp.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo


DC_TIMEZONE = "America/New_York"

LOG_FORMAT = "%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def setup_logging(
    name: str,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Attach a console handler (and a rotating file handler when `log_file`
    is set) to the `name` logger.

    The CLIs configure the "tracker" logger once; module loggers such as
    tracker.legislative.congress_client propagate into it. Calling again
    only re-levels the handlers already attached, so the fallback call in
    a CLI error path never duplicates output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(log_level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        ensure_dir(Path(log_file).parent)
        handlers.append(RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
        ))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


# ---------------------------------------------------------------------------
# JSON persistence
# ---------------------------------------------------------------------------

def load_json(
    path: Path,
    default: Any = None,
    logger: Optional[logging.Logger] = None,
) -> Any:
    """State files (last run, history): a missing or corrupt file reads as `default` ({})."""
    if default is None:
        default = {}
    path = Path(path)
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        (logger or logging.getLogger(__name__)).warning(
            f"{path.name} is not valid JSON ({exc}); using default"
        )
        return default


def read_json_strict(path: Path) -> Any:
    """The bill dataset: it must exist and parse, errors propagate."""
    return json.loads(Path(path).read_text(encoding="utf-8"))


def save_json(data: Any, path: Path, logger: Optional[logging.Logger] = None) -> None:
    """Write `data` as indented JSON through a sibling .tmp file and a rename."""
    path = Path(path)
    ensure_dir(path.parent)
    staging = path.with_name(path.name + ".tmp")
    try:
        staging.write_text(
            json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n",
            encoding="utf-8",
        )
        staging.replace(path)
    except OSError as exc:
        (logger or logging.getLogger(__name__)).error(f"Could not write {path}: {exc}")
        staging.unlink(missing_ok=True)
        raise


# ---------------------------------------------------------------------------
# Paths and dates
# ---------------------------------------------------------------------------

def ensure_dir(path: Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def today_in_tz(tz_name: str = DC_TIMEZONE) -> str:
    """Today's ISO date on the wall clock of tz_name (DC by default)."""
    return datetime.now(ZoneInfo(tz_name)).date().isoformat()
