"""
errors.py — Exception taxonomy shared by the discovery and monitor agents.

    TrackerError
      ├── ParseError    unrecognized bill citation (recovered locally)
      ├── ApiError      non-2xx HTTP response, carries the status code
      ├── NetworkError  transport failure (timeout, DNS, reset)
      └── ConfigError   missing credential or unusable config (fatal)
"""

from __future__ import annotations

from typing import Optional


class TrackerError(Exception):
    """Base class for every error raised by the tracker."""


class ParseError(TrackerError):
    """A bill citation could not be parsed into {bill_type, number}."""

    def __init__(self, citation: str):
        super().__init__(f"Could not parse bill number: {citation!r}")
        self.citation = citation


class ApiError(TrackerError):
    """The upstream API answered with a non-2xx status."""

    def __init__(self, status: int, url: str = "", reason: str = ""):
        msg = f"API error: {status}"
        if reason:
            msg += f" {reason}"
        super().__init__(msg)
        self.status = status
        self.url = url
        self.reason = reason

    @property
    def not_found(self) -> bool:
        return self.status == 404


class NetworkError(TrackerError):
    """The request never produced an HTTP response."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        super().__init__(f"Network error for {url}: {cause}")
        self.url = url
        self.cause = cause


class ConfigError(TrackerError):
    """Configuration is missing or unusable; the run must not start."""
