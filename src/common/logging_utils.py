"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module only
provides the shared setup plus small helpers for structured ``extra`` fields,
cheap DEBUG guards, timing and credential redaction.
"""
from __future__ import annotations

import logging
import os
import re
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_CONFIGURED = False
_SENSITIVE_QUERY_KEYS = {"token", "access_token", "password", "secret", "key", "apikey", "api_key"}
_SECRET_PATTERN = re.compile(r"(?i)(password|token|secret)=([^&\s]+)")


def configure_logging() -> None:
    """Configure the root logger once.

    The level comes from the ``DEPFETCH_LOG_LEVEL`` environment variable and
    defaults to INFO.
    """
    global _CONFIGURED  # pylint: disable=global-statement
    level_name = os.environ.get(Constants.LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not _CONFIGURED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
        _CONFIGURED = True
    root.setLevel(level)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records, dropping None values."""
    return {key: value for key, value in fields.items() if value is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def redact(text: Optional[str]) -> str:
    """Mask secrets that appear as key=value pairs in free text."""
    if not text:
        return ""
    return _SECRET_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)


def safe_url(url: Optional[str]) -> str:
    """Return ``url`` without user info and with sensitive query values masked."""
    if not url:
        return ""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    query = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    masked = [
        (k, "***" if k.lower() in _SENSITIVE_QUERY_KEYS else v)
        for k, v in query
    ]
    return urllib.parse.urlunsplit(
        (parts.scheme, netloc, parts.path, urllib.parse.urlencode(masked), "")
    )


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; still running timers report time so far."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
