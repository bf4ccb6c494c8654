"""Shared HTTP helpers used by remote repositories.

Encapsulates request/timeout handling and DEBUG traces so repository code
avoids duplicating try/except blocks. Transport failures are logged and
re-raised as ``requests.RequestException``; callers decide how to wrap them.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error logging and DEBUG traces."""
    safe_target = safe_url(url)
    headers = _default_headers(kwargs.pop("headers", None))
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, headers=headers, **kwargs)
        except requests.Timeout:
            logger.warning(
                "%s request timed out after %s seconds: %s",
                context,
                Constants.REQUEST_TIMEOUT,
                safe_target,
            )
            raise
        except requests.RequestException as exc:  # includes ConnectionError
            logger.warning("%s connection error for %s: %s", context, safe_target, exc)
            raise
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if res.status_code == 200 else "non_2xx",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
        return res


def download_file(url: str, target: Path, *, context: str, **kwargs: Any) -> int:
    """Stream ``url`` into ``target`` and return the number of bytes written.

    The body is written to a sibling ``.part`` file first and moved into place
    with ``os.replace`` so a reader never sees a half-written file.

    Raises:
        requests.HTTPError: the server answered with a non-200 status.
        requests.RequestException: transport failure.
    """
    res = safe_get(url, context=context, stream=True, **kwargs)
    try:
        if res.status_code != 200:
            raise requests.HTTPError(
                f"HTTP {res.status_code} for {safe_url(url)}", response=res
            )
        partial = target.with_name(target.name + Constants.PARTIAL_EXTENSION)
        written = 0
        try:
            with open(partial, "wb") as fh:
                for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
                        written += len(chunk)
            os.replace(partial, target)
        except BaseException:
            if partial.exists():
                partial.unlink()
            raise
        return written
    finally:
        res.close()
