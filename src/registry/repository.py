"""Maven repository endpoints: latest-version lookup and file download.

A repository is either remote (``http://`` or ``https://``, fetched with
requests) or a local mirror directory laid out like a remote one (a plain
path or a ``file://`` URL).
"""
from __future__ import annotations

import logging
import os
import shutil
import urllib.parse
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

import requests

from constants import Constants
from common import http_client
from common.errors import RepositoryError
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from registry.xmlutil import child, child_text, children
from versioning.models import Dependency
from versioning.version import Version

logger = logging.getLogger(__name__)


class Repository:
    """A place artifacts can be fetched from, tried in caller-declared order."""

    def __init__(
        self,
        url: str = Constants.DEFAULT_REPOSITORY_URL,
        repo_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.url = url.strip().rstrip("/")
        self.repo_id = repo_id
        self.username = username
        self.password = password

    @property
    def is_remote(self) -> bool:
        return self.url.lower().startswith(("http://", "https://"))

    @property
    def local_root(self) -> Path:
        if self.url.lower().startswith("file:"):
            return Path(urllib.parse.unquote(urllib.parse.urlsplit(self.url).path))
        return Path(self.url)

    def _auth(self):
        if self.username is None:
            return None
        return (self.username, self.password or "")

    def _relative(self, dependency: Dependency, *parts: str) -> str:
        return "/".join([dependency.coordinate.path, *parts])

    def _location(self, relative: str) -> str:
        if self.is_remote:
            return f"{self.url}/{relative}"
        return str(self.local_root / relative)

    def _read_text(self, relative: str) -> str:
        location = self._location(relative)
        if not self.is_remote:
            try:
                return Path(location).read_text(encoding="utf-8")
            except OSError as exc:
                raise RepositoryError(f"Unable to read {location}: {exc}", self.url) from exc
        try:
            res = http_client.safe_get(location, context="maven", auth=self._auth())
        except requests.RequestException as exc:
            raise RepositoryError(f"Request to {safe_url(location)} failed: {exc}", self.url) from exc
        if res.status_code != 200:
            raise RepositoryError(f"HTTP {res.status_code} for {safe_url(location)}", self.url)
        return res.text

    def resolve_latest_version(self, dependency: Dependency) -> str:
        """Return the version this repository reports as newest for ``dependency``.

        Reads ``maven-metadata.xml`` and prefers ``release``, then ``latest``,
        then the highest listed version.

        Raises:
            RepositoryError: metadata missing, unreadable or without versions.
        """
        relative = self._relative(dependency, Constants.METADATA_FILE)
        text = self._read_text(relative)
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise RepositoryError(
                f"Malformed {Constants.METADATA_FILE} for {dependency.coordinate}: {exc}", self.url
            ) from exc

        versioning = child(root, "versioning")
        for field in ("release", "latest"):
            found = child_text(versioning, field)
            if found:
                if is_debug_enabled(logger):
                    logger.debug("Resolved latest version", extra=extra_context(
                        event="function_exit", component="repository", action="resolve_latest_version",
                        outcome=f"found_{field}", target=safe_url(self.url), package_manager="maven"
                    ))
                return found

        listed: List[str] = []
        versions = child(versioning, "versions")
        if versions is not None:
            for node in children(versions, "version"):
                if node.text and node.text.strip():
                    listed.append(node.text.strip())
        if listed:
            return max(listed, key=Version)

        raise RepositoryError(f"No versions listed for {dependency.coordinate}", self.url)

    def download_to_file(self, dependency: Dependency, target: Path) -> None:
        """Fetch ``<coordinate>/<version>/<target.name>`` into ``target``.

        Raises:
            RepositoryError: the file is missing or the transfer failed.
        """
        relative = self._relative(dependency, str(dependency.version), target.name)
        location = self._location(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        if self.is_remote:
            try:
                http_client.download_file(location, target, context="maven", auth=self._auth())
            except requests.RequestException as exc:
                raise RepositoryError(f"Unable to download {safe_url(location)}: {exc}", self.url) from exc
        else:
            partial = target.with_name(target.name + Constants.PARTIAL_EXTENSION)
            try:
                shutil.copyfile(location, partial)
                os.replace(partial, target)
            except OSError as exc:
                if partial.exists():
                    partial.unlink()
                raise RepositoryError(f"Unable to copy {location}: {exc}", self.url) from exc

        if is_debug_enabled(logger):
            logger.debug("Fetched file", extra=extra_context(
                event="download", component="repository", action="download_to_file",
                outcome="success", target=safe_url(location), package_manager="maven"
            ))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Repository):
            return NotImplemented
        return self.url == other.url

    def __hash__(self) -> int:
        return hash(self.url)

    def __repr__(self) -> str:
        return f"Repository({str(self)!r})"

    def __str__(self) -> str:
        return safe_url(self.url) if self.is_remote else self.url
