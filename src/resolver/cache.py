"""On-disk artifact cache with hash sidecars.

Layout per resolved dependency::

    <base_dir>/<group/as/dirs>/<artifact>/<version>/<artifact>-<version>.pom
    <base_dir>/<group/as/dirs>/<artifact>/<version>/<artifact>-<version>.pom.sha1
    <base_dir>/<group/as/dirs>/<artifact>/<version>/<artifact>-<version>[-<classifier>].jar
    <base_dir>/<group/as/dirs>/<artifact>/<version>/<artifact>-<version>[-<classifier>].jar.sha1

A file/sidecar pair is trusted only while re-hashing the file reproduces the
sidecar text; timestamps are never consulted.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import Dependency
from versioning.version import Version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachePaths:
    """The four files that make up one cache record."""

    descriptor: Path
    descriptor_hash: Path
    artifact: Path
    artifact_hash: Path


def sidecar_for(path: Path) -> Path:
    return path.with_name(path.name + Constants.HASH_EXTENSION)


class ArtifactCache:
    """Deterministic cache paths plus integrity checks.

    Not safe for concurrent writers on its own; downloads land through an
    atomic rename so readers never observe partial files.
    """

    def __init__(self, base_dir: Union[str, Path] = Constants.DEFAULT_BASE_DIR):
        """Initialize the cache.

        Args:
            base_dir: Root directory for every cached file.
        """
        self.base_dir = Path(base_dir)

    def ensure_base_dir(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def coordinate_dir(self, dependency: Dependency) -> Path:
        return self.base_dir / dependency.coordinate.path

    def file_path(self, dependency: Dependency, extension: str) -> Path:
        directory = self.coordinate_dir(dependency) / str(dependency.version)
        if extension == Constants.DESCRIPTOR_EXTENSION:
            return directory / dependency.descriptor_name()
        return directory / dependency.file_name(extension)

    def paths(self, dependency: Dependency) -> CachePaths:
        """Return the cache record paths; ``dependency.version`` must be set."""
        descriptor = self.file_path(dependency, Constants.DESCRIPTOR_EXTENSION)
        artifact = self.file_path(dependency, Constants.ARTIFACT_EXTENSION)
        return CachePaths(descriptor, sidecar_for(descriptor), artifact, sidecar_for(artifact))

    @staticmethod
    def file_hash(path: Path) -> str:
        """Hex digest of the file's current bytes."""
        digest = hashlib.new(Constants.HASH_ALGORITHM)
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(Constants.DOWNLOAD_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    @staticmethod
    def read_sidecar(sidecar: Path) -> str:
        return sidecar.read_text(encoding="utf-8").strip()

    def is_valid(self, path: Path, sidecar: Path) -> bool:
        """True iff both files exist and the file's fresh hash equals the sidecar text."""
        if not path.is_file() or not sidecar.is_file():
            return False
        try:
            expected = self.read_sidecar(sidecar)
            actual = self.file_hash(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unable to verify %s: %s", path, exc)
            return False
        if actual != expected:
            if is_debug_enabled(logger):
                logger.debug("Hash mismatch", extra=extra_context(
                    event="integrity", component="cache", action="is_valid",
                    outcome="mismatch", target=str(path),
                ))
            return False
        return True

    @staticmethod
    def normalize_sidecar(sidecar: Path) -> str:
        """Rewrite a fetched sidecar to bare lower-case hex and return it.

        Remote ``.sha1`` files sometimes carry the file name after the digest.
        """
        raw = sidecar.read_text(encoding="utf-8", errors="replace").strip()
        token = raw.split()[0].lower() if raw else ""
        if token != raw:
            sidecar.write_text(token, encoding="utf-8")
        return token

    @staticmethod
    def discard(*paths: Path) -> None:
        for path in paths:
            if path.exists():
                path.unlink()

    def installed_versions(self, dependency: Dependency) -> List[Version]:
        """Versions with a verified cached descriptor for this coordinate, unsorted."""
        root = self.coordinate_dir(dependency)
        if not root.is_dir():
            return []
        found: List[Version] = []
        for entry in root.iterdir():
            if not entry.is_dir():
                continue
            descriptor = entry / f"{dependency.artifact}-{entry.name}.{Constants.DESCRIPTOR_EXTENSION}"
            if self.is_valid(descriptor, sidecar_for(descriptor)):
                found.append(Version(entry.name))
        return found

    def best_installed_version(self, dependency: Dependency) -> Optional[Version]:
        versions = self.installed_versions(dependency)
        return max(versions) if versions else None
