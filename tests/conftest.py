"""Shared fixtures: a local Maven mirror laid out like a remote repository."""

import hashlib
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from common.errors import RepositoryError
from registry.repository import Repository


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def make_pom(group, artifact, version, packaging="jar", dependencies=(), repositories=()):
    """Render a namespaced pom.xml.

    ``dependencies`` entries are dicts with groupId/artifactId/version and
    optional scope/optional/classifier keys.
    """
    dep_xml = []
    for dep in dependencies:
        fields = "".join(
            f"<{key}>{value}</{key}>" for key, value in dep.items() if value is not None
        )
        dep_xml.append(f"    <dependency>{fields}</dependency>")
    repo_xml = ""
    if repositories:
        entries = "".join(
            f"<repository><id>r{i}</id><url>{url}</url></repository>"
            for i, url in enumerate(repositories)
        )
        repo_xml = f"<repositories>{entries}</repositories>"
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>{group}</groupId>
  <artifactId>{artifact}</artifactId>
  <version>{version}</version>
  <packaging>{packaging}</packaging>
  {repo_xml}
  <dependencies>
{chr(10).join(dep_xml)}
  </dependencies>
</project>
"""


def dep(group, artifact, version, scope=None, optional=None, classifier=None) -> Dict[str, Optional[str]]:
    return {
        "groupId": group,
        "artifactId": artifact,
        "version": version,
        "scope": scope,
        "optional": optional,
        "classifier": classifier,
    }


class MavenMirror:
    """Writes artifacts into a directory using the remote repository layout."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self._versions: Dict[tuple, List[str]] = {}

    @property
    def url(self) -> str:
        return str(self.root)

    def repository(self) -> Repository:
        return Repository(self.url)

    def version_dir(self, group, artifact, version) -> Path:
        return self.root / group.replace(".", "/") / artifact / version

    def publish(
        self,
        group,
        artifact,
        version,
        *,
        dependencies: Iterable[dict] = (),
        packaging="jar",
        repositories: Iterable[str] = (),
        jar: Optional[bytes] = None,
        pom: Optional[str] = None,
        with_jar: Optional[bool] = None,
        jar_sidecar: Optional[str] = None,
        classifier: Optional[str] = None,
    ) -> Path:
        directory = self.version_dir(group, artifact, version)
        directory.mkdir(parents=True, exist_ok=True)
        pom_text = pom if pom is not None else make_pom(
            group, artifact, version, packaging, dependencies, repositories
        )
        pom_bytes = pom_text.encode("utf-8")
        pom_path = directory / f"{artifact}-{version}.pom"
        pom_path.write_bytes(pom_bytes)
        (directory / f"{artifact}-{version}.pom.sha1").write_text(sha1_hex(pom_bytes))

        if with_jar is None:
            with_jar = packaging != "pom"
        if with_jar:
            body = jar if jar is not None else f"jar:{group}:{artifact}:{version}".encode()
            suffix = f"-{classifier}" if classifier else ""
            jar_path = directory / f"{artifact}-{version}{suffix}.jar"
            jar_path.write_bytes(body)
            sidecar = jar_sidecar if jar_sidecar is not None else sha1_hex(body)
            (directory / f"{jar_path.name}.sha1").write_text(sidecar)

        versions = self._versions.setdefault((group, artifact), [])
        if version not in versions:
            versions.append(version)
        self._write_metadata(group, artifact)
        return directory

    def _write_metadata(self, group, artifact):
        versions = self._versions[(group, artifact)]
        listed = "".join(f"<version>{v}</version>" for v in versions)
        (self.root / group.replace(".", "/") / artifact / "maven-metadata.xml").write_text(
            f"<metadata><groupId>{group}</groupId><artifactId>{artifact}</artifactId>"
            f"<versioning><release>{versions[-1]}</release>"
            f"<versions>{listed}</versions></versioning></metadata>"
        )


class CountingRepository(Repository):
    """Repository that records every call it receives."""

    def __init__(self, url):
        super().__init__(url)
        self.lookups = 0
        self.downloads: List[str] = []

    @property
    def calls(self) -> int:
        return self.lookups + len(self.downloads)

    def resolve_latest_version(self, dependency):
        self.lookups += 1
        return super().resolve_latest_version(dependency)

    def download_to_file(self, dependency, target):
        self.downloads.append(target.name)
        return super().download_to_file(dependency, target)


class FailingRepository(Repository):
    """Repository that is always unreachable."""

    def resolve_latest_version(self, dependency):
        raise RepositoryError(f"{self.url} is offline", self.url)

    def download_to_file(self, dependency, target):
        raise RepositoryError(f"{self.url} is offline", self.url)


@pytest.fixture
def mirror(tmp_path):
    return MavenMirror(tmp_path / "remote")


@pytest.fixture
def second_mirror(tmp_path):
    return MavenMirror(tmp_path / "remote2")


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "libs"
