"""Dependency resolution and download engine.

Resolves dependencies against an ordered list of repositories, stores the
results in an :class:`ArtifactCache` and follows each descriptor's declared
dependencies until the transitive closure is complete.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

from constants import Constants
from common.errors import DependencyError, DownloadError, RepositoryError
from common.logging_utils import extra_context, is_debug_enabled, Timer
from registry.pom import PomDescriptor, parse_pom
from registry.repository import Repository
from resolver.cache import ArtifactCache, CachePaths
from resolver.session import ResolutionSession
from resolver.sink import InjectionSink
from versioning.models import Dependency, DependencyScope

logger = logging.getLogger(__name__)


def default_scopes() -> frozenset:
    return frozenset(DependencyScope(s) for s in Constants.DEFAULT_SCOPES)


def merge_repositories(base: Sequence[Repository], extra: Iterable[Repository]) -> List[Repository]:
    """``base`` in order, followed by any repository of ``extra`` not already present."""
    merged = list(base)
    for repo in extra:
        if repo not in merged:
            merged.append(repo)
    return merged


class DependencyDownloader:
    """Downloads dependencies with their transitive closure into a local cache.

    Resolution is synchronous and depth-first. Each call to
    :meth:`resolve_many` uses a fresh :class:`ResolutionSession` unless the
    caller passes one to share between calls. At most one resolution should
    touch a given ``base_dir`` at a time.
    """

    def __init__(
        self,
        base_dir: Union[str, Path] = Constants.DEFAULT_BASE_DIR,
        scopes: Optional[Iterable[DependencyScope]] = None,
        ignore_optional: bool = Constants.IGNORE_OPTIONAL,
        verbose: bool = Constants.VERBOSE,
        sink: Optional[InjectionSink] = None,
        repositories: Optional[Iterable[Repository]] = None,
    ):
        """Initialize the downloader.

        Args:
            base_dir: Cache root directory.
            scopes: Scopes followed by default; RUNTIME and COMPILE when None.
            ignore_optional: Skip ``<optional>true</optional>`` dependencies.
            verbose: Report progress at INFO instead of DEBUG.
            sink: Called with each resolved artifact path after ``resolve_many``.
            repositories: Repositories used by ``resolve_from_descriptor``.
        """
        self.cache = ArtifactCache(base_dir)
        self.scopes = frozenset(scopes) if scopes is not None else default_scopes()
        self.ignore_optional = ignore_optional
        self.verbose = verbose
        self.sink = sink
        self.repositories: List[Repository] = []
        for repo in repositories or []:
            self.add_repository(repo)

    @property
    def base_dir(self) -> Path:
        return self.cache.base_dir

    def add_repository(self, repository: Repository) -> None:
        if repository not in self.repositories:
            self.repositories.append(repository)

    def artifact_path(self, dependency: Dependency) -> Path:
        return self.cache.file_path(dependency, Constants.ARTIFACT_EXTENSION)

    def _progress(self, msg: str, *args) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def _scopes(self, scopes: Optional[Iterable[DependencyScope]]) -> frozenset:
        return frozenset(scopes) if scopes is not None else self.scopes

    # Public API -----------------------------------------------------------

    def resolve_one(
        self,
        repositories: Sequence[Repository],
        dependency: Dependency,
        session: Optional[ResolutionSession] = None,
        scopes: Optional[Iterable[DependencyScope]] = None,
    ) -> Set[Dependency]:
        """Resolve ``dependency`` and everything it transitively needs.

        Returns an empty set when the session already holds the dependency.
        Children are tried against the parent's repositories followed by the
        repositories the parent's descriptor declares.

        Raises:
            DownloadError: every repository failed a version lookup or fetch.
            ParseError: a fetched or cached descriptor could not be parsed.
        """
        session = session if session is not None else ResolutionSession()
        wanted = self._scopes(scopes)
        resolved: Set[Dependency] = set()
        pending: List[Tuple[List[Repository], Dependency]] = [(list(repositories), dependency)]

        while pending:
            repos, current = pending.pop()
            if session.is_resolved(current):
                continue
            descriptor = self._resolve_single(repos, current, session)
            resolved.add(current)

            children = descriptor.select(wanted, self.ignore_optional)
            child_repos = merge_repositories(repos, descriptor.repositories)
            # reversed so children are visited in declaration order
            for child in reversed(children):
                if not session.is_resolved(child):
                    pending.append((child_repos, child))

        return resolved

    def resolve_many(
        self,
        repositories: Sequence[Repository],
        dependencies: Iterable[Dependency],
        session: Optional[ResolutionSession] = None,
        scopes: Optional[Iterable[DependencyScope]] = None,
    ) -> Set[Dependency]:
        """Resolve every dependency, hand the union to the sink and return it."""
        self.cache.ensure_base_dir()
        session = session if session is not None else ResolutionSession()
        resolved: Set[Dependency] = set()
        with Timer() as timer:
            for dependency in dependencies:
                resolved |= self.resolve_one(repositories, dependency, session, scopes)
        if is_debug_enabled(logger):
            logger.debug("Resolution finished", extra=extra_context(
                event="function_exit", component="downloader", action="resolve_many",
                outcome="success", count=len(resolved), duration_ms=timer.duration_ms(),
            ))
        self.inject(resolved)
        return resolved

    def resolve_from_descriptor(
        self,
        descriptor: PomDescriptor,
        scopes: Optional[Iterable[DependencyScope]] = None,
        session: Optional[ResolutionSession] = None,
    ) -> Set[Dependency]:
        """Resolve the dependencies a descriptor declares for ``scopes``.

        Repositories are this downloader's own (the default repository when it
        has none) followed by those the descriptor declares.
        """
        wanted = self._scopes(scopes)
        repos = merge_repositories(self.repositories or [Repository()], descriptor.repositories)
        dependencies = descriptor.select(wanted, self.ignore_optional)
        return self.resolve_many(repos, dependencies, session, wanted)

    def resolve_from_file(
        self,
        source: Union[bytes, str, os.PathLike],
        scopes: Optional[Iterable[DependencyScope]] = None,
        session: Optional[ResolutionSession] = None,
    ) -> Set[Dependency]:
        """Parse a POM (path, XML text or bytes) and resolve its dependencies."""
        return self.resolve_from_descriptor(parse_pom(source), scopes, session)

    def inject(self, dependencies: Iterable[Dependency]) -> None:
        """Offer each dependency's cached artifact file to the sink."""
        if self.sink is None:
            return
        for dependency in sorted(dependencies, key=str):
            path = self.artifact_path(dependency)
            if not path.is_file():
                continue
            self._progress("Loading %s", dependency)
            try:
                self.sink(path)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.warning("Injection sink failed for %s", path, exc_info=True)

    # Resolution steps ----------------------------------------------------

    def _resolve_single(
        self, repositories: Sequence[Repository], dependency: Dependency, session: ResolutionSession
    ) -> PomDescriptor:
        if dependency.version is None:
            self._resolve_version(repositories, dependency)

        paths = self.cache.paths(dependency)
        descriptor = self._cached_descriptor(paths)
        if descriptor is not None:
            session.mark_resolved(dependency)
            self._progress("Using cached %s", dependency)
            return descriptor

        self._progress("Downloading %s", dependency)
        paths.descriptor.parent.mkdir(parents=True, exist_ok=True)
        failure = DownloadError(f"Unable to find download for {dependency}")
        for repo in repositories:
            try:
                descriptor = self._download_from(repo, dependency, paths)
            except DependencyError as exc:
                logger.warning("Repository %s could not provide %s: %s", repo, dependency, exc)
                failure.add(str(repo), exc)
                # no partial record survives a failed attempt
                self.cache.discard(
                    paths.descriptor, paths.descriptor_hash, paths.artifact, paths.artifact_hash
                )
                continue
            session.mark_resolved(dependency)
            if descriptor is None:
                descriptor = parse_pom(paths.descriptor)
            return descriptor
        raise failure

    def _resolve_version(self, repositories: Sequence[Repository], dependency: Dependency) -> None:
        failure = DownloadError(f"Unable to find latest version of {dependency}")
        for repo in repositories:
            try:
                dependency.version = repo.resolve_latest_version(dependency)
            except RepositoryError as exc:
                failure.add(str(repo), exc)
                continue
            self._progress("Latest version of %s is %s (%s)", dependency.coordinate, dependency.version, repo)
            return

        best = self.cache.best_installed_version(dependency)
        if best is None:
            raise failure
        logger.warning(
            "Unable to look up latest version of %s, using cached version %s",
            dependency.coordinate,
            best,
        )
        dependency.version = str(best)

    def _cached_descriptor(self, paths: CachePaths) -> Optional[PomDescriptor]:
        """Descriptor of a reusable cache record, or None on a miss."""
        if not self.cache.is_valid(paths.descriptor, paths.descriptor_hash):
            return None
        if self.cache.is_valid(paths.artifact, paths.artifact_hash):
            return parse_pom(paths.descriptor)
        if paths.artifact.exists() or paths.artifact_hash.exists():
            return None
        descriptor = parse_pom(paths.descriptor)
        return None if descriptor.is_binary else descriptor

    def _download_from(
        self, repo: Repository, dependency: Dependency, paths: CachePaths
    ) -> Optional[PomDescriptor]:
        """Fetch descriptor and artifact from one repository.

        Returns the parsed descriptor when it had to be read to excuse a
        missing artifact, otherwise None.
        """
        self._fetch_pair(repo, dependency, paths.descriptor, paths.descriptor_hash)
        try:
            self._fetch_pair(repo, dependency, paths.artifact, paths.artifact_hash)
        except RepositoryError:
            descriptor = parse_pom(paths.descriptor)
            if descriptor.is_binary:
                raise
            self.cache.discard(paths.artifact, paths.artifact_hash)
            self._progress("%s has packaging '%s', no artifact to fetch", dependency, descriptor.packaging)
            return descriptor
        return None

    def _fetch_pair(self, repo: Repository, dependency: Dependency, path: Path, sidecar: Path) -> None:
        repo.download_to_file(dependency, path)
        repo.download_to_file(dependency, sidecar)
        expected = self.cache.normalize_sidecar(sidecar)
        actual = self.cache.file_hash(path)
        if actual != expected:
            self.cache.discard(path, sidecar)
            raise RepositoryError(
                f"Checksum mismatch for {path.name}: expected {expected or '<empty>'}, got {actual}",
                repo.url,
            )
