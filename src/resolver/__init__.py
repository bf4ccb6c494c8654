"""Dependency resolution engine.

This package provides the recursive resolve-and-fetch algorithm, the on-disk
artifact cache with hash sidecars, the caller-owned resolution session, and
the sink contract used to hand resolved artifacts to a host.
"""

from common.errors import DependencyError, DownloadError, ParseError, RepositoryError
from .cache import ArtifactCache, CachePaths
from .session import ResolutionSession
from .sink import ClasspathCollector, InjectionSink
from .downloader import DependencyDownloader

__all__ = [
    "ArtifactCache",
    "CachePaths",
    "ClasspathCollector",
    "DependencyDownloader",
    "DependencyError",
    "DownloadError",
    "InjectionSink",
    "ParseError",
    "RepositoryError",
    "ResolutionSession",
]
