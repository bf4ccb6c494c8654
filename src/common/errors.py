"""Exception hierarchy shared by the parser, repositories and the resolver."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


class DependencyError(Exception):
    """Base class for every failure raised by depfetch."""


class ParseError(DependencyError):
    """A descriptor or coordinate could not be parsed.

    ``field`` names the mandatory field that was missing, or is None when the
    document itself is malformed.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    @classmethod
    def missing(cls, field: str) -> "ParseError":
        return cls(f"Missing required field '{field}'", field=field)


class RepositoryError(DependencyError):
    """A single repository failed a single operation."""

    def __init__(self, message: str, repository: Optional[str] = None):
        super().__init__(message)
        self.repository = repository


@dataclass
class RepositoryFailure:
    """One entry of an aggregated failure: which source failed and why."""

    source: str
    error: Exception

    def describe(self) -> str:
        return f"{self.source}: {type(self.error).__name__}: {self.error}"


class DownloadError(DependencyError):
    """No candidate repository could satisfy a version lookup or a fetch.

    Always an aggregation: ``failures`` keeps every repository's failure in
    the order the repositories were tried.
    """

    def __init__(self, message: str, failures: Optional[List[RepositoryFailure]] = None):
        self.message = message
        self.failures: List[RepositoryFailure] = list(failures or [])
        super().__init__(self.__str__())

    @property
    def causes(self) -> List[Exception]:
        return [failure.error for failure in self.failures]

    def add(self, source: str, error: Exception) -> None:
        self.failures.append(RepositoryFailure(source, error))
        self.args = (self.__str__(),)

    def __str__(self) -> str:
        if not self.failures:
            return self.message
        lines = [self.message]
        lines.extend(f"  caused by {failure.describe()}" for failure in self.failures)
        return "\n".join(lines)
