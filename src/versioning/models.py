"""Data models for dependency coordinates and scopes."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from constants import Constants


class DependencyScope(Enum):
    """Usage context of a dependency; controls transitive traversal."""
    COMPILE = "compile"
    RUNTIME = "runtime"
    TEST = "test"
    PROVIDED = "provided"
    SYSTEM = "system"

    @classmethod
    def from_string(cls, text: Optional[str]) -> Optional["DependencyScope"]:
        """Case-insensitive lookup; unknown scopes (e.g. ``import``) map to None."""
        if not text:
            return None
        try:
            return cls(text.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Coordinate:
    """Version-independent identity of a dependency."""
    group: str
    artifact: str
    classifier: Optional[str] = None

    @property
    def path(self) -> str:
        """Relative ``group/as/dirs/artifact`` path shared by caches and repositories."""
        return f"{self.group.replace('.', '/')}/{self.artifact}"

    def __str__(self) -> str:
        parts = [self.group, self.artifact]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)


@dataclass(eq=False)
class Dependency:
    """A coordinate plus the fields that are filled in during resolution.

    Equality and hashing look at the coordinate only, so the same library
    reached through different paths (or before and after its version is
    resolved) is recognized as one dependency.
    """
    coordinate: Coordinate
    version: Optional[str] = None
    scope: DependencyScope = DependencyScope.COMPILE
    optional: bool = False

    @classmethod
    def of(cls, group: str, artifact: str, version: Optional[str] = None,
           classifier: Optional[str] = None, **kwargs) -> "Dependency":
        return cls(Coordinate(group, artifact, classifier or None), version, **kwargs)

    @property
    def group(self) -> str:
        return self.coordinate.group

    @property
    def artifact(self) -> str:
        return self.coordinate.artifact

    @property
    def classifier(self) -> Optional[str]:
        return self.coordinate.classifier

    def file_name(self, extension: str) -> str:
        """Name of the artifact file, ``artifact-version[-classifier].ext``."""
        name = f"{self.artifact}-{self.version}"
        if self.classifier:
            name += f"-{self.classifier}"
        return f"{name}.{extension}"

    def descriptor_name(self) -> str:
        # POMs are published once per version, never per classifier
        return f"{self.artifact}-{self.version}.{Constants.DESCRIPTOR_EXTENSION}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return self.coordinate == other.coordinate

    def __hash__(self) -> int:
        return hash(self.coordinate)

    def __str__(self) -> str:
        if not self.version:
            return str(self.coordinate)
        parts = [self.group, self.artifact, self.version]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)
