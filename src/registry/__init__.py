"""Maven repositories and POM descriptor parsing."""

from .repository import Repository
from .pom import DeclaredDependency, PomDescriptor, find, parse_pom

__all__ = [
    "DeclaredDependency",
    "PomDescriptor",
    "Repository",
    "find",
    "parse_pom",
]
