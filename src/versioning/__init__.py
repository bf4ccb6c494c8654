"""Version values, dependency coordinates and coordinate parsing."""

from .models import Coordinate, Dependency, DependencyScope
from .version import Version
from .parser import parse_coordinate

__all__ = [
    "Coordinate",
    "Dependency",
    "DependencyScope",
    "Version",
    "parse_coordinate",
]
