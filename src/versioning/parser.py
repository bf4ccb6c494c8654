"""Token parsing utilities for dependency coordinates."""

from typing import Optional, Tuple

from common.errors import ParseError
from .models import Dependency, DependencyScope


def tokenize_rightmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, spec or None) using the rightmost-colon rule."""
    s = s.strip()
    if ':' not in s:
        return s, None
    parts = s.rsplit(':', 1)
    identifier = parts[0].strip()
    spec_part = parts[1].strip() if len(parts) > 1 else ''
    spec = spec_part if spec_part else None
    return identifier, spec


def _normalize_version(raw: Optional[str]) -> Optional[str]:
    if raw is None or raw.strip() == '' or raw.strip().lower() == 'latest':
        return None
    return raw.strip()


def parse_coordinate(token: str, scope: DependencyScope = DependencyScope.COMPILE) -> Dependency:
    """Parse a CLI/config token into a Dependency.

    Accepted forms are ``group:artifact``, ``group:artifact:version`` and
    ``group:artifact:version:classifier``. A missing, empty or ``latest``
    version leaves the dependency unresolved.

    Raises:
        ParseError: the token does not have two to four non-empty leading parts.
    """
    parts = [p.strip() for p in (token or '').strip().split(':')]
    if len(parts) < 2 or len(parts) > 4 or not parts[0] or not parts[1]:
        raise ParseError(f"Invalid dependency coordinate '{token}'")

    if len(parts) == 4:
        id_part, classifier = tokenize_rightmost_colon(token)
        group, artifact, version = [p.strip() for p in id_part.split(':')]
    else:
        classifier = None
        group, artifact = parts[0], parts[1]
        version = parts[2] if len(parts) == 3 else None

    return Dependency.of(
        group,
        artifact,
        _normalize_version(version),
        classifier=classifier,
        scope=scope,
    )
