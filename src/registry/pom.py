"""POM descriptor parsing into typed values.

Fields are read with :func:`find`, which falls back to a default for optional
fields and raises :class:`ParseError` for mandatory ones. The result is a
:class:`PomDescriptor`; the resolver never walks raw XML itself.
"""
from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from constants import Constants
from common.errors import ParseError
from common.logging_utils import extra_context, is_debug_enabled
from registry.repository import Repository
from registry.xmlutil import child, child_text, children, local_name
from versioning.models import Dependency, DependencyScope

logger = logging.getLogger(__name__)

_MISSING = object()
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def find(field_name: str, element: ET.Element, default=_MISSING) -> str:
    """Return the stripped text of ``element``'s child named ``field_name``.

    An absent or blank child yields ``default``; without a default the field
    is mandatory and its absence raises ``ParseError`` naming the field.
    """
    value = child_text(element, field_name)
    if value is not None:
        return value
    if default is _MISSING:
        raise ParseError.missing(field_name)
    return default


@dataclass
class DeclaredDependency:
    """A ``<dependency>`` entry exactly as declared (version may be absent)."""
    group: str
    artifact: str
    version: Optional[str]
    scope: str = "compile"
    optional: bool = False
    classifier: Optional[str] = None

    @property
    def scope_value(self) -> Optional[DependencyScope]:
        return DependencyScope.from_string(self.scope)

    def to_dependency(self) -> Dependency:
        if not self.version:
            raise ParseError(
                f"Missing required field 'version' for {self.group}:{self.artifact}",
                field="version",
            )
        return Dependency.of(
            self.group,
            self.artifact,
            self.version,
            classifier=self.classifier,
            scope=self.scope_value or DependencyScope.COMPILE,
            optional=self.optional,
        )


@dataclass
class PomDescriptor:
    """Typed view of the parts of a POM the resolver cares about."""
    group: Optional[str] = None
    artifact: Optional[str] = None
    version: Optional[str] = None
    packaging: str = Constants.ARTIFACT_EXTENSION
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[DeclaredDependency] = field(default_factory=list)
    repositories: List[Repository] = field(default_factory=list)

    @property
    def is_binary(self) -> bool:
        """False when the packaging publishes no artifact besides the POM."""
        return self.packaging.lower() not in Constants.NON_BINARY_PACKAGING

    def select(self, scopes: Iterable[DependencyScope], ignore_optional: bool = True) -> List[Dependency]:
        """Dependencies to follow for ``scopes``, in declaration order.

        Optional entries are dropped unless ``ignore_optional`` is False;
        entries whose scope is not requested (or unknown) are dropped before
        their version is checked.

        Raises:
            ParseError: a selected entry has no version.
        """
        wanted = set(scopes)
        selected: List[Dependency] = []
        for declared in self.dependencies:
            if ignore_optional and declared.optional:
                continue
            if declared.scope_value not in wanted:
                if is_debug_enabled(logger):
                    logger.debug("Skipping dependency outside requested scopes", extra=extra_context(
                        event="decision", component="pom", action="select",
                        outcome="scope_filtered", target=f"{declared.group}:{declared.artifact}",
                    ))
                continue
            selected.append(declared.to_dependency())
        return selected


def _interpolate(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    if not value or "${" not in value:
        return value
    return _PLACEHOLDER.sub(lambda m: properties.get(m.group(1), m.group(0)), value)


def _parse_properties(root: ET.Element) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    props = child(root, "properties")
    if props is not None:
        for node in props:
            if isinstance(node.tag, str):
                properties[local_name(node.tag)] = (node.text or "").strip()
    return properties


def parse_dependency(element: ET.Element, properties: Optional[Dict[str, str]] = None) -> DeclaredDependency:
    """Build a DeclaredDependency from a ``<dependency>`` element."""
    properties = properties or {}
    return DeclaredDependency(
        group=find("groupId", element),
        artifact=find("artifactId", element),
        version=_interpolate(find("version", element, None), properties),
        scope=find("scope", element, "compile"),
        optional=find("optional", element, "false").lower() == "true",
        classifier=find("classifier", element, None),
    )


def parse_repository(element: ET.Element) -> Repository:
    """Build a Repository from a ``<repository>`` element; ``url`` is mandatory."""
    return Repository(find("url", element), repo_id=find("id", element, None))


def parse_pom(source: Union[bytes, str, os.PathLike]) -> PomDescriptor:
    """Parse a POM from raw bytes, an XML string, or a file path.

    Raises:
        ParseError: malformed XML or a missing mandatory field.
    """
    try:
        if isinstance(source, bytes):
            root = ET.fromstring(source)
        elif isinstance(source, str) and source.lstrip().startswith("<"):
            root = ET.fromstring(source)
        else:
            root = ET.parse(Path(source)).getroot()
    except ET.ParseError as exc:
        raise ParseError(f"Unable to parse pom.xml: {exc}") from exc
    except OSError as exc:
        raise ParseError(f"Unable to read pom.xml: {exc}") from exc
    return parse_pom_element(root)


def parse_pom_element(root: ET.Element) -> PomDescriptor:
    """Extract a PomDescriptor from an already parsed ``<project>`` element."""
    parent = child(root, "parent")
    group = find("groupId", root, None) or child_text(parent, "groupId")
    version = find("version", root, None) or child_text(parent, "version")

    properties = _parse_properties(root)
    for key, value in (
        ("project.groupId", group),
        ("project.version", version),
        ("project.parent.version", child_text(parent, "version")),
        ("project.parent.groupId", child_text(parent, "groupId")),
    ):
        if value:
            properties.setdefault(key, value)

    descriptor = PomDescriptor(
        group=group,
        artifact=find("artifactId", root, None),
        version=version,
        packaging=find("packaging", root, Constants.ARTIFACT_EXTENSION),
        properties=properties,
    )

    for container in children(root, "repositories"):
        for node in children(container, "repository"):
            descriptor.repositories.append(parse_repository(node))

    for container in children(root, "dependencies"):
        for node in children(container, "dependency"):
            descriptor.dependencies.append(parse_dependency(node, properties))

    if is_debug_enabled(logger):
        logger.debug("Parsed descriptor", extra=extra_context(
            event="parse", component="pom", action="parse_pom", outcome="success",
            target=f"{descriptor.group}:{descriptor.artifact}:{descriptor.version}",
            count=len(descriptor.dependencies),
        ))
    return descriptor
