"""Configuration loading for the CLI.

Settings are merged with the precedence CLI flags > config file > defaults
from :class:`constants.Constants`, then turned into a DependencyDownloader.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants
from registry.repository import Repository
from versioning.models import DependencyScope

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration file is missing or malformed."""


@dataclass
class DownloaderSettings:
    """Effective settings after merging every source."""

    base_dir: str = Constants.DEFAULT_BASE_DIR
    scopes: List[DependencyScope] = field(
        default_factory=lambda: [DependencyScope(s) for s in Constants.DEFAULT_SCOPES]
    )
    ignore_optional: bool = Constants.IGNORE_OPTIONAL
    verbose: bool = Constants.VERBOSE
    repositories: List[Repository] = field(default_factory=list)


def load_config(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict (empty when ``path`` is falsy).

    Raises:
        ConfigError: unreadable file, invalid syntax, or a non-mapping document.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _parse_repository(entry: Any) -> Repository:
    if isinstance(entry, str):
        return Repository(entry)
    if isinstance(entry, dict) and entry.get("url"):
        return Repository(
            str(entry["url"]),
            repo_id=entry.get("id"),
            username=entry.get("username"),
            password=entry.get("password"),
        )
    raise ConfigError(f"Invalid repository entry: {entry!r}")


def _parse_scopes(values: List[str]) -> List[DependencyScope]:
    scopes = []
    for value in values:
        scope = DependencyScope.from_string(str(value))
        if scope is None:
            raise ConfigError(f"Unknown scope: {value}")
        scopes.append(scope)
    return scopes


def build_settings(args, config: Dict[str, Any]) -> DownloaderSettings:
    """Merge CLI arguments over ``config`` over the built-in defaults."""
    settings = DownloaderSettings()

    if config.get("base_dir"):
        settings.base_dir = str(config["base_dir"])
    if config.get("scopes"):
        settings.scopes = _parse_scopes(list(config["scopes"]))
    if "ignore_optional" in config:
        settings.ignore_optional = bool(config["ignore_optional"])
    if "verbose" in config:
        settings.verbose = bool(config["verbose"])
    for entry in config.get("repositories") or []:
        repo = _parse_repository(entry)
        if repo not in settings.repositories:
            settings.repositories.append(repo)

    if getattr(args, "BASE_DIR", None):
        settings.base_dir = args.BASE_DIR
    if getattr(args, "SCOPES", None):
        settings.scopes = _parse_scopes(args.SCOPES)
    if getattr(args, "INCLUDE_OPTIONAL", False):
        settings.ignore_optional = False
    if getattr(args, "QUIET", False):
        settings.verbose = False
    cli_repos = [Repository(url) for url in getattr(args, "REPOSITORIES", None) or []]
    if cli_repos:
        # CLI repositories go first; config ones remain as fallbacks
        settings.repositories = cli_repos + [r for r in settings.repositories if r not in cli_repos]

    logger.debug("Effective settings: base_dir=%s scopes=%s ignore_optional=%s repositories=%s",
                 settings.base_dir, [s.value for s in settings.scopes],
                 settings.ignore_optional, [str(r) for r in settings.repositories])
    return settings
