"""Injection sinks: consumers of resolved artifact files.

A sink is any callable taking the path of a cached artifact. How the host
loads the file is its own business; the resolver only reports paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, List

InjectionSink = Callable[[Path], None]


class ClasspathCollector:
    """Sink that remembers artifact paths in the order they were offered."""

    def __init__(self) -> None:
        self.paths: List[Path] = []

    def __call__(self, path: Path) -> None:
        if path not in self.paths:
            self.paths.append(path)

    def as_classpath(self) -> str:
        return os.pathsep.join(str(p) for p in self.paths)
