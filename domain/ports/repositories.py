from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from domain.models import InfraGraph


class GraphRepository(Protocol):
    def load(self, path: Path) -> InfraGraph: ...

    def load_all_with_paths(self, directory: Path) -> Sequence[tuple[Path, InfraGraph]]: ...

    def save(self, graph: InfraGraph, path: Path) -> None: ...


class LayoutRepository(Protocol):
    def save(self, payload: Any, path: Path) -> None: ...
