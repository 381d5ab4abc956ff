from __future__ import annotations

from pathlib import Path
from typing import Any, List

from filelock import FileLock

from adapters.filesystem.json_utils import load_json, write_json_atomic
from domain.models import InfraGraph
from domain.ports.repositories import GraphRepository, LayoutRepository


class FileSystemGraphRepository(GraphRepository):
    def load(self, path: Path) -> InfraGraph:
        return InfraGraph.model_validate(load_json(path))

    def load_all_with_paths(self, directory: Path) -> List[tuple[Path, InfraGraph]]:
        return [(path, self.load(path)) for path in sorted(directory.glob("*.json"))]

    def save(self, graph: InfraGraph, path: Path) -> None:
        write_json_atomic(path, graph.model_dump(by_alias=True, exclude_none=True))


class FileSystemLayoutRepository(LayoutRepository):
    def save(self, payload: Any, path: Path) -> None:
        lock_path = path.with_suffix(f"{path.suffix}.lock")
        with FileLock(str(lock_path)):
            write_json_atomic(path, payload)
