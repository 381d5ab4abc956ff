from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from pydantic import ValidationError

from adapters.filesystem.graph_repository import (
    FileSystemGraphRepository,
    FileSystemLayoutRepository,
)
from adapters.filesystem.json_utils import dump_json_bytes, load_json
from domain.models import Point, RoutedPath
from tests.helpers.graph_fixtures import graph_fixture_path, load_graph_fixture


def test_load_reads_camel_case_fields() -> None:
    graph = FileSystemGraphRepository().load(graph_fixture_path("web_stack.json"))

    assert graph.node_ids() == ["nginx", "web", "postgres"]
    assert graph.node_index()["postgres"].resource_requests is not None
    assert graph.edges[1].port == 5432
    assert graph.metadata.source_files == ["docker-compose.yml"]


def test_load_rejects_dangling_edges() -> None:
    with pytest.raises(ValidationError, match="non-existent node: missing"):
        FileSystemGraphRepository().load(graph_fixture_path("dangling_edge.json"))


def test_save_then_load_preserves_graph(tmp_path: Path) -> None:
    repository = FileSystemGraphRepository()
    graph = load_graph_fixture("event_pipeline.json")
    target = tmp_path / "nested" / "pipeline.json"

    repository.save(graph, target)

    assert repository.load(target) == graph
    raw = orjson.loads(target.read_bytes())
    assert raw["edges"][0]["from"] == graph.edges[0].from_id


def test_load_all_with_paths_is_sorted(tmp_path: Path) -> None:
    repository = FileSystemGraphRepository()
    repository.save(load_graph_fixture("web_stack.json"), tmp_path / "b.json")
    repository.save(load_graph_fixture("cyclic.json"), tmp_path / "a.json")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    loaded = repository.load_all_with_paths(tmp_path)

    assert [path.name for path, _ in loaded] == ["a.json", "b.json"]
    assert loaded[1][1].metadata.project == "web-stack"


def test_layout_repository_writes_json_atomically(tmp_path: Path) -> None:
    target = tmp_path / "out" / "layout.json"
    path = RoutedPath(start=Point(0, 0), end=Point(10, 0), points=((0.0, 0.0), (10.0, 0.0)))

    FileSystemLayoutRepository().save({"routes": [path], "tags": {"b", "a"}}, target)

    data = load_json(target)
    assert data["routes"][0]["points"] == [[0.0, 0.0], [10.0, 0.0]]
    assert data["tags"] == ["a", "b"]
    assert not target.with_suffix(".json.tmp").exists()


def test_load_json_requires_an_object(tmp_path: Path) -> None:
    target = tmp_path / "list.json"
    target.write_bytes(dump_json_bytes([1, 2, 3]))

    with pytest.raises(ValueError, match="Expected a JSON object"):
        load_json(target)
