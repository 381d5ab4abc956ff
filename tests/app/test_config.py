from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from adapters.layout.layered import LayeredLayoutEngine
from adapters.layout.semantic import SemanticLayoutEngine
from app.config import AppSettings, GroupingSettings, load_settings
from app.layout_wiring import build_elk_backend, build_layout_engine
from domain.models import Size
from tests.helpers.graph_fixtures import repo_root


def _write_config(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_without_config_file(isolated_cwd: Path) -> None:
    settings = load_settings()

    assert settings.layout.mode == "semantic"
    assert settings.grouping.enabled is False
    assert settings.routing.cell_size == 10.0
    assert settings.elk.command == []
    assert AppSettings._yaml_path is None


def test_yaml_file_is_loaded(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path / "clarity.yaml",
        "layout:\n  mode: layered\n  horizontal_gap: 50\n"
        "routing:\n  cell_size: 20\n"
        "grouping:\n  exclude_types: [database, cache]\n",
    )

    settings = load_settings(config_path)

    assert settings.layout.mode == "layered"
    assert settings.layout.horizontal_gap == 50.0
    assert settings.routing.cell_size == 20.0
    assert settings.grouping.exclude_types == ["database", "cache"]
    assert AppSettings._yaml_path is None


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = _write_config(tmp_path / "clarity.yaml", "layout:\n  mode: layered\n")
    monkeypatch.setenv("CLARITY_LAYOUT__MODE", "Semantic")
    monkeypatch.setenv("CLARITY_GROUPING__EXCLUDE_TYPES", "database, cache")
    monkeypatch.setenv("CLARITY_ELK__COMMAND", "node runner.js")

    settings = load_settings(config_path)

    assert settings.layout.mode == "semantic"
    assert settings.grouping.exclude_types == ["database", "cache"]
    assert settings.elk.command == ["node", "runner.js"]


def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = _write_config(tmp_path / "custom.yaml", "grouping:\n  enabled: true\n")
    monkeypatch.setenv("CLARITY_CONFIG_PATH", str(config_path))

    assert load_settings().grouping.enabled is True


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        load_settings(tmp_path / "absent.yaml")


def test_invalid_mode_is_rejected(isolated_cwd: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLARITY_LAYOUT__MODE", "circular")

    with pytest.raises(ValidationError):
        load_settings()


def test_example_config_matches_defaults() -> None:
    settings = load_settings(repo_root() / "config" / "clarity.example.yaml")

    assert settings.layout == AppSettings().layout
    assert settings.routing == AppSettings().routing
    assert settings.grouping.exclude_types == ["database", "cache"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", []),
        ("database", ["database"]),
        ("[database, 'cache']", ["database", "cache"]),
        ('"queue,storage"', ["queue", "storage"]),
        (["database,cache", "queue"], ["database", "cache", "queue"]),
        (None, []),
    ],
)
def test_exclude_types_parsing(raw: object, expected: list[str]) -> None:
    assert GroupingSettings(exclude_types=raw).exclude_types == expected


def test_sections_convert_to_engine_configs() -> None:
    settings = AppSettings.model_validate(
        {
            "layout": {"node_width": 200, "node_height": 90, "reorder_layers": False},
            "semantic": {"helper_width": 100, "default_width": 150},
            "routing": {"turn_penalty": 7, "anchor_spacing": 20},
        }
    )

    layered = settings.layout.to_layered_config()
    assert layered.node_size == Size(200, 90)
    assert layered.reorder_layers is False
    assert settings.semantic.to_semantic_config().helper_size == Size(100, 50)
    assert settings.semantic.to_node_sizer().default_size == Size(150, 70)
    routing = settings.routing.to_routing_config()
    assert (routing.turn_penalty, routing.anchor_spacing) == (7.0, 20.0)
    assert routing.search_costs().turn_penalty == 7.0


def test_layout_engine_follows_mode() -> None:
    settings = AppSettings()

    assert isinstance(build_layout_engine(settings), SemanticLayoutEngine)
    assert isinstance(build_layout_engine(settings, "layered"), LayeredLayoutEngine)
    with pytest.raises(ValueError, match="Unknown layout mode"):
        build_layout_engine(settings, "radial")  # type: ignore[arg-type]


def test_elk_backend_uses_configured_command() -> None:
    settings = AppSettings.model_validate({"elk": {"command": "cat", "timeout_seconds": 5}})

    backend = build_elk_backend(settings)

    assert backend.command == ("cat",)
    assert backend.timeout == 5.0
