from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.layered import LayeredLayoutConfig
from adapters.layout.semantic import SemanticLayoutConfig
from adapters.layout.sizing import ConnectionNodeSizer
from adapters.routing.router import RoutingConfig
from domain.models import Size

DEFAULT_CONFIG_PATH = Path("config/clarity.yaml")

LayoutMode = Literal["semantic", "layered"]


def _split_string_list_value(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if not raw:
        return []
    if (
        (raw.startswith('"') and raw.endswith('"')) or (raw.startswith("'") and raw.endswith("'"))
    ) and len(raw) >= 2:
        raw = raw[1:-1].strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1].strip()
    if not raw:
        return []
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


class LayoutSettings(BaseModel):
    mode: LayoutMode = "semantic"
    node_width: float = Field(default=180.0, gt=0)
    node_height: float = Field(default=80.0, gt=0)
    horizontal_gap: float = Field(default=100.0, ge=0)
    vertical_gap: float = Field(default=80.0, ge=0)
    reorder_layers: bool = True

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, value: object) -> str:
        return str(value).strip().lower() if value else "semantic"

    def to_layered_config(self) -> LayeredLayoutConfig:
        return LayeredLayoutConfig(
            node_size=Size(self.node_width, self.node_height),
            horizontal_gap=self.horizontal_gap,
            vertical_gap=self.vertical_gap,
            reorder_layers=self.reorder_layers,
        )


class SemanticSettings(BaseModel):
    column_gap: float = Field(default=220.0, ge=0)
    row_gap: float = Field(default=30.0, ge=0)
    helper_width: float = Field(default=130.0, gt=0)
    helper_height: float = Field(default=50.0, gt=0)
    helper_offset_x: float = 40.0
    helper_gap_y: float = 15.0
    helper_stack_gap: float = 10.0
    default_width: float = Field(default=180.0, gt=0)
    default_height: float = Field(default=70.0, gt=0)
    group_bonus: float = Field(default=40.0, ge=0)
    bonus_factor: float = Field(default=30.0, ge=0)
    bonus_cap: float = Field(default=100.0, ge=0)

    def to_semantic_config(self) -> SemanticLayoutConfig:
        return SemanticLayoutConfig(
            helper_size=Size(self.helper_width, self.helper_height),
            column_gap=self.column_gap,
            row_gap=self.row_gap,
            helper_offset_x=self.helper_offset_x,
            helper_gap_y=self.helper_gap_y,
            helper_stack_gap=self.helper_stack_gap,
        )

    def to_node_sizer(self) -> ConnectionNodeSizer:
        return ConnectionNodeSizer(
            default_size=Size(self.default_width, self.default_height),
            group_bonus=self.group_bonus,
            bonus_factor=self.bonus_factor,
            bonus_cap=self.bonus_cap,
        )


class GroupingSettings(BaseModel):
    enabled: bool = False
    min_group_size: int = Field(default=2, ge=1)
    exclude_types: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @field_validator("exclude_types", mode="before")
    @classmethod
    def normalize_lists(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, list):
            normalized: list[str] = []
            for item in value:
                normalized.extend(_split_string_list_value(str(item)))
            return normalized
        return _split_string_list_value(str(value))


class RoutingSettings(BaseModel):
    cell_size: float = Field(default=10.0, gt=0)
    padding: float = Field(default=40.0, ge=0)
    obstacle_margin: float = Field(default=5.0, ge=0)
    padding_cells: int = Field(default=2, ge=0)
    turn_penalty: float = Field(default=5.0, ge=0)
    congestion_weight: float = Field(default=50.0, ge=0)
    iteration_factor: int = Field(default=4, ge=1)
    fallback_margin: float = Field(default=100.0, ge=0)
    anchor_spacing: float = Field(default=15.0, ge=0)

    def to_routing_config(self) -> RoutingConfig:
        return RoutingConfig(
            cell_size=self.cell_size,
            padding=self.padding,
            obstacle_margin=self.obstacle_margin,
            padding_cells=self.padding_cells,
            turn_penalty=self.turn_penalty,
            congestion_weight=self.congestion_weight,
            iteration_factor=self.iteration_factor,
            fallback_margin=self.fallback_margin,
            anchor_spacing=self.anchor_spacing,
        )


class ElkSettings(BaseModel):
    semantic_layers: bool = True
    scale_by_resources: bool = True
    command: Annotated[list[str], NoDecode] = Field(default_factory=list)
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("command", mode="before")
    @classmethod
    def normalize_command(cls, value: object) -> list[str]:
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return [str(item) for item in value]
        return str(value).split()


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CLARITY_", env_nested_delimiter="__")

    layout: LayoutSettings = LayoutSettings()
    semantic: SemanticSettings = SemanticSettings()
    grouping: GroupingSettings = GroupingSettings()
    routing: RoutingSettings = RoutingSettings()
    elk: ElkSettings = ElkSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("CLARITY_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
