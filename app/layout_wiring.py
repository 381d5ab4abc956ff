from __future__ import annotations

from adapters.elk.backend import ElkSubprocessBackend
from adapters.elk.convert import ElkGraphConverter
from adapters.layout.layered import LayeredLayoutEngine
from adapters.layout.semantic import SemanticLayoutEngine
from adapters.routing.router import OrthogonalRouterFactory
from app.config import AppSettings, LayoutMode
from domain.ports.layout import LayoutEngine
from domain.services.build_diagram_layout import BuildDiagramLayout


def build_layout_engine(settings: AppSettings, mode: LayoutMode | None = None) -> LayoutEngine:
    mode = mode or settings.layout.mode
    if mode == "layered":
        return LayeredLayoutEngine(settings.layout.to_layered_config())
    if mode == "semantic":
        return SemanticLayoutEngine(
            settings.semantic.to_semantic_config(),
            settings.semantic.to_node_sizer(),
        )
    msg = f"Unknown layout mode: {mode}"
    raise ValueError(msg)


def build_diagram_service(
    settings: AppSettings, mode: LayoutMode | None = None
) -> BuildDiagramLayout:
    return BuildDiagramLayout(
        build_layout_engine(settings, mode),
        OrthogonalRouterFactory(settings.routing.to_routing_config()),
    )


def build_elk_converter(settings: AppSettings) -> ElkGraphConverter:
    return ElkGraphConverter(
        semantic_layers=settings.elk.semantic_layers,
        scale_by_resources=settings.elk.scale_by_resources,
    )


def build_elk_backend(settings: AppSettings) -> ElkSubprocessBackend:
    return ElkSubprocessBackend(
        command=settings.elk.command or None,
        timeout=settings.elk.timeout_seconds,
    )
