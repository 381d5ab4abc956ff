"""Heuristic role classification for infrastructure services.

Two related classifications live here:

* ``detect_semantic_layer`` picks the left-to-right layer used by the external
  layered-layout backend (entry, gateway, ui, api, worker, queue, data).
* ``detect_service_role`` picks the finer role used by the semantic column
  layout (entry, gateway, ui, app, producer, queue, consumer, database, cache,
  storage, helper).

Both are ordered rule tables evaluated top to bottom; the first matching rule
wins. Names are compared lowercased. Edges are accepted for signature
compatibility with the layout engines but do not influence the result.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Literal

from domain.models import DependencyEdge, DirectedEdge, ServiceNode

SemanticLayer = Literal["entry", "gateway", "ui", "api", "worker", "queue", "data"]
ServiceRole = Literal[
    "entry",
    "gateway",
    "ui",
    "app",
    "producer",
    "queue",
    "consumer",
    "database",
    "cache",
    "storage",
    "helper",
]

SEMANTIC_LAYERS: tuple[SemanticLayer, ...] = (
    "entry",
    "gateway",
    "ui",
    "api",
    "worker",
    "queue",
    "data",
)

ENTRY_KEYWORDS = (
    "nginx",
    "haproxy",
    "traefik",
    "envoy",
    "ingress",
    "load-balancer",
    "loadbalancer",
)
GATEWAY_KEYWORDS = ("relay", "gateway")
ROLE_ENTRY_KEYWORDS = ("nginx", "haproxy", "traefik", "envoy", "load-balancer", "loadbalancer")
ROLE_GATEWAY_KEYWORDS = ("relay", "gateway", "ingress")
WORKER_KEYWORDS = ("worker", "consumer", "subscriber", "processor", "cron", "scheduler")
QUEUE_KEYWORDS = ("kafka", "rabbitmq", "nats", "redpanda", "pulsar", "sqs")
DATABASE_KEYWORDS = ("postgres", "mysql", "mariadb", "clickhouse", "mongo", "cassandra")
CACHE_KEYWORDS = ("redis", "memcached", "valkey")
STORAGE_KEYWORDS = ("seaweed", "minio", "s3", "bucket")
CONSUMER_KEYWORDS = ("consumer", "subscriber", "worker")
PRODUCER_KEYWORDS = ("producer", "publisher", "writer")
APP_KEYWORDS = ("api", "app")

Edges = Sequence[DependencyEdge | DirectedEdge]
Predicate = Callable[[str, str], bool]


def _type_is(*types: str) -> Predicate:
    def predicate(node_type: str, _name: str) -> bool:
        return node_type in types

    return predicate


def _name_contains(keywords: Iterable[str]) -> Predicate:
    words = tuple(keywords)

    def predicate(_node_type: str, name: str) -> bool:
        return any(word in name for word in words)

    return predicate


def _name_equals(*names: str) -> Predicate:
    def predicate(_node_type: str, name: str) -> bool:
        return name in names

    return predicate


LAYER_RULES: tuple[tuple[Predicate, SemanticLayer], ...] = (
    (_type_is("proxy"), "entry"),
    (_type_is("database", "storage", "cache"), "data"),
    (_type_is("queue"), "queue"),
    (_type_is("ui"), "ui"),
    (_name_contains(ENTRY_KEYWORDS), "entry"),
    (_name_contains(GATEWAY_KEYWORDS), "gateway"),
    (_name_contains(WORKER_KEYWORDS), "worker"),
    (_name_contains(QUEUE_KEYWORDS), "queue"),
    (_name_contains(DATABASE_KEYWORDS), "data"),
    (_name_contains(CACHE_KEYWORDS), "data"),
    (_name_contains(STORAGE_KEYWORDS), "data"),
)
DEFAULT_LAYER: SemanticLayer = "api"

ROLE_RULES: tuple[tuple[Predicate, ServiceRole], ...] = (
    (_type_is("proxy"), "entry"),
    (_type_is("ui"), "ui"),
    (_type_is("queue"), "queue"),
    (_type_is("database"), "database"),
    (_type_is("cache"), "cache"),
    (_type_is("storage"), "storage"),
    (_name_contains(ROLE_ENTRY_KEYWORDS), "entry"),
    (_name_contains(ROLE_GATEWAY_KEYWORDS), "gateway"),
    (_name_contains(QUEUE_KEYWORDS), "queue"),
    (_name_contains(DATABASE_KEYWORDS), "database"),
    (_name_contains(CACHE_KEYWORDS), "cache"),
    (_name_contains(STORAGE_KEYWORDS), "storage"),
    (_name_contains(CONSUMER_KEYWORDS), "consumer"),
    (_name_contains(PRODUCER_KEYWORDS), "producer"),
    (_name_equals("web"), "app"),
    (_name_contains(APP_KEYWORDS), "app"),
)
DEFAULT_ROLE: ServiceRole = "app"


@dataclass(frozen=True)
class HelperPattern:
    pattern: re.Pattern[str]
    parent_type: str
    parent_pattern: re.Pattern[str] | None = None


HELPER_PATTERNS: tuple[HelperPattern, ...] = (
    HelperPattern(re.compile(r"pgbouncer", re.I), "database", re.compile(r"postgres", re.I)),
    HelperPattern(re.compile(r"taskbroker", re.I), "queue", re.compile(r"kafka", re.I)),
    HelperPattern(re.compile(r"uptime-checker", re.I), "queue", re.compile(r"kafka", re.I)),
    HelperPattern(re.compile(r"-cleanup$", re.I), "container"),
    HelperPattern(re.compile(r"-proxy$", re.I), "container"),
    HelperPattern(re.compile(r"-sidecar$", re.I), "container"),
)


def detect_semantic_layer(node: ServiceNode, edges: Edges = ()) -> SemanticLayer:
    name = node.name.lower()
    for predicate, layer in LAYER_RULES:
        if predicate(node.type, name):
            return layer
    return DEFAULT_LAYER


def matching_helper_pattern(node: ServiceNode) -> HelperPattern | None:
    name = node.name.lower()
    for helper in HELPER_PATTERNS:
        if helper.pattern.search(name):
            return helper
    return None


def detect_service_role(
    node: ServiceNode,
    edges: Edges = (),
    *,
    allow_helper: bool = True,
) -> ServiceRole:
    if allow_helper and matching_helper_pattern(node) is not None:
        return "helper"
    name = node.name.lower()
    for predicate, role in ROLE_RULES:
        if predicate(node.type, name):
            return role
    return DEFAULT_ROLE


def find_helper_parent(
    helper_node: ServiceNode,
    candidates: Sequence[ServiceNode],
    edges: Edges,
) -> str | None:
    """Resolve the node a helper/sidecar is attached to.

    Candidates that are helpers themselves are never returned. A parent
    matching both the expected type and name pattern wins; otherwise the first
    node of the expected type reached through the helper's outgoing edges.
    """
    helper = matching_helper_pattern(helper_node)
    if helper is None:
        return None
    eligible = [
        node
        for node in candidates
        if node.id != helper_node.id and matching_helper_pattern(node) is None
    ]
    if helper.parent_pattern is not None:
        for node in eligible:
            if node.type == helper.parent_type and helper.parent_pattern.search(node.name.lower()):
                return node.id
    connected = [edge.to_id for edge in edges if edge.from_id == helper_node.id]
    for target_id in connected:
        for node in eligible:
            if node.id == target_id and node.type == helper.parent_type:
                return node.id
    return None


def assign_semantic_layers(
    nodes: Iterable[ServiceNode],
    edges: Edges = (),
) -> dict[str, SemanticLayer]:
    return {node.id: detect_semantic_layer(node, edges) for node in nodes}


def summarize_layers(assignments: Mapping[str, SemanticLayer]) -> dict[SemanticLayer, list[str]]:
    summary: dict[SemanticLayer, list[str]] = {layer: [] for layer in SEMANTIC_LAYERS}
    for node_id, layer in assignments.items():
        summary[layer].append(node_id)
    return summary
