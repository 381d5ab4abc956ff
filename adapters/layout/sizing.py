from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from domain.models import ResourceRequests, Size

SEMANTIC_TYPE_SIZES: dict[str, Size] = {
    "database": Size(170, 80),
    "cache": Size(160, 70),
    "queue": Size(170, 70),
    "proxy": Size(160, 70),
}

RESOURCE_TIERS: tuple[float, ...] = (1.0, 1.1, 1.25, 1.4)
# Upper bounds (exclusive) of the first three tiers.
CPU_TIER_LIMITS: tuple[float, ...] = (0.5, 1.0, 2.0)
MEMORY_TIER_LIMITS_MIB: tuple[float, ...] = (512.0, 1024.0, 4096.0)

_QUANTITY_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*([a-zA-Z]*)\s*$")
_MEMORY_UNITS_MIB: dict[str, float] = {
    "": 1 / (1024 * 1024),
    "ki": 1 / 1024,
    "mi": 1.0,
    "gi": 1024.0,
    "ti": 1024.0 * 1024.0,
    "k": 1000 / (1024 * 1024),
    "m": 1000**2 / (1024 * 1024),
    "g": 1000**3 / (1024 * 1024),
    "t": 1000**4 / (1024 * 1024),
}


def connection_bonus(connections: int, factor: float = 30.0, cap: float = 100.0) -> float:
    scale = math.sqrt(max(1, connections)) / 2
    return min(scale * factor, cap)


@dataclass(frozen=True)
class ConnectionNodeSizer:
    """Type base size grown by a damped, capped connection-count bonus."""

    default_size: Size = Size(180, 70)
    type_sizes: Mapping[str, Size] = field(default_factory=lambda: dict(SEMANTIC_TYPE_SIZES))
    group_bonus: float = 40.0
    bonus_factor: float = 30.0
    bonus_cap: float = 100.0

    def size(self, node_type: str | None, connections: int, is_group: bool) -> Size:
        base = self.type_sizes.get(node_type or "", self.default_size)
        bonus = connection_bonus(connections, self.bonus_factor, self.bonus_cap)
        extra_width = self.group_bonus if is_group else 0.0
        return Size(base.width + extra_width + bonus, base.height + bonus * 0.5)


@dataclass(frozen=True)
class FixedNodeSizer:
    node_size: Size = Size(180, 80)

    def size(self, node_type: str | None, connections: int, is_group: bool) -> Size:
        return self.node_size


def parse_cpu(value: str | None) -> float | None:
    """CPU quantity in cores: ``"500m"`` is 0.5, ``"2"`` is 2."""
    if not value:
        return None
    match = _QUANTITY_RE.match(str(value))
    if not match:
        return None
    amount, unit = float(match.group(1)), match.group(2).lower()
    if unit == "m":
        return amount / 1000
    if unit == "":
        return amount
    return None


def parse_memory_mib(value: str | None) -> float | None:
    if not value:
        return None
    match = _QUANTITY_RE.match(str(value))
    if not match:
        return None
    amount, unit = float(match.group(1)), match.group(2).lower()
    factor = _MEMORY_UNITS_MIB.get(unit)
    if factor is None:
        return None
    return amount * factor


def _tier_for(amount: float | None, limits: tuple[float, ...]) -> float:
    if amount is None:
        return RESOURCE_TIERS[0]
    for idx, limit in enumerate(limits):
        if amount < limit:
            return RESOURCE_TIERS[idx]
    return RESOURCE_TIERS[-1]


def resource_scale(requests: ResourceRequests | None) -> float:
    if requests is None:
        return RESOURCE_TIERS[0]
    cpu_tier = _tier_for(parse_cpu(requests.cpu), CPU_TIER_LIMITS)
    memory_tier = _tier_for(parse_memory_mib(requests.memory), MEMORY_TIER_LIMITS_MIB)
    return max(cpu_tier, memory_tier)
