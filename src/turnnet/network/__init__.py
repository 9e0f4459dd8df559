"""Network model exports."""

from .domain_types import (
    HOUR_BUCKETS,
    ConnectorKey,
    ContinuityBreak,
    Line,
    LineSegment,
    Link,
    LinkKey,
    Node,
    NodeSplit,
    TrafficCountRecord,
    TurnRestriction,
)
from .id_allocator import IdAllocator
from .network_model import NetworkModel

__all__ = [
    "HOUR_BUCKETS",
    "ConnectorKey",
    "ContinuityBreak",
    "IdAllocator",
    "Line",
    "LineSegment",
    "Link",
    "LinkKey",
    "NetworkModel",
    "Node",
    "NodeSplit",
    "TrafficCountRecord",
    "TurnRestriction",
]
