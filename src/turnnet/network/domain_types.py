"""Core dataclasses shared across the network, expansion and table packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

HOUR_BUCKETS: Tuple[str, ...] = tuple(f"{hour:02d}00" for hour in range(6, 19))


class LinkKey(NamedTuple):
    """Identity of a link: ``(from_node, to_node, type)``."""

    from_node: int
    to_node: int
    type: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.from_node}_{self.to_node}_{self.type}"


class ConnectorKey(NamedTuple):
    """Identity of a connector link between two synthetic nodes."""

    from_node: int
    to_node: int


@dataclass(frozen=True)
class Node:
    """Network node with planar coordinates."""

    id: int
    x: float
    y: float

    @property
    def coord(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Link:
    """Directed link with the attribute bundle carried by the links table.

    Attributes other than the endpoints and ``length`` are kept as the raw
    strings read from the input so that derived links copy them verbatim.
    """

    from_node: int
    to_node: int
    length: float
    mode: str = ""
    num_lanes: str = ""
    type: str = ""
    at: str = ""
    capacity: str = ""
    speed_limit: str = ""

    @property
    def key(self) -> LinkKey:
        return LinkKey(self.from_node, self.to_node, self.type)


@dataclass(frozen=True)
class LineSegment:
    """One hop of a transit line path."""

    from_node: int
    to_node: int
    length: float
    is_stop: str = "0"


@dataclass
class Line:
    """Transit line with an ordered segment sequence."""

    id: str
    segments: List[LineSegment] = field(default_factory=list)

    def add_segment(self, segment: LineSegment, position: Optional[int] = None) -> None:
        """Append ``segment`` or insert it at ``position`` (clamped to the end)."""
        if position is None:
            self.segments.append(segment)
        else:
            self.segments.insert(position, segment)

    def contains_turn(self, at_node: int, from_node: int, to_node: int) -> bool:
        """Return True if the line travels ``from_node -> at_node -> to_node``."""
        for current, following in zip(self.segments, self.segments[1:]):
            if (
                current.to_node == at_node
                and current.from_node == from_node
                and following.to_node == to_node
            ):
                return True
        return False

    def continuity_breaks(self) -> List[int]:
        """Indices ``i`` where ``segments[i].to_node != segments[i + 1].from_node``."""
        return [
            idx
            for idx, (current, following) in enumerate(zip(self.segments, self.segments[1:]))
            if current.to_node != following.from_node
        ]


@dataclass(frozen=True)
class TurnRestriction:
    """Raw maneuver record: movement ``from_node -> at_node -> to_node``."""

    at_node: int
    from_node: int
    to_node: int
    designator: int
    category: str = ""

    @property
    def is_prohibition(self) -> bool:
        return self.designator == 0

    @property
    def is_u_turn(self) -> bool:
        return self.from_node == self.to_node


@dataclass(frozen=True)
class TrafficCountRecord:
    """Directional hourly counts recorded on the node pair ``(node_a, node_b)``."""

    link_id: str
    correlation_id: str
    node_a: int
    node_b: int
    date: str
    factor: str
    ab: Tuple[float, ...]
    ba: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.ab) != len(HOUR_BUCKETS) or len(self.ba) != len(HOUR_BUCKETS):
            raise ValueError(
                f"Traffic counts need {len(HOUR_BUCKETS)} AB and BA readings, "
                f"got {len(self.ab)} and {len(self.ba)}."
            )

    @property
    def total(self) -> float:
        return float(sum(self.ab) + sum(self.ba))


@dataclass(frozen=True)
class NodeSplit:
    """Replacement node ids for one neighbor of an expanded node."""

    neighbor: int
    inbound: Optional[int] = None  # stub node reached from the neighbor
    outbound: Optional[int] = None  # stub node leaving towards the neighbor


@dataclass(frozen=True)
class ContinuityBreak:
    """A gap left in a line path after patching."""

    line_id: str
    position: int
    from_node: int
    to_node: int

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.line_id}[{self.position}]: {self.from_node} -/-> {self.to_node}"
