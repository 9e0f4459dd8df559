"""Replace a junction node with stub nodes and permitted-turn connectors.

The construction follows the classic "expand node" approach used by
simulation network tools. Every incident link of the junction is cut short at
a new synthetic node placed ``expansion_radius`` away from the junction, in
the direction of the link's far end and shifted sideways by ``offset``::

    <----12---- o            o <----21----
                      O
    ----11----> o            o ----22---->
                  o        o
                  |        ^
                  v        |

Each (in-node, out-node) pair whose movement is not prohibited is then joined
by a connector link. A prohibited movement simply has no connector, so it can
no longer be routed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np

from turnnet.network.domain_types import ConnectorKey, Link, LinkKey, Node, NodeSplit
from turnnet.network.id_allocator import IdAllocator

from .expansion_config import ExpansionConfig

logger = logging.getLogger(__name__)

EPSILON = 1e-8

IncidentLinks = Sequence[Tuple[Link, Node]]


@dataclass
class ExpansionResult:
    """Replacement nodes and links produced for one expanded node."""

    node_id: int
    nodes: Dict[int, Node] = field(default_factory=dict)
    in_stubs: Dict[int, Link] = field(default_factory=dict)  # keyed by upstream neighbor
    out_stubs: Dict[int, Link] = field(default_factory=dict)  # keyed by downstream neighbor
    connectors: Dict[ConnectorKey, Link] = field(default_factory=dict)
    parallel_stubs: List[Link] = field(default_factory=list)
    replaced_links: List[LinkKey] = field(default_factory=list)
    neighbor_origin: Dict[int, int] = field(default_factory=dict)

    def new_links(self) -> List[Link]:
        return [
            *self.in_stubs.values(),
            *self.out_stubs.values(),
            *self.parallel_stubs,
            *self.connectors.values(),
        ]

    def splits(self) -> List[NodeSplit]:
        """Per-neighbor inbound/outbound replacement ids, keyed by original neighbor id."""
        inbound = {
            self.neighbor_origin.get(neighbor, neighbor): stub.to_node
            for neighbor, stub in self.in_stubs.items()
        }
        outbound = {
            self.neighbor_origin.get(neighbor, neighbor): stub.from_node
            for neighbor, stub in self.out_stubs.items()
        }
        neighbors = list(dict.fromkeys([*inbound, *outbound]))
        return [
            NodeSplit(neighbor=neighbor, inbound=inbound.get(neighbor), outbound=outbound.get(neighbor))
            for neighbor in neighbors
        ]


class NodeExpander:
    """Builds the replacement cluster for a single node."""

    def __init__(self, config: ExpansionConfig, allocator: IdAllocator):
        self.config = config
        self.allocator = allocator
        self._distance = config.distance
        self._offset = config.offset

    def expand(
        self,
        node: Node,
        in_links: IncidentLinks,
        out_links: IncidentLinks,
        forbidden: Iterable[Tuple[int, int]],
        *,
        origin_of: Optional[Callable[[int], int]] = None,
    ) -> ExpansionResult:
        """Expand ``node`` given its incident links and prohibited neighbor pairs.

        ``forbidden`` holds ``(from_neighbor, to_neighbor)`` pairs in original
        node ids. ``origin_of`` maps a neighbor that is itself a synthetic node
        (left behind by an earlier expansion) back to the original id, so that
        prohibitions still match when two expanded nodes are adjacent.
        """
        resolve = origin_of or (lambda node_id: node_id)
        forbidden_pairs: Set[Tuple[int, int]] = {(int(a), int(b)) for a, b in forbidden}
        result = ExpansionResult(node_id=node.id)
        center = np.array(node.coord, dtype=float)

        for link, upstream in in_links:
            result.replaced_links.append(link.key)
            self._remember_origin(result, upstream.id, resolve)
            existing = result.in_stubs.get(upstream.id)
            length = self._approach_length(center, upstream)
            if existing is not None:
                result.parallel_stubs.append(
                    replace(link, to_node=existing.to_node, length=length)
                )
                continue
            position = self._stub_position(center, upstream, side=-1.0)
            new_node = self._new_node(position)
            result.nodes[new_node.id] = new_node
            result.in_stubs[upstream.id] = replace(link, to_node=new_node.id, length=length)

        for link, downstream in out_links:
            result.replaced_links.append(link.key)
            self._remember_origin(result, downstream.id, resolve)
            existing = result.out_stubs.get(downstream.id)
            length = self._approach_length(center, downstream)
            if existing is not None:
                result.parallel_stubs.append(
                    replace(link, from_node=existing.from_node, length=length)
                )
                continue
            position = self._stub_position(center, downstream, side=1.0)
            new_node = self._new_node(position)
            result.nodes[new_node.id] = new_node
            result.out_stubs[downstream.id] = replace(link, from_node=new_node.id, length=length)

        for upstream_id, in_stub in result.in_stubs.items():
            for downstream_id, out_stub in result.out_stubs.items():
                if (resolve(upstream_id), resolve(downstream_id)) in forbidden_pairs:
                    continue
                start = result.nodes[in_stub.to_node]
                end = result.nodes[out_stub.from_node]
                connector = replace(
                    in_stub,
                    from_node=start.id,
                    to_node=end.id,
                    length=self._connector_length(start, end),
                )
                result.connectors[ConnectorKey(start.id, end.id)] = connector

        if result.parallel_stubs:
            logger.debug(
                "Node %s: %d parallel links share stub nodes with their siblings.",
                node.id,
                len(result.parallel_stubs),
            )
        logger.debug(
            "Expanded node %s into %d nodes (%d in, %d out, %d connectors, %d prohibited pairs).",
            node.id,
            len(result.nodes),
            len(result.in_stubs),
            len(result.out_stubs),
            len(result.connectors),
            len(forbidden_pairs),
        )
        return result

    # --------------------------------------------------------------- internals
    def _new_node(self, position: np.ndarray) -> Node:
        return Node(id=self.allocator.next(), x=float(position[0]), y=float(position[1]))

    def _approach_length(self, center: np.ndarray, neighbor: Node) -> float:
        length = float(np.hypot(*(np.array(neighbor.coord, dtype=float) - center)))
        return self._distance if length < EPSILON else length

    def _stub_position(self, center: np.ndarray, neighbor: Node, *, side: float) -> np.ndarray:
        """Point at ``distance`` towards ``neighbor``, shifted ``side * offset`` along the normal."""
        diff = np.array(neighbor.coord, dtype=float) - center
        length = float(np.hypot(*diff))
        direction = diff / length if length >= EPSILON else np.zeros(2)
        normal = np.array([-direction[1], direction[0]])
        return center + self._distance * direction + side * self._offset * normal

    def _connector_length(self, start: Node, end: Node) -> float:
        length = float(np.hypot(end.x - start.x, end.y - start.y))
        return self._distance if length < EPSILON else length

    @staticmethod
    def _remember_origin(result: ExpansionResult, neighbor_id: int, resolve: Callable[[int], int]) -> None:
        origin = resolve(neighbor_id)
        if origin != neighbor_id:
            result.neighbor_origin[neighbor_id] = origin
