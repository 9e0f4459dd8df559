"""In-memory network registry shared by every expansion step."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .domain_types import Line, Link, LinkKey, Node

logger = logging.getLogger(__name__)


@dataclass
class NetworkModel:
    """Nodes, links and transit lines owned by a single expansion run."""

    nodes: Dict[int, Node] = field(default_factory=dict)
    links: Dict[LinkKey, Link] = field(default_factory=dict)
    lines: Dict[str, Line] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        nodes: Iterable[Node],
        links: Iterable[Link],
        lines: Iterable[Line] = (),
    ) -> "NetworkModel":
        model = cls()
        for node in nodes:
            model.nodes[node.id] = node
        for link in links:
            if link.key in model.links:
                logger.warning("Duplicate link %s; keeping the last occurrence.", link.key)
            model.links[link.key] = link
        for line in lines:
            model.lines[line.id] = line
        return model

    # ---------------------------------------------------------------- lookups
    def get_node(self, node_id: int) -> Optional[Node]:
        return self.nodes.get(node_id)

    def in_links(self, node_id: int) -> List[Tuple[Link, Node]]:
        """Links ending at ``node_id`` paired with their upstream node."""
        pairs: List[Tuple[Link, Node]] = []
        for link in self.links.values():
            if link.to_node != node_id:
                continue
            upstream = self.nodes.get(link.from_node)
            if upstream is None:
                logger.warning("Link %s starts at unknown node %s; ignored.", link.key, link.from_node)
                continue
            pairs.append((link, upstream))
        return pairs

    def out_links(self, node_id: int) -> List[Tuple[Link, Node]]:
        """Links leaving ``node_id`` paired with their downstream node."""
        pairs: List[Tuple[Link, Node]] = []
        for link in self.links.values():
            if link.from_node != node_id:
                continue
            downstream = self.nodes.get(link.to_node)
            if downstream is None:
                logger.warning("Link %s ends at unknown node %s; ignored.", link.key, link.to_node)
                continue
            pairs.append((link, downstream))
        return pairs

    def degree(self, node_id: int) -> int:
        return sum(
            1 for link in self.links.values() if link.from_node == node_id or link.to_node == node_id
        )

    # -------------------------------------------------------------- mutation
    def add_nodes(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            self.nodes[node.id] = node

    def add_links(self, links: Iterable[Link]) -> None:
        for link in links:
            self.links[link.key] = link

    def remove_links(self, keys: Iterable[LinkKey]) -> None:
        for key in keys:
            self.links.pop(key, None)

    def remove_orphan_nodes(self, candidates: Iterable[int]) -> List[int]:
        """Drop each candidate node that no longer touches any link."""
        removed: List[int] = []
        for node_id in candidates:
            if node_id in self.nodes and self.degree(node_id) == 0:
                del self.nodes[node_id]
                removed.append(node_id)
        return removed

