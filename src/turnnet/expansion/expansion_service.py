"""End-to-end turn-restriction expansion over the network tables.

:class:`ExpansionService` ties the pieces together:

1. read nodes, links, line paths, turn restrictions and traffic counts
   (each reader reports skipped rows instead of aborting the run);
2. export the original network as GeoJSON for debugging;
3. reduce the restrictions to the nodes that can be expanded without cutting
   a transit line (:func:`resolve_restrictions`);
4. expand every such node (:class:`NodeExpander`), merge the new nodes and
   links into the model and patch every line path (:class:`LinePatcher`);
5. drop expanded nodes that no longer carry links, remap the traffic counts
   onto the split nodes (:class:`CountRemapper`);
6. write the transformed tables next to their inputs with the configured
   prefix, then the expanded network as GeoJSON.

Example
-------
>>> paths = NetworkPaths(
...     nodes="data/nodes.csv",
...     links="data/links.csv",
...     line_paths="data/line_path.csv",
...     turn_restrictions="data/EmmeManeuverRestrictions.csv",
...     traffic_counts="data/LinkCounts.csv",
... )
>>> service = ExpansionService(paths, ExpansionConfig(expansion_radius=3, offset=2))
>>> result = service.run()
>>> result.breaks  # line gaps that no connector could close
[]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from turnnet.network.domain_types import ContinuityBreak, NodeSplit, TrafficCountRecord
from turnnet.network.id_allocator import IdAllocator
from turnnet.network.network_model import NetworkModel
from turnnet.tables import csv_tables
from turnnet.tables.csv_tables import TableReadResult
from turnnet.tables.geojson_export import export_links_geojson, export_nodes_geojson, geojson_paths

from .count_remapper import CountRemapper
from .expansion_config import ExpansionConfig
from .line_patcher import LinePatcher
from .node_expander import ExpansionResult, NodeExpander
from .restrictions import TurnPair, resolve_restrictions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkPaths:
    """Locations of the five input tables."""

    nodes: str | Path
    links: str | Path
    line_paths: str | Path
    turn_restrictions: str | Path
    traffic_counts: str | Path


@dataclass
class NetworkExpansion:
    """What :func:`expand_network` did to a model."""

    results: Dict[int, ExpansionResult] = field(default_factory=dict)
    split_map: Dict[int, List[NodeSplit]] = field(default_factory=dict)
    breaks: List[ContinuityBreak] = field(default_factory=list)
    removed_nodes: List[int] = field(default_factory=list)
    skipped_nodes: List[int] = field(default_factory=list)


def expand_network(
    model: NetworkModel,
    worklist: Mapping[int, Sequence[TurnPair]],
    config: ExpansionConfig,
    *,
    allocator: Optional[IdAllocator] = None,
    on_node: Optional[Callable[[int], None]] = None,
) -> NetworkExpansion:
    """Expand every worklist node of ``model`` in place.

    Nodes are expanded one at a time against the current link set. When two
    worklist nodes are adjacent, the second one sees the first one's stub
    node as its neighbor; the stub is traced back to the original node id so
    that prohibitions and count splits still refer to the ids in the input.
    """
    allocator = allocator or IdAllocator.after(model.nodes)
    expander = NodeExpander(config, allocator)
    patcher = LinePatcher()
    outcome = NetworkExpansion()
    origin: Dict[int, int] = {}

    def origin_of(node_id: int) -> int:
        return origin.get(node_id, node_id)

    for node_id, forbidden in worklist.items():
        node = model.get_node(node_id)
        if node is None:
            logger.warning("Restricted node %s is not in the network; skipped.", node_id)
            outcome.skipped_nodes.append(node_id)
            if on_node is not None:
                on_node(node_id)
            continue

        in_links = model.in_links(node_id)
        out_links = model.out_links(node_id)
        if any(neighbor.id in origin for _, neighbor in (*in_links, *out_links)):
            logger.debug("Node %s is adjacent to an already expanded node.", node_id)

        result = expander.expand(node, in_links, out_links, forbidden, origin_of=origin_of)
        for new_id in result.nodes:
            origin[new_id] = node_id

        model.remove_links(result.replaced_links)
        model.add_nodes(result.nodes.values())
        model.add_links(result.new_links())
        outcome.breaks.extend(patcher.patch_lines(model.lines, result))
        outcome.results[node_id] = result
        outcome.split_map[node_id] = result.splits()
        if on_node is not None:
            on_node(node_id)

    outcome.removed_nodes = model.remove_orphan_nodes(outcome.results)
    logger.info(
        "Expanded %d nodes (%d skipped, %d removed, %d unrepaired line breaks).",
        len(outcome.results),
        len(outcome.skipped_nodes),
        len(outcome.removed_nodes),
        len(outcome.breaks),
    )
    return outcome


@dataclass
class ExpansionRunResult:
    """Structured payload returned by :meth:`ExpansionService.run`."""

    model: NetworkModel
    worklist: Dict[int, List[TurnPair]]
    expansion: NetworkExpansion
    counts: List[TrafficCountRecord]
    reads: Dict[str, TableReadResult]
    written: Dict[str, Optional[Path]]

    @property
    def breaks(self) -> List[ContinuityBreak]:
        return self.expansion.breaks

    @property
    def split_map(self) -> Dict[int, List[NodeSplit]]:
        return self.expansion.split_map


class ExpansionService:
    """Reads the network tables, expands restricted nodes and writes the results."""

    def __init__(self, paths: NetworkPaths, config: ExpansionConfig):
        self._paths = paths
        self._config = config

    @property
    def config(self) -> ExpansionConfig:
        return self._config

    def load(self) -> Tuple[NetworkModel, Dict[str, TableReadResult]]:
        """Read every input table; failures are logged and leave the table empty."""
        reads: Dict[str, TableReadResult] = {
            "nodes": csv_tables.read_nodes(self._paths.nodes),
            "links": csv_tables.read_links(self._paths.links),
            "line_paths": csv_tables.read_lines(self._paths.line_paths),
            "turn_restrictions": csv_tables.read_turn_restrictions(self._paths.turn_restrictions),
            "traffic_counts": csv_tables.read_traffic_counts(self._paths.traffic_counts),
        }
        model = NetworkModel.from_records(
            reads["nodes"].rows,
            reads["links"].rows,
            reads["line_paths"].rows,
        )
        logger.info(
            "Loaded network: %d nodes, %d links, %d lines.",
            len(model.nodes),
            len(model.links),
            len(model.lines),
        )
        return model, reads

    def run(self, *, on_node: Optional[Callable[[int], None]] = None, on_worklist: Optional[Callable[[int], None]] = None) -> ExpansionRunResult:
        """Execute the whole pipeline.

        ``on_worklist`` receives the number of nodes to expand once it is
        known, ``on_node`` is called after each node has been handled.
        """
        model, reads = self.load()
        if self._config.export_geojson:
            self._export_geojson(model, expanded=False)

        worklist = resolve_restrictions(reads["turn_restrictions"].rows, model.lines)
        if on_worklist is not None:
            on_worklist(len(worklist))
        expansion = expand_network(model, worklist, self._config, on_node=on_node)
        for gap in expansion.breaks:
            logger.warning("Unrepaired continuity break: %s", gap)

        counts = CountRemapper(expansion.split_map).remap(reads["traffic_counts"].rows)
        written = self._write_outputs(model, counts)
        if self._config.export_geojson:
            self._export_geojson(model, expanded=True)

        return ExpansionRunResult(
            model=model,
            worklist=worklist,
            expansion=expansion,
            counts=counts,
            reads=reads,
            written=written,
        )

    # ----------------------------------------------------------------- helpers
    def _write_outputs(self, model: NetworkModel, counts: List[TrafficCountRecord]) -> Dict[str, Optional[Path]]:
        prefix = self._config.output_prefix
        return {
            "nodes": csv_tables.write_nodes(
                csv_tables.output_path(self._paths.nodes, prefix), model.nodes.values()
            ),
            "links": csv_tables.write_links(
                csv_tables.output_path(self._paths.links, prefix), model.links.values()
            ),
            "line_paths": csv_tables.write_lines(
                csv_tables.output_path(self._paths.line_paths, prefix), model.lines.values()
            ),
            "traffic_counts": csv_tables.write_traffic_counts(
                csv_tables.output_path(self._paths.traffic_counts, prefix), counts
            ),
        }

    def _export_geojson(self, model: NetworkModel, *, expanded: bool) -> None:
        nodes_path, links_path = geojson_paths(self._paths.nodes, self._paths.links, expanded=expanded)
        crs = self._config.geojson_crs
        export_nodes_geojson(nodes_path, model.nodes.values(), crs=crs)
        export_links_geojson(links_path, model.links, model.nodes, crs=crs)


__all__ = [
    "ExpansionRunResult",
    "ExpansionService",
    "NetworkExpansion",
    "NetworkPaths",
    "expand_network",
]
