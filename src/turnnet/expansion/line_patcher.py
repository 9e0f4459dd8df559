"""Rewrite transit line paths so they follow an expanded node's new links."""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping

from turnnet.network.domain_types import ConnectorKey, ContinuityBreak, Line, LineSegment, Link

from .node_expander import ExpansionResult

logger = logging.getLogger(__name__)

NOT_A_STOP = "0"


def _segment_from_link(link: Link, is_stop: str) -> LineSegment:
    return LineSegment(
        from_node=link.from_node,
        to_node=link.to_node,
        length=link.length,
        is_stop=is_stop,
    )


class LinePatcher:
    """Splices stub and connector links into line segment sequences."""

    def patch_lines(
        self, lines: Mapping[str, Line] | Iterable[Line], result: ExpansionResult
    ) -> List[ContinuityBreak]:
        line_list = lines.values() if isinstance(lines, Mapping) else lines
        breaks: List[ContinuityBreak] = []
        for line in line_list:
            breaks.extend(self.patch_line(line, result))
        return breaks

    def patch_line(self, line: Line, result: ExpansionResult) -> List[ContinuityBreak]:
        """Patch ``line`` in place and return the breaks left unrepaired."""
        node_id = result.node_id
        segments = line.segments
        touched = False

        for idx, segment in enumerate(segments):
            if segment.to_node != node_id:
                continue
            stub = result.in_stubs.get(segment.from_node)
            if stub is not None:
                segments[idx] = _segment_from_link(stub, segment.is_stop)
                touched = True

        for idx, segment in enumerate(segments):
            if segment.from_node != node_id:
                continue
            stub = result.out_stubs.get(segment.to_node)
            if stub is not None:
                segments[idx] = _segment_from_link(stub, segment.is_stop)
                touched = True

        if not touched:
            return []

        cluster = set(result.nodes) | {node_id}
        unrepaired: List[ContinuityBreak] = []
        shift = 0
        for position in line.continuity_breaks():
            idx = position + shift
            gap_from = segments[idx].to_node
            gap_to = segments[idx + 1].from_node
            connector = result.connectors.get(ConnectorKey(gap_from, gap_to))
            if connector is not None:
                segments.insert(idx + 1, _segment_from_link(connector, NOT_A_STOP))
                shift += 1
            elif gap_from in cluster or gap_to in cluster:
                unrepaired.append(
                    ContinuityBreak(line_id=line.id, position=idx, from_node=gap_from, to_node=gap_to)
                )

        for gap in unrepaired:
            logger.warning("Line %s keeps a continuity break at node %s: %s", line.id, node_id, gap)
        return unrepaired
