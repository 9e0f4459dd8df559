"""Select the turn prohibitions that can safely become topology."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from turnnet.network.domain_types import Line, TurnRestriction

logger = logging.getLogger(__name__)

TurnPair = Tuple[int, int]


def resolve_restrictions(
    restrictions: Iterable[TurnRestriction],
    lines: Mapping[str, Line] | Iterable[Line],
) -> Dict[int, List[TurnPair]]:
    """Return ``at_node -> [(from_node, to_node), ...]`` for expandable nodes.

    Only prohibitions (designator 0) that are not U-turns are considered. If
    any transit line actually drives one of the prohibited movements at a
    node, every restriction at that node is dropped: expanding the node would
    cut the line's path.
    """
    line_list = list(lines.values()) if isinstance(lines, Mapping) else list(lines)
    grouped: Dict[int, List[TurnPair]] = {}
    conflicting: Set[int] = set()
    considered = 0

    for restriction in restrictions:
        if not restriction.is_prohibition or restriction.is_u_turn:
            continue
        considered += 1
        at_node = restriction.at_node
        pair = (restriction.from_node, restriction.to_node)
        if at_node not in conflicting:
            for line in line_list:
                if line.contains_turn(at_node, *pair):
                    logger.debug(
                        "Line %s drives prohibited turn %s->%s->%s; skipping node %s.",
                        line.id,
                        pair[0],
                        at_node,
                        pair[1],
                        at_node,
                    )
                    conflicting.add(at_node)
                    break
        pairs = grouped.setdefault(at_node, [])
        if pair not in pairs:
            pairs.append(pair)

    resolved = {
        at_node: pairs
        for at_node, pairs in grouped.items()
        if at_node not in conflicting and pairs
    }
    logger.info(
        "Resolved %d prohibitions into %d expandable nodes (%d nodes conflict with transit lines).",
        considered,
        len(resolved),
        len(conflicting),
    )
    return resolved
