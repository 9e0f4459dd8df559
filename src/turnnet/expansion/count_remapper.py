"""Redistribute traffic counts recorded at expanded nodes onto their split ids."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from turnnet.network.domain_types import NodeSplit, TrafficCountRecord

logger = logging.getLogger(__name__)

NodeSplitMap = Mapping[int, Sequence[NodeSplit]]


def _zeros(readings: Sequence[float]) -> tuple:
    return tuple(np.zeros(len(readings)).tolist())


class CountRemapper:
    """Clones count rows touching an expanded node once per split direction.

    A row on ``(A, B)`` where ``A`` was expanded becomes up to two rows: one
    keyed on A's inbound node for neighbor ``B`` with the BA readings zeroed,
    and one keyed on the outbound node with the AB readings zeroed. If only
    ``B`` was expanded the B side is replaced instead and the zeroed
    directions swap. When both ends were expanded each A split is paired with
    the B split it is linked to (inbound with outbound and vice versa). Every
    emitted row gets a fresh sequential id.
    """

    def __init__(self, split_map: NodeSplitMap, *, first_id: int = 1):
        self._splits: Dict[int, Dict[int, NodeSplit]] = {
            int(node_id): {split.neighbor: split for split in splits}
            for node_id, splits in split_map.items()
        }
        self._first_id = int(first_id)

    def remap(self, records: Iterable[TrafficCountRecord]) -> List[TrafficCountRecord]:
        sequence = self._first_id
        rows_in = 0
        remapped: List[TrafficCountRecord] = []
        for record in records:
            rows_in += 1
            for clone in self._split_record(record):
                remapped.append(
                    replace(clone, link_id=str(sequence), correlation_id=str(sequence))
                )
                sequence += 1
        logger.info("Remapped traffic counts: %d rows in, %d rows out.", rows_in, len(remapped))
        return remapped

    def _split_record(self, record: TrafficCountRecord) -> Iterator[TrafficCountRecord]:
        if record.node_a in self._splits:
            split = self._lookup(record.node_a, record.node_b)
            if split is None:
                return
            # Both ends expanded: pair each A split with the B split it is linked to.
            far_inbound: Optional[int] = record.node_b
            far_outbound: Optional[int] = record.node_b
            if record.node_b in self._splits:
                far = self._lookup(record.node_b, record.node_a)
                if far is None:
                    return
                far_inbound, far_outbound = far.inbound, far.outbound
            if split.inbound is not None:
                if far_outbound is None:
                    self._warn_unpaired(record, split.inbound)
                else:
                    yield replace(record, node_a=split.inbound, node_b=far_outbound, ba=_zeros(record.ba))
            if split.outbound is not None:
                if far_inbound is None:
                    self._warn_unpaired(record, split.outbound)
                else:
                    yield replace(record, node_a=split.outbound, node_b=far_inbound, ab=_zeros(record.ab))
        elif record.node_b in self._splits:
            split = self._lookup(record.node_b, record.node_a)
            if split is None:
                return
            if split.inbound is not None:
                yield replace(record, node_b=split.inbound, ab=_zeros(record.ab))
            if split.outbound is not None:
                yield replace(record, node_b=split.outbound, ba=_zeros(record.ba))
        else:
            yield record

    def _lookup(self, expanded: int, neighbor: int) -> Optional[NodeSplit]:
        split = self._splits[expanded].get(neighbor)
        if split is None:
            logger.debug(
                "Count on (%s, %s) dropped: node %s was expanded but has no link to %s.",
                expanded,
                neighbor,
                expanded,
                neighbor,
            )
        return split

    @staticmethod
    def _warn_unpaired(record: TrafficCountRecord, split_id: int) -> None:
        logger.warning(
            "Count on (%s, %s) via %s dropped: node %s has no matching split.",
            record.node_a,
            record.node_b,
            split_id,
            record.node_b,
        )
