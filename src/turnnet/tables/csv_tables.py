"""Readers and writers for the delimited network tables.

Every reader returns a :class:`TableReadResult` instead of raising: rows that
fail to parse are skipped and reported as :class:`RowDiagnostic` entries, and a
file that cannot be opened yields an empty result with ``error`` set. Writers
log and return ``None`` on failure so the remaining outputs are still produced.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd

from turnnet.network.domain_types import (
    HOUR_BUCKETS,
    Line,
    LineSegment,
    Link,
    Node,
    TrafficCountRecord,
    TurnRestriction,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NODE_COLUMNS: Sequence[str] = ["i", "is_centroid", "x", "y"]
LINK_COLUMNS: Sequence[str] = [
    "i",
    "j",
    "length_met",
    "mode",
    "num_lanes",
    "type",
    "@at",
    "@linkcap",
    "s0link_m_per_s",
]
LINE_PATH_COLUMNS: Sequence[str] = ["line", "i", "j", "length_met", "number", "is_stop"]
TURN_RESTRICTION_COLUMNS: Sequence[str] = ["c", "At", "From", "To", "TPF"]
COUNT_COLUMNS: Sequence[str] = [
    "LinkID",
    "CID",
    "A",
    "B",
    "COUNTDATE",
    "factor",
    *[f"{direction}{bucket}" for bucket in HOUR_BUCKETS for direction in ("AB", "BA")],
]


@dataclass(frozen=True)
class RowDiagnostic:
    """A skipped input row (``line_number`` counts the header as line 1)."""

    line_number: int
    message: str


@dataclass
class TableReadResult(Generic[T]):
    """Outcome of reading one table."""

    path: str
    rows: List[T] = field(default_factory=list)
    diagnostics: List[RowDiagnostic] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def clean(self) -> bool:
        return self.error is None and not self.diagnostics


# ---------------------------------------------------------------- parsing --
def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value))


def _to_int(value: object) -> int:
    text = "" if _is_missing(value) else str(value).strip()
    if not text:
        raise ValueError("empty integer field")
    return int(text)


def _to_float(value: object) -> float:
    text = "" if _is_missing(value) else str(value).strip()
    if not text:
        raise ValueError("empty numeric field")
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"non-finite numeric field {text!r}")
    return number


def _text(value: object) -> str:
    return "" if _is_missing(value) else str(value).strip()


def _load_frame(path: str | Path, columns: Sequence[str], label: str) -> Tuple[Optional[pd.DataFrame], Optional[str]]:
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except FileNotFoundError:
        message = f"Cannot read {label} file: {path} (not found)"
    except (OSError, UnicodeDecodeError) as exc:
        message = f"Cannot read {label} file: {path} ({exc})"
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        message = f"Check format of {label} file: {path} ({exc})"
    else:
        if frame.shape[1] < len(columns):
            message = (
                f"Check format of {label} file: {path} "
                f"(expected {len(columns)} columns, found {frame.shape[1]})"
            )
        else:
            return frame, None
    logger.error(message)
    return None, message


def _read_rows(
    path: str | Path,
    columns: Sequence[str],
    label: str,
    parse_row: Callable[[Sequence[str]], T],
) -> TableReadResult[T]:
    result: TableReadResult[T] = TableReadResult(path=str(path))
    frame, error = _load_frame(path, columns, label)
    if frame is None:
        result.error = error
        return result
    for offset, values in enumerate(frame.itertuples(index=False, name=None)):
        try:
            result.rows.append(parse_row(values))
        except (ValueError, TypeError, IndexError) as exc:
            diagnostic = RowDiagnostic(line_number=offset + 2, message=str(exc))
            result.diagnostics.append(diagnostic)
            logger.warning("Skipping row %d of %s file %s: %s", diagnostic.line_number, label, path, exc)
    logger.info(
        "Read %d %s rows from %s (%d skipped).",
        len(result.rows),
        label,
        path,
        len(result.diagnostics),
    )
    return result


def _parse_node(values: Sequence[str]) -> Node:
    return Node(id=_to_int(values[0]), x=_to_float(values[2]), y=_to_float(values[3]))


def _parse_link(values: Sequence[str]) -> Link:
    return Link(
        from_node=_to_int(values[0]),
        to_node=_to_int(values[1]),
        length=_to_float(values[2]),
        mode=_text(values[3]),
        num_lanes=_text(values[4]),
        type=_text(values[5]),
        at=_text(values[6]),
        capacity=_text(values[7]),
        speed_limit=_text(values[8]),
    )


def _parse_restriction(values: Sequence[str]) -> TurnRestriction:
    return TurnRestriction(
        category=_text(values[0]),
        at_node=_to_int(values[1]),
        from_node=_to_int(values[2]),
        to_node=_to_int(values[3]),
        designator=_to_int(values[4]),
    )


def _parse_count(values: Sequence[str]) -> TrafficCountRecord:
    readings = [_to_float(value) for value in values[6 : 6 + 2 * len(HOUR_BUCKETS)]]
    return TrafficCountRecord(
        link_id=_text(values[0]),
        correlation_id=_text(values[1]),
        node_a=_to_int(values[2]),
        node_b=_to_int(values[3]),
        date=_text(values[4]),
        factor=_text(values[5]),
        ab=tuple(readings[0::2]),
        ba=tuple(readings[1::2]),
    )


def _parse_line_row(values: Sequence[str]) -> Tuple[str, int, LineSegment]:
    number = _to_int(values[4])
    if number < 0:
        raise ValueError(f"negative segment number {number}")
    segment = LineSegment(
        from_node=_to_int(values[1]),
        to_node=_to_int(values[2]),
        length=_to_float(values[3]),
        is_stop=_text(values[5]),
    )
    return _text(values[0]), number, segment


def read_nodes(path: str | Path) -> TableReadResult[Node]:
    return _read_rows(path, NODE_COLUMNS, "nodes", _parse_node)


def read_links(path: str | Path) -> TableReadResult[Link]:
    return _read_rows(path, LINK_COLUMNS, "links", _parse_link)


def read_turn_restrictions(path: str | Path) -> TableReadResult[TurnRestriction]:
    return _read_rows(path, TURN_RESTRICTION_COLUMNS, "turn restrictions", _parse_restriction)


def read_traffic_counts(path: str | Path) -> TableReadResult[TrafficCountRecord]:
    return _read_rows(path, COUNT_COLUMNS, "traffic counts", _parse_count)


def read_lines(path: str | Path) -> TableReadResult[Line]:
    """Read line paths, ordering segments by their ``number`` column.

    The first row of a line is appended; later rows are inserted at their
    ``number`` position (clamped to the end of the current sequence).
    """
    staged = _read_rows(
        path,
        LINE_PATH_COLUMNS,
        "line paths",
        _parse_line_row,
    )
    lines: Dict[str, Line] = {}
    for line_id, number, segment in staged.rows:
        line = lines.get(line_id)
        if line is None:
            lines[line_id] = Line(id=line_id, segments=[segment])
        else:
            line.add_segment(segment, number)
    return TableReadResult(
        path=staged.path,
        rows=list(lines.values()),
        diagnostics=staged.diagnostics,
        error=staged.error,
    )


# ---------------------------------------------------------------- writing --
def output_path(input_path: str | Path, prefix: str) -> Path:
    """``<dir>/<prefix><name>`` for an input table path."""
    source = Path(input_path)
    return source.with_name(f"{prefix}{source.name}")


def _write_frame(path: str | Path, rows: Iterable[Sequence[object]], columns: Sequence[str], label: str) -> Optional[Path]:
    target = Path(path)
    frame = pd.DataFrame(list(rows), columns=list(columns))
    try:
        frame.to_csv(target, index=False)
    except OSError as exc:
        logger.error("Cannot write %s file: %s (%s)", label, target, exc)
        return None
    logger.info("Wrote %d %s rows to %s", len(frame), label, target)
    return target


def write_nodes(path: str | Path, nodes: Iterable[Node]) -> Optional[Path]:
    return _write_frame(
        path,
        ((node.id, "True", node.x, node.y) for node in nodes),
        NODE_COLUMNS,
        "nodes",
    )


def write_links(path: str | Path, links: Iterable[Link]) -> Optional[Path]:
    return _write_frame(
        path,
        (
            (
                link.from_node,
                link.to_node,
                link.length,
                link.mode,
                link.num_lanes,
                link.type,
                link.at,
                link.capacity,
                link.speed_limit,
            )
            for link in links
        ),
        LINK_COLUMNS,
        "links",
    )


def write_lines(path: str | Path, lines: Iterable[Line]) -> Optional[Path]:
    rows = [
        (line.id, segment.from_node, segment.to_node, segment.length, number, segment.is_stop)
        for line in lines
        for number, segment in enumerate(line.segments)
    ]
    return _write_frame(path, rows, LINE_PATH_COLUMNS, "line paths")


def write_traffic_counts(path: str | Path, records: Iterable[TrafficCountRecord]) -> Optional[Path]:
    rows = []
    for record in records:
        readings = [value for pair in zip(record.ab, record.ba) for value in pair]
        rows.append(
            (
                record.link_id,
                record.correlation_id,
                record.node_a,
                record.node_b,
                record.date,
                record.factor,
                *readings,
            )
        )
    return _write_frame(path, rows, COUNT_COLUMNS, "traffic counts")
