from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
import pytest

from turnnet.expansion.count_remapper import CountRemapper
from turnnet.expansion.expand_turns_cli import run_cli
from turnnet.expansion.expansion_config import ExpansionConfig
from turnnet.expansion.expansion_service import expand_network
from turnnet.network.domain_types import HOUR_BUCKETS, Line, LineSegment, Link, Node, NodeSplit, TrafficCountRecord
from turnnet.network.network_model import NetworkModel
from turnnet.tables import csv_tables


# ------------------------------------------------------------ adjacent nodes
def _corridor() -> NetworkModel:
    nodes = [
        Node(10, 0.0, 0.0),
        Node(20, 100.0, 0.0),
        Node(1, -100.0, 0.0),
        Node(2, 200.0, 0.0),
        Node(3, 0.0, 100.0),
        Node(4, 100.0, 100.0),
        Node(5, 100.0, -100.0),
    ]
    links = [
        Link(1, 10, 100.0, type="1"),
        Link(10, 20, 100.0, type="1"),
        Link(20, 2, 100.0, type="1"),
        Link(10, 3, 100.0, type="1"),
        Link(4, 20, 100.0, type="1"),
        Link(20, 5, 100.0, type="1"),
    ]
    line = Line(
        "L",
        [LineSegment(1, 10, 100.0, "1"), LineSegment(10, 20, 100.0, "0"), LineSegment(20, 5, 100.0, "1")],
    )
    return NetworkModel.from_records(nodes, links, [line])


def test_adjacent_expanded_nodes_use_original_ids_for_prohibitions():
    model = _corridor()
    visited: List[int] = []
    outcome = expand_network(
        model,
        {10: [(1, 3)], 20: [(10, 2)]},
        ExpansionConfig(expansion_radius=3.0, offset=2.0),
        on_node=visited.append,
    )

    assert visited == [10, 20]
    assert list(outcome.results[10].connectors) == [(21, 22)]
    assert list(outcome.results[20].connectors) == [(24, 26), (24, 27), (25, 27)]
    assert outcome.results[20].neighbor_origin == {22: 10}

    path = [(segment.from_node, segment.to_node) for segment in model.lines["L"].segments]
    assert path == [(1, 21), (21, 22), (22, 25), (25, 27), (27, 5)]
    assert outcome.breaks == []

    assert NodeSplit(10, inbound=25, outbound=None) in outcome.split_map[20]
    assert outcome.split_map[10] == [
        NodeSplit(1, inbound=21, outbound=None),
        NodeSplit(20, inbound=None, outbound=22),
        NodeSplit(3, inbound=None, outbound=23),
    ]
    assert sorted(outcome.removed_nodes) == [10, 20]
    assert 10 not in model.nodes and 20 not in model.nodes
    assert all(10 not in key[:2] and 20 not in key[:2] for key in model.links)


def test_counts_between_adjacent_expanded_nodes_use_live_nodes():
    model = _corridor()
    outcome = expand_network(
        model,
        {10: [(1, 3)], 20: [(10, 2)]},
        ExpansionConfig(expansion_radius=3.0, offset=2.0),
    )
    readings = tuple(float(hour) for hour in range(len(HOUR_BUCKETS)))
    record = TrafficCountRecord("9", "9", 10, 20, "09/09/2015", "1", ab=readings, ba=readings)

    (clone,) = CountRemapper(outcome.split_map).remap([record])

    assert (clone.node_a, clone.node_b) == (22, 25)
    assert clone.node_a in model.nodes and clone.node_b in model.nodes
    assert (22, 25, "1") in model.links


def test_unknown_worklist_node_is_skipped():
    model = _corridor()
    outcome = expand_network(model, {999: [(1, 2)]}, ExpansionConfig())
    assert outcome.skipped_nodes == [999]
    assert outcome.results == {}
    assert len(model.links) == 6


# --------------------------------------------------------------- end to end
def _write_csv(path: Path, header: Sequence[str], rows: List[Sequence[object]]) -> Path:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        writer.writerows(rows)
    return path


def _write_inputs(tmp_path: Path) -> Dict[str, Path]:
    readings = [10] * (2 * len(HOUR_BUCKETS))
    return {
        "nodes": _write_csv(
            tmp_path / "nodes.csv",
            csv_tables.NODE_COLUMNS,
            [[1, "True", -10, 0], [2, "True", 0, -10], [3, "True", 10, 0], [4, "True", 0, 10], [100, "True", 0, 0]],
        ),
        "links": _write_csv(
            tmp_path / "links.csv",
            csv_tables.LINK_COLUMNS,
            [[i, j, 10.0, "c", "1.0", 2, "0.0", "900", "13.9"] for i, j in ((1, 100), (2, 100), (100, 3), (100, 4))],
        ),
        "turn_restrictions": _write_csv(
            tmp_path / "EmmeManeuverRestrictions.csv",
            csv_tables.TURN_RESTRICTION_COLUMNS,
            [["a", 100, 1, 3, 0], ["a", 100, 2, 2, 0], ["a", 100, 2, 4, -1]],
        ),
        "line_paths": _write_csv(
            tmp_path / "line_path.csv",
            csv_tables.LINE_PATH_COLUMNS,
            [["L1", 1, 100, 10.0, 0, 1], ["L1", 100, 4, 10.0, 1, 1]],
        ),
        "traffic_counts": _write_csv(
            tmp_path / "LinkCounts.csv",
            csv_tables.COUNT_COLUMNS,
            [[501, 77, 100, 1, "09/09/2015", 1, *readings], [502, 78, 1, 2, "09/09/2015", 1, *readings]],
        ),
    }


def _cli_args(paths: Dict[str, Path], *extra: str) -> List[str]:
    return [
        "--nodes", str(paths["nodes"]),
        "--links", str(paths["links"]),
        "--line-paths", str(paths["line_paths"]),
        "--turn-restrictions", str(paths["turn_restrictions"]),
        "--traffic-counts", str(paths["traffic_counts"]),
        "--expansion-radius", "3",
        "--offset", "2",
        "--log-level", "ERROR",
        *extra,
    ]


def test_cli_writes_expanded_tables(tmp_path):
    paths = _write_inputs(tmp_path)
    result = run_cli(_cli_args(paths))

    assert result.worklist == {100: [(1, 3)]}
    assert all(path is not None for path in result.written.values())

    nodes = pd.read_csv(tmp_path / "t_nodes.csv")
    assert sorted(nodes["i"]) == [1, 2, 3, 4, 101, 102, 103, 104]

    links = pd.read_csv(tmp_path / "t_links.csv")
    assert len(links) == 7
    assert not ((links["i"] == 101) & (links["j"] == 103)).any()
    assert set(links["@linkcap"]) == {900}

    line_path = pd.read_csv(tmp_path / "t_line_path.csv")
    assert list(zip(line_path["i"], line_path["j"])) == [(1, 101), (101, 104), (104, 4)]
    assert line_path["number"].tolist() == [0, 1, 2]
    assert line_path["is_stop"].tolist() == [1, 0, 1]

    counts = pd.read_csv(tmp_path / "t_LinkCounts.csv")
    assert counts["LinkID"].tolist() == [1, 2]
    assert counts["CID"].tolist() == [1, 2]
    assert list(zip(counts["A"], counts["B"])) == [(101, 1), (1, 2)]
    assert counts.loc[0, "AB0600"] == pytest.approx(10.0)
    assert counts.loc[0, "BA0600"] == pytest.approx(0.0)

    for name in ("node.geojson", "links.geojson", "t_node.geojson", "t_links.geojson"):
        assert (tmp_path / name).exists()
    expanded = json.loads((tmp_path / "t_node.geojson").read_text(encoding="utf-8"))
    assert len(expanded["features"]) == 8


def test_cli_honours_prefix_and_geojson_switch(tmp_path):
    paths = _write_inputs(tmp_path)
    run_cli(_cli_args(paths, "--output-prefix", "x_", "--no-geojson"))

    assert (tmp_path / "x_links.csv").exists()
    assert not (tmp_path / "t_links.csv").exists()
    assert not list(tmp_path.glob("*.geojson"))


def test_cli_reports_unreadable_inputs_without_crashing(tmp_path):
    paths = _write_inputs(tmp_path)
    paths["turn_restrictions"].unlink()
    result = run_cli(_cli_args(paths, "--no-geojson"))

    assert not result.reads["turn_restrictions"].ok
    assert result.worklist == {}
    assert len(pd.read_csv(tmp_path / "t_links.csv")) == 4


def test_cli_rejects_offset_larger_than_radius(tmp_path):
    paths = _write_inputs(tmp_path)
    with pytest.raises(SystemExit):
        run_cli(_cli_args(paths, "--offset", "5"))
