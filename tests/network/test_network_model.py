from __future__ import annotations

import logging

from turnnet.network import IdAllocator, Line, LineSegment, Link, NetworkModel, Node


def _model() -> NetworkModel:
    nodes = [Node(1, 0.0, 0.0), Node(2, 10.0, 0.0), Node(3, 20.0, 0.0), Node(7, 5.0, 5.0)]
    links = [Link(1, 2, 10.0, type="1"), Link(2, 3, 10.0, type="1"), Link(3, 2, 10.0, type="1")]
    lines = [Line("L1", [LineSegment(1, 2, 10.0, "1"), LineSegment(2, 3, 10.0, "1")])]
    return NetworkModel.from_records(nodes, links, lines)


def test_incident_links_are_paired_with_their_neighbors():
    model = _model()
    assert [(link.from_node, neighbor.id) for link, neighbor in model.in_links(2)] == [(1, 1), (3, 3)]
    assert [(link.to_node, neighbor.id) for link, neighbor in model.out_links(2)] == [(3, 3)]
    assert model.degree(2) == 3
    assert model.degree(7) == 0


def test_links_to_unknown_nodes_are_ignored(caplog):
    model = _model()
    model.add_links([Link(99, 2, 1.0, type="1")])
    with caplog.at_level(logging.WARNING):
        assert [neighbor.id for _, neighbor in model.in_links(2)] == [1, 3]
    assert "unknown node 99" in caplog.text


def test_duplicate_link_keeps_last_occurrence():
    model = NetworkModel.from_records(
        [Node(1, 0.0, 0.0), Node(2, 1.0, 0.0)],
        [Link(1, 2, 1.0, type="1"), Link(1, 2, 2.0, type="1"), Link(1, 2, 3.0, type="2")],
    )
    assert len(model.links) == 2
    assert model.links[(1, 2, "1")].length == 2.0


def test_remove_orphan_nodes_only_drops_unlinked_candidates():
    model = _model()
    model.remove_links([Link(2, 3, 0.0, type="1").key, Link(3, 2, 0.0, type="1").key])

    assert model.remove_orphan_nodes([3, 2, 7, 42]) == [3, 7]
    assert sorted(model.nodes) == [1, 2]


def test_allocator_starts_after_largest_id():
    allocator = IdAllocator.after([4, 17, 9])
    assert allocator.peek() == 18
    assert [allocator.next(), allocator.next()] == [18, 19]
    assert IdAllocator.after([]).next() == 1
