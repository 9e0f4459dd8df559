"""GeoJSON snapshots of the network for visual debugging."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from shapely.geometry import LineString, Point, mapping

from turnnet.network.domain_types import Link, LinkKey, Node

logger = logging.getLogger(__name__)

EXPANDED_PREFIX = "t_"


def geojson_paths(nodes_path: str | Path, links_path: str | Path, *, expanded: bool) -> tuple[Path, Path]:
    """Debug file locations beside the input tables (``t_`` marks the expanded network)."""
    prefix = EXPANDED_PREFIX if expanded else ""
    return (
        Path(nodes_path).with_name(f"{prefix}node.geojson"),
        Path(links_path).with_name(f"{prefix}links.geojson"),
    )


def _feature_collection(features: List[Dict[str, object]], crs: str) -> Dict[str, object]:
    return {
        "type": "FeatureCollection",
        "crs": {"type": "name", "properties": {"name": crs}},
        "features": features,
    }


def node_features(nodes: Iterable[Node]) -> List[Dict[str, object]]:
    return [
        {
            "type": "Feature",
            "properties": {"id": str(node.id)},
            "geometry": mapping(Point(node.x, node.y)),
        }
        for node in nodes
    ]


def link_features(links: Mapping[LinkKey, Link] | Iterable[Link], nodes: Mapping[int, Node]) -> List[Dict[str, object]]:
    features: List[Dict[str, object]] = []
    link_list = links.values() if isinstance(links, Mapping) else links
    skipped = 0
    for link in link_list:
        start = nodes.get(link.from_node)
        end = nodes.get(link.to_node)
        if start is None or end is None:
            skipped += 1
            continue
        features.append(
            {
                "type": "Feature",
                "properties": {"id": str(link.key)},
                "geometry": mapping(LineString([start.coord, end.coord])),
            }
        )
    if skipped:
        logger.warning("Skipped %d links with unknown endpoints in GeoJSON export.", skipped)
    return features


def _dump(path: Path, payload: Dict[str, object], label: str) -> Optional[Path]:
    try:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle)
    except OSError as exc:
        logger.error("Cannot export %s in GeoJSON format: %s (%s)", label, path, exc)
        return None
    return path


def export_nodes_geojson(path: str | Path, nodes: Iterable[Node], *, crs: str = "EPSG:2039") -> Optional[Path]:
    return _dump(Path(path), _feature_collection(node_features(nodes), crs), "nodes")


def export_links_geojson(
    path: str | Path,
    links: Mapping[LinkKey, Link] | Iterable[Link],
    nodes: Mapping[int, Node],
    *,
    crs: str = "EPSG:2039",
) -> Optional[Path]:
    return _dump(Path(path), _feature_collection(link_features(links, nodes), crs), "links")
