"""Table adapters: delimited network files and GeoJSON debug exports."""

from .csv_tables import (
    RowDiagnostic,
    TableReadResult,
    output_path,
    read_lines,
    read_links,
    read_nodes,
    read_traffic_counts,
    read_turn_restrictions,
    write_lines,
    write_links,
    write_nodes,
    write_traffic_counts,
)
from .geojson_export import export_links_geojson, export_nodes_geojson, geojson_paths

__all__ = [
    "RowDiagnostic",
    "TableReadResult",
    "export_links_geojson",
    "export_nodes_geojson",
    "geojson_paths",
    "output_path",
    "read_lines",
    "read_links",
    "read_nodes",
    "read_traffic_counts",
    "read_turn_restrictions",
    "write_lines",
    "write_links",
    "write_nodes",
    "write_traffic_counts",
]
