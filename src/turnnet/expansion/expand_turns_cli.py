"""CLI entry point that turns prohibited turns into network topology."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Sequence

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from turnnet.expansion.expansion_config import ExpansionConfig, read_yaml_settings
from turnnet.expansion.expansion_service import ExpansionRunResult, ExpansionService, NetworkPaths

logger = logging.getLogger(__name__)

DEFAULT_NODES = "./data/nodes.csv"
DEFAULT_LINKS = "./data/links.csv"
DEFAULT_LINE_PATHS = "./data/line_path.csv"
DEFAULT_TURN_RESTRICTIONS = "./data/EmmeManeuverRestrictions.csv"
DEFAULT_TRAFFIC_COUNTS = "./data/LinkCounts.csv"
DEFAULT_RADIUS = 3.0
DEFAULT_OFFSET = 2.0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Expand turn-restricted nodes so that prohibited turns have no link."
    )
    parser.add_argument("--nodes", default=DEFAULT_NODES, help="Nodes CSV (i, is_centroid, x, y).")
    parser.add_argument("--links", default=DEFAULT_LINKS, help="Links CSV (i, j, length_met, ...).")
    parser.add_argument(
        "--line-paths",
        default=DEFAULT_LINE_PATHS,
        help="Transit line path CSV (line, i, j, length_met, number, is_stop).",
    )
    parser.add_argument(
        "--turn-restrictions",
        default=DEFAULT_TURN_RESTRICTIONS,
        help="Maneuver restrictions CSV (c, At, From, To, TPF); TPF 0 marks a prohibited turn.",
    )
    parser.add_argument(
        "--traffic-counts",
        default=DEFAULT_TRAFFIC_COUNTS,
        help="Link counts CSV (LinkID, CID, A, B, COUNTDATE, factor, AB0600, BA0600, ...).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML file with expansion settings; command-line values take precedence.",
    )
    parser.add_argument(
        "--expansion-radius",
        type=float,
        default=None,
        help=f"Distance of every new node from the expanded node (default {DEFAULT_RADIUS}).",
    )
    parser.add_argument(
        "--offset",
        type=float,
        default=None,
        help=f"Sideways offset between the in- and out-node of a link pair (default {DEFAULT_OFFSET}).",
    )
    parser.add_argument(
        "--output-prefix",
        default=None,
        help="Prefix prepended to each input file name for the outputs (default 't_').",
    )
    parser.add_argument(
        "--no-geojson",
        action="store_true",
        help="Skip the GeoJSON debug exports of the network before and after expansion.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Verbosity for the CLI logger.",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def build_config(args: argparse.Namespace) -> ExpansionConfig:
    settings: Dict[str, Any] = {"expansion_radius": DEFAULT_RADIUS, "offset": DEFAULT_OFFSET}
    if args.config:
        settings.update(read_yaml_settings(args.config))
    if args.expansion_radius is not None:
        settings["expansion_radius"] = args.expansion_radius
    if args.offset is not None:
        settings["offset"] = args.offset
    if args.output_prefix is not None:
        settings["output_prefix"] = args.output_prefix
    if args.no_geojson:
        settings["export_geojson"] = False
    return ExpansionConfig.from_mapping(settings)


def run_cli(argv: Sequence[str] | None = None) -> ExpansionRunResult:
    """Parse ``argv``, run the expansion and return the structured result."""
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = build_config(args)
    except (ValueError, TypeError, FileNotFoundError) as exc:
        raise SystemExit(f"Invalid expansion configuration: {exc}") from exc
    logger.info(
        "Expansion radius=%s offset=%s prefix=%r",
        config.expansion_radius,
        config.offset,
        config.output_prefix,
    )

    paths = NetworkPaths(
        nodes=args.nodes,
        links=args.links,
        line_paths=args.line_paths,
        turn_restrictions=args.turn_restrictions,
        traffic_counts=args.traffic_counts,
    )
    service = ExpansionService(paths, config)

    progress_console = Console(stderr=True)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TextColumn("{task.completed:,} nodes", justify="right"),
        TimeElapsedColumn(),
        console=progress_console,
        transient=True,
        disable=not progress_console.is_terminal,
    )
    with progress:
        task_id = progress.add_task("Expanding restricted nodes", total=None)
        result = service.run(
            on_worklist=lambda total: progress.update(task_id, total=total or None),
            on_node=lambda _node_id: progress.advance(task_id, 1),
        )

    failed_reads = [name for name, read in result.reads.items() if not read.ok]
    failed_writes = [name for name, path in result.written.items() if path is None]
    if failed_reads or failed_writes:
        logger.error(
            "Finished with errors (unreadable: %s; unwritten: %s).",
            ", ".join(failed_reads) or "none",
            ", ".join(failed_writes) or "none",
        )
    else:
        logger.info(
            "Exported transformed network: %d nodes, %d links, %d lines, %d count rows.",
            len(result.model.nodes),
            len(result.model.links),
            len(result.model.lines),
            len(result.counts),
        )
    return result


def main(argv: Sequence[str] | None = None) -> None:
    run_cli(argv)


if __name__ == "__main__":
    main()
