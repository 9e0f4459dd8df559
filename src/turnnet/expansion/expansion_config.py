"""Expansion parameters and their YAML loader."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpansionConfig:
    """Geometry and output settings for a node-expansion run.

    ``expansion_radius`` is the distance between the expanded node and each
    synthetic node; ``offset`` shifts a synthetic node sideways so that the
    in- and out-node created for the same neighbor do not coincide. A radius
    of zero collapses every synthetic node onto the original coordinate.
    """

    expansion_radius: float = 1.0
    offset: float = 0.0
    output_prefix: str = "t_"
    geojson_crs: str = "EPSG:2039"
    export_geojson: bool = True

    def __post_init__(self) -> None:
        radius = float(self.expansion_radius)
        offset = float(self.offset)
        if not math.isfinite(radius):
            raise ValueError(f"Expansion radius must be finite, got {radius}.")
        if not math.isfinite(offset):
            raise ValueError(f"Expansion offset must be finite, got {offset}.")
        if radius < abs(offset):
            raise ValueError(
                f"Expansion radius ({radius}) must be at least |offset| ({abs(offset)})."
            )
        object.__setattr__(self, "expansion_radius", radius)
        object.__setattr__(self, "offset", offset)
        object.__setattr__(self, "output_prefix", str(self.output_prefix or ""))

    @property
    def distance(self) -> float:
        """Along-link distance of each synthetic node from the expanded node."""
        return math.sqrt(self.expansion_radius**2 - self.offset**2)

    # ------------------------------------------------------------------- I/O
    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ExpansionConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            logger.warning("Ignoring unknown expansion settings: %s", ", ".join(unknown))
        return cls(**{key: value for key, value in payload.items() if key in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ExpansionConfig":
        return cls.from_mapping(read_yaml_settings(path))

    def to_yaml(self, path: str | Path) -> None:
        with Path(path).open("w", encoding="utf-8") as handle:
            yaml.safe_dump(self.to_dict(), handle, sort_keys=True)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def read_yaml_settings(path: str | Path) -> Dict[str, Any]:
    """Raw settings mapping from a YAML file, without applying defaults."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Expansion config YAML not found at {config_path}")
    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        raise TypeError("Expansion config YAML must contain a mapping at the top level")
    return dict(data)
