from __future__ import annotations

import math
import textwrap

import pytest

from turnnet.expansion.expand_turns_cli import DEFAULT_OFFSET, DEFAULT_RADIUS, build_config, parse_args
from turnnet.expansion.expansion_config import ExpansionConfig


def test_distance_combines_radius_and_offset():
    config = ExpansionConfig(expansion_radius=3.0, offset=2.0)
    assert config.distance == pytest.approx(math.sqrt(5.0))
    assert ExpansionConfig(expansion_radius=0.0, offset=0.0).distance == 0.0


@pytest.mark.parametrize(
    "radius, offset",
    [
        (float("nan"), 0.0),
        (1.0, float("nan")),
        (1.0, 2.0),
        (1.0, -1.5),
        (-1.0, 0.0),
        (float("inf"), 0.0),
        (float("inf"), float("inf")),
        (1.0, float("-inf")),
    ],
)
def test_invalid_geometry_is_rejected(radius, offset):
    with pytest.raises(ValueError):
        ExpansionConfig(expansion_radius=radius, offset=offset)


def test_yaml_roundtrip(tmp_path):
    config_path = tmp_path / "expansion.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            expansion_radius: 4
            offset: 1.5
            output_prefix: out_
            export_geojson: false
            unused_key: 1
            """
        ).strip(),
        encoding="utf-8",
    )
    config = ExpansionConfig.from_yaml(config_path)
    assert config.expansion_radius == 4.0
    assert config.offset == 1.5
    assert config.output_prefix == "out_"
    assert config.export_geojson is False

    roundtrip_path = tmp_path / "roundtrip.yaml"
    config.to_yaml(roundtrip_path)
    assert ExpansionConfig.from_yaml(roundtrip_path) == config


def test_yaml_with_bad_geometry_fails(tmp_path):
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("expansion_radius: 1\noffset: 3\n", encoding="utf-8")
    with pytest.raises(ValueError):
        ExpansionConfig.from_yaml(config_path)


def test_missing_yaml_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ExpansionConfig.from_yaml(tmp_path / "missing.yaml")


def test_cli_keeps_its_geometry_defaults_under_partial_yaml(tmp_path):
    config_path = tmp_path / "prefix_only.yaml"
    config_path.write_text("output_prefix: out_\n", encoding="utf-8")

    config = build_config(parse_args(["--config", str(config_path)]))
    assert config.expansion_radius == DEFAULT_RADIUS
    assert config.offset == DEFAULT_OFFSET
    assert config.output_prefix == "out_"


def test_cli_flags_override_yaml_values(tmp_path):
    config_path = tmp_path / "expansion.yaml"
    config_path.write_text("expansion_radius: 5\noffset: 1\n", encoding="utf-8")

    config = build_config(parse_args(["--config", str(config_path), "--offset", "0.5"]))
    assert config.expansion_radius == 5.0
    assert config.offset == 0.5
