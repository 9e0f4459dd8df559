"""Node expansion: restriction resolution, junction rewrite and dependent repairs."""

from .count_remapper import CountRemapper
from .expansion_config import ExpansionConfig
from .line_patcher import LinePatcher
from .node_expander import ExpansionResult, NodeExpander
from .restrictions import resolve_restrictions

__all__ = [
    "CountRemapper",
    "ExpansionConfig",
    "ExpansionResult",
    "ExpansionRunResult",
    "ExpansionService",
    "LinePatcher",
    "NetworkExpansion",
    "NetworkPaths",
    "NodeExpander",
    "expand_network",
    "resolve_restrictions",
]


def __getattr__(name):
    if name in {"ExpansionRunResult", "ExpansionService", "NetworkExpansion", "NetworkPaths", "expand_network"}:
        from . import expansion_service

        return getattr(expansion_service, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
