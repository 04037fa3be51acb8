"""Reference graph construction, whitelist filtering and cycle enumeration."""

from __future__ import annotations

from cycle_finder.analysis.builder import ReferenceGraphBuilder, build_reference_graph
from cycle_finder.analysis.cycles import (
    CycleEnumerator,
    CycleSearchResult,
    Truncation,
    find_elementary_cycles,
    is_cyclic,
    strongly_connected_components,
)
from cycle_finder.analysis.graph_models import Cycle, Edge, EdgeKind, ReferenceGraph, TypeNode
from cycle_finder.analysis.whitelist import Whitelist, WhitelistDiagnostic, WhitelistRule

__all__ = [
    "Cycle",
    "CycleEnumerator",
    "CycleSearchResult",
    "Edge",
    "EdgeKind",
    "ReferenceGraph",
    "ReferenceGraphBuilder",
    "Truncation",
    "TypeNode",
    "Whitelist",
    "WhitelistDiagnostic",
    "WhitelistRule",
    "build_reference_graph",
    "find_elementary_cycles",
    "is_cyclic",
    "strongly_connected_components",
]
