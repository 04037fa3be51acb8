"""Pipeline orchestrator: declarations -> graph -> filtered graph -> cycles -> report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from cycle_finder.analysis.builder import ReferenceGraphBuilder
from cycle_finder.analysis.cycles import CycleEnumerator, Truncation
from cycle_finder.analysis.graph_models import Cycle, ReferenceGraph
from cycle_finder.analysis.whitelist import Whitelist, WhitelistDiagnostic
from cycle_finder.collector.loader import load_declaration_file
from cycle_finder.models import AnalysisConfig, TypeDecl
from cycle_finder.scanner import scan_path

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class AnalysisResult:
    cycles: list[Cycle] = field(default_factory=list)
    truncations: list[Truncation] = field(default_factory=list)
    diagnostics: list[WhitelistDiagnostic] = field(default_factory=list)
    node_count: int = 0
    edge_count: int = 0
    suppressed_edges: int = 0


def load_declarations(paths: Iterable[Path], skip_dirs: list[str] | None = None) -> list[TypeDecl]:
    """Read declarations from JSON files, Python sources or directories."""
    decls: list[TypeDecl] = []
    for path in paths:
        path = Path(path)
        if path.suffix == ".json":
            decls.extend(load_declaration_file(path))
        else:
            decls.extend(scan_path(path, skip_dirs))
    logger.info("Loaded %d declarations", len(decls))
    return decls


def build_graph(
    declarations: list[TypeDecl],
    config: AnalysisConfig | None = None,
) -> ReferenceGraph:
    """Build the strong-reference graph of a declaration set."""
    return ReferenceGraphBuilder(config).build(declarations)


def find_cycles(
    graph: ReferenceGraph,
    whitelist: Whitelist | None = None,
    config: AnalysisConfig | None = None,
) -> list[Cycle]:
    """Every elementary cycle of ``graph`` left after whitelist filtering."""
    return _search(graph, whitelist, config)[0].cycles


def run_analysis(
    declarations: list[TypeDecl],
    whitelist: Whitelist | None = None,
    config: AnalysisConfig | None = None,
    progress: ProgressCallback | None = None,
) -> AnalysisResult:
    """Run the full analysis and collect everything the report needs."""
    config = config or AnalysisConfig()

    if progress:
        progress("Building graph", 0, 1)
    graph = build_graph(declarations, config)
    if progress:
        progress("Building graph", 1, 1)

    if progress:
        progress("Finding cycles", 0, 1)
    search, filtered = _search(graph, whitelist, config)
    if progress:
        progress("Finding cycles", 1, 1)

    return AnalysisResult(
        cycles=search.cycles,
        truncations=search.truncations,
        diagnostics=list(whitelist.diagnostics) if whitelist is not None else [],
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        suppressed_edges=len(graph.edges) - len(filtered.edges),
    )


def _search(graph: ReferenceGraph, whitelist: Whitelist | None, config: AnalysisConfig | None):
    config = config or AnalysisConfig()
    if whitelist is None:
        whitelist = Whitelist.empty()
    filtered = graph.filtered(lambda e: not whitelist.matches(e))
    if len(filtered.edges) != len(graph.edges):
        logger.info("Whitelist suppressed %d edges", len(graph.edges) - len(filtered.edges))
    enumerator = CycleEnumerator(config.max_cycles_per_component)
    return enumerator.enumerate(filtered), filtered
