"""Cycle report formatting: console text and machine-readable dicts."""

from __future__ import annotations

from typing import Iterable

from cycle_finder.analysis.cycles import Truncation
from cycle_finder.analysis.graph_models import Cycle, Edge
from cycle_finder.analysis.whitelist import WhitelistDiagnostic


def format_cycle(cycle: Cycle) -> list[str]:
    lines = ["", "***** Found reference cycle *****"]
    lines.extend(edge.describe() for edge in cycle)
    lines.append("----- Full Types -----")
    lines.extend(str(type_id) for type_id in cycle.types)
    return lines


def format_report(
    cycles: list[Cycle],
    truncations: Iterable[Truncation] = (),
    diagnostics: Iterable[WhitelistDiagnostic] = (),
) -> str:
    """Render cycles the way the console report prints them."""
    lines: list[str] = []
    for cycle in cycles:
        lines.extend(format_cycle(cycle))
    lines.append("")
    for diag in diagnostics:
        lines.append(f"WARNING: {diag}")
    for truncation in truncations:
        lines.append(f"WARNING: {truncation}")
    lines.append(f"{len(cycles)} CYCLES FOUND.")
    return "\n".join(lines) + "\n"


def edge_to_dict(edge: Edge) -> dict:
    return {
        "origin": str(edge.origin),
        "kind": edge.kind.value,
        "name": edge.name,
        "target": str(edge.target),
        "element": edge.element,
        "subtype": edge.subtype,
        "description": edge.describe(),
    }


def report_to_dict(
    cycles: list[Cycle],
    truncations: Iterable[Truncation] = (),
    diagnostics: Iterable[WhitelistDiagnostic] = (),
) -> dict:
    return {
        "cycles": [
            {
                "edges": [edge_to_dict(e) for e in cycle],
                "types": [str(t) for t in cycle.types],
            }
            for cycle in cycles
        ],
        "truncations": [
            {
                "component": [str(t) for t in trunc.component],
                "emitted": trunc.emitted,
                "limit": trunc.limit,
            }
            for trunc in truncations
        ],
        "diagnostics": [
            {
                "source": d.source,
                "line": d.line_number,
                "text": d.text,
                "message": d.message,
            }
            for d in diagnostics
        ],
        "count": len(cycles),
    }
