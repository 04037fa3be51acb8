"""FastAPI routes for the cycle-finder HTTP API."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter
from pydantic import BaseModel, Field

from cycle_finder import __version__
from cycle_finder.analysis.cycles import is_cyclic, strongly_connected_components
from cycle_finder.analysis.whitelist import Whitelist
from cycle_finder.collector.loader import TypeDeclModel, to_type_decl
from cycle_finder.models import AnalysisConfig, ElementPolicy
from cycle_finder.pipeline import build_graph, run_analysis
from cycle_finder.report import edge_to_dict, report_to_dict

router = APIRouter(prefix="/api")


# --- Request / Response models ---

class GraphRequest(BaseModel):
    types: list[TypeDeclModel]
    element_policy: ElementPolicy = ElementPolicy.SUPPLEMENT
    expand_subtypes: bool = False


class CyclesRequest(GraphRequest):
    whitelist: str = ""
    max_cycles: int | None = Field(default=None, ge=1)


def _config(req: GraphRequest) -> AnalysisConfig:
    return AnalysisConfig(
        element_policy=req.element_policy,
        expand_subtypes=req.expand_subtypes,
        max_cycles_per_component=getattr(req, "max_cycles", None),
    )


# --- Endpoints ---

@router.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


@router.post("/graph")
async def graph(req: GraphRequest):
    decls = [to_type_decl(t) for t in req.types]

    def _run():
        graph = build_graph(decls, _config(req))
        components = [
            [str(t) for t in c]
            for c in strongly_connected_components(graph)
            if is_cyclic(graph, c)
        ]
        return graph, components

    built, components = await asyncio.to_thread(_run)
    return {
        "nodes": len(built.nodes),
        "opaque_nodes": sum(1 for n in built.nodes.values() if n.opaque),
        "edges": [edge_to_dict(e) for e in built.edges],
        "components": components,
    }


@router.post("/cycles")
async def cycles(req: CyclesRequest):
    decls = [to_type_decl(t) for t in req.types]
    whitelist = Whitelist.parse(req.whitelist, source="<request>")
    result = await asyncio.to_thread(run_analysis, decls, whitelist, _config(req))

    data = report_to_dict(result.cycles, result.truncations, result.diagnostics)
    data["graph"] = {
        "nodes": result.node_count,
        "edges": result.edge_count,
        "suppressed_edges": result.suppressed_edges,
    }
    return data
