"""Reference graph builder: turns node records into a strong-reference multigraph."""

from __future__ import annotations

import logging

from cycle_finder.collector.type_collector import FieldRecord, TypeCollector, TypeRecord
from cycle_finder.models import AnalysisConfig, ElementPolicy, TypeDecl, TypeId
from cycle_finder.analysis.graph_models import (
    Edge,
    EdgeKind,
    ReferenceGraph,
    TypeNode,
)

logger = logging.getLogger(__name__)


class ReferenceGraphBuilder:
    """Build a reference graph from resolved type declarations."""

    def __init__(self, config: AnalysisConfig | None = None):
        self.config = config or AnalysisConfig()

    def build(self, declarations: list[TypeDecl]) -> ReferenceGraph:
        records = TypeCollector(self.config).collect(declarations)
        return self.build_from_records(records)

    def build_from_records(self, records: dict[TypeId, TypeRecord]) -> ReferenceGraph:
        graph = ReferenceGraph()

        # Step 1: Nodes, in collection order
        for type_id, record in records.items():
            graph.add_node(TypeNode(
                type_id=type_id,
                kind=record.kind,
                opaque=record.opaque,
                supertypes=list(record.supertypes),
                enclosing=record.enclosing,
            ))

        subtypes = self._subtype_index(records) if self.config.expand_subtypes else {}

        for type_id, record in records.items():
            if record.opaque:
                continue

            # Step 2: Instance field edges
            for fld in record.fields:
                if fld.static or fld.weak:
                    continue
                self._add_reference_edges(graph, type_id, fld, EdgeKind.FIELD, subtypes)

            # Step 3: Supertype edges
            for sup in record.supertypes:
                graph.add_edge(Edge(type_id, sup, EdgeKind.SUPERTYPE))

            # Step 4: Captured outer instance and captured locals
            if record.captures_outer and record.enclosing is not None and not record.weak_outer:
                graph.add_edge(Edge(type_id, record.enclosing, EdgeKind.OUTER))
            for var in record.captures:
                self._add_reference_edges(graph, type_id, var, EdgeKind.CAPTURE, subtypes)

        logger.info("Built reference graph: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
        return graph

    def _add_reference_edges(
        self,
        graph: ReferenceGraph,
        origin: TypeId,
        fld: FieldRecord,
        kind: EdgeKind,
        subtypes: dict[TypeId, list[TypeId]],
    ) -> None:
        targets: list[tuple[TypeId, bool]] = []
        replace = self.config.element_policy is ElementPolicy.REPLACE and fld.elements
        if fld.declared is not None and not replace:
            targets.append((fld.declared, False))
        for element in fld.elements:
            targets.append((element, True))

        for target, element in targets:
            graph.add_edge(Edge(origin, target, kind, fld.name, element=element))
            for sub in subtypes.get(target, []):
                graph.add_edge(Edge(origin, sub, kind, fld.name, element=element, subtype=True))

    @staticmethod
    def _subtype_index(records: dict[TypeId, TypeRecord]) -> dict[TypeId, list[TypeId]]:
        """Map each type to every declared transitive subtype, in record order."""
        direct: dict[TypeId, list[TypeId]] = {}
        for type_id, record in records.items():
            for sup in record.supertypes:
                direct.setdefault(sup, []).append(type_id)

        index: dict[TypeId, list[TypeId]] = {}
        for root in direct:
            found: list[TypeId] = []
            stack = list(reversed(direct[root]))
            while stack:
                current = stack.pop()
                if current in found or current == root:
                    continue
                found.append(current)
                stack.extend(reversed(direct.get(current, [])))
            index[root] = found
        return index


def build_reference_graph(
    declarations: list[TypeDecl],
    config: AnalysisConfig | None = None,
) -> ReferenceGraph:
    return ReferenceGraphBuilder(config).build(declarations)
