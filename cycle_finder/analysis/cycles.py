"""Elementary cycle enumeration over the reference graph.

The graph is split into strongly connected components first; cycles never
cross component boundaries, so each nontrivial component is searched on its
own with Johnson's blocked depth-first search. Both passes are iterative to
stay clear of the recursion limit on long reference chains.

Parallel edges between the same two types (two fields of the same type)
yield distinct cycles. Rotations of a cycle are never emitted twice;
reversed cycles are different cycles.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from cycle_finder.models import TypeId
from cycle_finder.analysis.graph_models import Cycle, Edge, ReferenceGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Truncation:
    """A component whose cycle count hit the configured cap."""
    component: tuple[TypeId, ...]
    emitted: int
    limit: int

    def __str__(self) -> str:
        names = ", ".join(str(t) for t in self.component[:5])
        more = f" (+{len(self.component) - 5} more)" if len(self.component) > 5 else ""
        return (
            f"cycle search truncated after {self.emitted} cycles in a component of "
            f"{len(self.component)} types: {names}{more}"
        )


@dataclass
class ComponentResult:
    component: list[TypeId]
    cycles: list[Cycle] = field(default_factory=list)
    truncation: Truncation | None = None


@dataclass
class CycleSearchResult:
    cycles: list[Cycle] = field(default_factory=list)
    truncations: list[Truncation] = field(default_factory=list)
    components_searched: int = 0


def strongly_connected_components(
    graph: ReferenceGraph,
    nodes: Iterable[TypeId] | None = None,
) -> list[list[TypeId]]:
    """Tarjan's algorithm over ``nodes`` (default: the whole graph).

    Components are returned ordered by their earliest member in node
    insertion order, members likewise ordered.
    """
    position = {type_id: i for i, type_id in enumerate(graph.nodes)}
    allowed = set(graph.nodes if nodes is None else nodes)
    ordered = sorted(allowed, key=position.__getitem__)

    def successors(v: TypeId) -> Iterator[TypeId]:
        for edge in graph.successors(v):
            if edge.target in allowed:
                yield edge.target

    index: dict[TypeId, int] = {}
    lowlink: dict[TypeId, int] = {}
    on_stack: set[TypeId] = set()
    stack: list[TypeId] = []
    components: list[list[TypeId]] = []
    counter = 0

    for root in ordered:
        if root in index:
            continue
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work: list[tuple[TypeId, Iterator[TypeId]]] = [(root, successors(root))]

        while work:
            v, neighbors = work[-1]
            descended = False
            for w in neighbors:
                if w not in index:
                    index[w] = lowlink[w] = counter
                    counter += 1
                    stack.append(w)
                    on_stack.add(w)
                    work.append((w, successors(w)))
                    descended = True
                    break
                if w in on_stack:
                    lowlink[v] = min(lowlink[v], index[w])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[v])
            if lowlink[v] == index[v]:
                component: list[TypeId] = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    component.append(w)
                    if w == v:
                        break
                component.sort(key=position.__getitem__)
                components.append(component)

    components.sort(key=lambda c: position[c[0]])
    return components


class CycleEnumerator:
    """Enumerate every elementary cycle of a reference graph."""

    def __init__(self, max_cycles_per_component: int | None = None):
        if max_cycles_per_component is not None and max_cycles_per_component < 1:
            raise ValueError("max_cycles_per_component must be positive")
        self.max_cycles_per_component = max_cycles_per_component

    def enumerate(self, graph: ReferenceGraph) -> CycleSearchResult:
        result = CycleSearchResult()
        for component in self.iter_components(graph):
            result.components_searched += 1
            result.cycles.extend(component.cycles)
            if component.truncation is not None:
                result.truncations.append(component.truncation)
        logger.info(
            "Found %d cycles in %d components", len(result.cycles), result.components_searched,
        )
        return result

    def iter_components(self, graph: ReferenceGraph) -> Iterator[ComponentResult]:
        """Yield results one nontrivial component at a time.

        Each component's search is self-contained, so a caller may stop
        between components without further cleanup.
        """
        limit = self.max_cycles_per_component
        for component in strongly_connected_components(graph):
            if not is_cyclic(graph, component):
                continue

            result = ComponentResult(component=component)
            cycles = self._component_cycles(graph, component)
            for cycle in cycles:
                result.cycles.append(cycle)
                if limit is not None and len(result.cycles) >= limit:
                    if next(cycles, None) is not None:
                        result.truncation = Truncation(tuple(component), len(result.cycles), limit)
                        logger.warning("%s", result.truncation)
                    break

            logger.debug(
                "Component of %d types: %d cycles", len(component), len(result.cycles),
            )
            yield result

    def _component_cycles(self, graph: ReferenceGraph, component: list[TypeId]) -> Iterator[Cycle]:
        position = {type_id: i for i, type_id in enumerate(graph.nodes)}
        pending: list[tuple[int, list[TypeId]]] = [(position[component[0]], component)]

        while pending:
            _, nodes = heapq.heappop(pending)
            start = nodes[0]
            allowed = set(nodes)
            yield from _circuits(graph, start, allowed)

            # Later searches never revisit the start node
            remaining = nodes[1:]
            for sub in strongly_connected_components(graph, remaining):
                if is_cyclic(graph, sub):
                    heapq.heappush(pending, (position[sub[0]], sub))


def is_cyclic(graph: ReferenceGraph, component: list[TypeId]) -> bool:
    """True if the component holds at least one cycle, including a self-reference."""
    if len(component) > 1:
        return True
    only = component[0]
    return any(edge.target == only for edge in graph.successors(only))


def _circuits(graph: ReferenceGraph, start: TypeId, allowed: set[TypeId]) -> Iterator[Cycle]:
    """Johnson's circuit search for all elementary cycles through ``start``."""
    adjacency: dict[TypeId, list[Edge]] = {
        v: [e for e in graph.successors(v) if e.target in allowed] for v in allowed
    }
    blocked: set[TypeId] = {start}
    blocked_by: dict[TypeId, set[TypeId]] = defaultdict(set)
    path: list[Edge] = []
    stack: list[tuple[TypeId, Iterator[Edge]]] = [(start, iter(adjacency[start]))]
    closed: list[bool] = [False]

    while stack:
        node, edges = stack[-1]
        descended = False
        for edge in edges:
            nxt = edge.target
            if nxt == start:
                yield Cycle(tuple(path) + (edge,))
                closed[-1] = True
            elif nxt not in blocked:
                path.append(edge)
                blocked.add(nxt)
                stack.append((nxt, iter(adjacency[nxt])))
                closed.append(False)
                descended = True
                break
        if descended:
            continue

        stack.pop()
        found = closed.pop()
        if found:
            _unblock(node, blocked, blocked_by)
        else:
            for edge in adjacency[node]:
                blocked_by[edge.target].add(node)
        if stack:
            path.pop()
            if found:
                closed[-1] = True


def _unblock(node: TypeId, blocked: set[TypeId], blocked_by: dict[TypeId, set[TypeId]]) -> None:
    stack = [node]
    while stack:
        current = stack.pop()
        if current in blocked:
            blocked.discard(current)
            stack.extend(blocked_by.pop(current, ()))


def find_elementary_cycles(
    graph: ReferenceGraph,
    max_cycles_per_component: int | None = None,
) -> list[Cycle]:
    return CycleEnumerator(max_cycles_per_component).enumerate(graph).cycles
