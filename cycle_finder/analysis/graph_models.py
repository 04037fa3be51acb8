"""Data models for the type-reference graph."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from cycle_finder.models import TypeId, TypeKind


class EdgeKind(enum.Enum):
    FIELD = "field"
    SUPERTYPE = "supertype"
    OUTER = "outer"      # implicit reference to the enclosing instance
    CAPTURE = "capture"  # local variable captured by a local/anonymous type


@dataclass
class TypeNode:
    type_id: TypeId
    kind: TypeKind = TypeKind.CLASS
    opaque: bool = False  # out-of-set leaf, never expanded
    supertypes: list[TypeId] = field(default_factory=list)
    enclosing: TypeId | None = None

    @property
    def name(self) -> str:
        return self.type_id.name


@dataclass(frozen=True)
class Edge:
    origin: TypeId
    target: TypeId
    kind: EdgeKind
    name: str = ""         # field or captured variable name
    element: bool = False  # reached through an array or generic argument
    subtype: bool = False  # reached through subtype expansion

    def describe(self) -> str:
        if self.kind is EdgeKind.SUPERTYPE:
            detail = f"supertype {self.target}"
        elif self.kind is EdgeKind.OUTER:
            detail = f"outer reference to {self.target}"
        else:
            label = "field" if self.kind is EdgeKind.FIELD else "captured variable"
            if self.subtype:
                relation = "subtype"
            elif self.element:
                relation = "element type"
            else:
                relation = "type"
            detail = f"{label} {self.name} with {relation} {self.target}"
        return f"{self.origin} -> ({detail})"

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class Cycle:
    """An elementary cycle as an ordered, closed sequence of edges."""
    edges: tuple[Edge, ...]

    def __iter__(self) -> Iterator[Edge]:
        return iter(self.edges)

    def __len__(self) -> int:
        return len(self.edges)

    @property
    def types(self) -> list[TypeId]:
        seen: dict[TypeId, None] = {}
        for edge in self.edges:
            seen.setdefault(edge.origin, None)
        return list(seen)

    @property
    def closed(self) -> bool:
        if not self.edges:
            return False
        for current, following in zip(self.edges, self.edges[1:] + self.edges[:1]):
            if current.target != following.origin:
                return False
        return True

    def rotation_key(self) -> tuple[Edge, ...]:
        """The rotation starting at the smallest origin, for comparing cycles."""
        starts = [i for i, e in enumerate(self.edges)
                  if e.origin == min(x.origin for x in self.edges)]
        rotations = [self.edges[i:] + self.edges[:i] for i in starts]
        return min(rotations, key=lambda r: [(e.origin, e.kind.value, e.name, e.target) for e in r])


@dataclass
class ReferenceGraph:
    nodes: dict[TypeId, TypeNode] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    forward: dict[TypeId, list[Edge]] = field(default_factory=dict)  # origin -> [edges]
    _edge_set: set[Edge] = field(default_factory=set, repr=False)

    def add_node(self, node: TypeNode) -> TypeNode:
        existing = self.nodes.get(node.type_id)
        if existing is not None:
            return existing
        self.nodes[node.type_id] = node
        self.forward.setdefault(node.type_id, [])
        return node

    def add_edge(self, edge: Edge) -> bool:
        """Add an edge; returns False if an identical edge already exists."""
        if edge in self._edge_set:
            return False
        for type_id in (edge.origin, edge.target):
            if type_id not in self.nodes:
                self.add_node(TypeNode(type_id, opaque=True))
        self._edge_set.add(edge)
        self.edges.append(edge)
        self.forward[edge.origin].append(edge)
        return True

    def successors(self, type_id: TypeId) -> list[Edge]:
        return self.forward.get(type_id, [])

    def filtered(self, keep: Callable[[Edge], bool]) -> ReferenceGraph:
        """Return a copy holding every node and only the edges ``keep`` accepts."""
        return self.with_edges(e for e in self.edges if keep(e))

    def with_edges(self, edges: Iterable[Edge]) -> ReferenceGraph:
        graph = ReferenceGraph()
        for node in self.nodes.values():
            graph.add_node(node)
        for edge in edges:
            graph.add_edge(edge)
        return graph
