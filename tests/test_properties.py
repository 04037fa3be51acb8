"""Property-based tests for cycle enumeration."""

from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from cycle_finder.analysis.cycles import CycleEnumerator, find_elementary_cycles
from cycle_finder.analysis.graph_models import Edge, EdgeKind, ReferenceGraph, TypeNode
from cycle_finder.models import FieldDecl, TypeDecl, TypeId, TypeRef
from cycle_finder.pipeline import build_graph, find_cycles


# ── Strategies ────────────────────────────────────────────────

@st.composite
def edge_lists(draw, max_nodes=5):
    n = draw(st.integers(min_value=1, max_value=max_nodes))
    edges = draw(st.lists(
        st.tuples(
            st.integers(0, n - 1),
            st.integers(0, n - 1),
            st.sampled_from(["a", "b"]),
        ),
        max_size=12,
        unique=True,
    ))
    return n, edges


def _graph(n, edges):
    graph = ReferenceGraph()
    for i in range(n):
        graph.add_node(TypeNode(TypeId(f"N{i}")))
    for origin, target, label in edges:
        graph.add_edge(Edge(TypeId(f"N{origin}"), TypeId(f"N{target}"), EdgeKind.FIELD, label))
    return graph


def _brute_force(graph):
    """Every elementary cycle, each starting at its smallest type."""
    found = []
    order = list(graph.nodes)
    for i, start in enumerate(order):
        later = set(order[i + 1:])

        def walk(node, path, seen):
            for edge in graph.successors(node):
                if edge.target == start:
                    found.append(tuple(path) + (edge,))
                elif edge.target in later and edge.target not in seen:
                    walk(edge.target, path + [edge], seen | {edge.target})

        walk(start, [], {start})
    return found


# ── Properties ────────────────────────────────────────────────

@settings(max_examples=150, deadline=None)
@given(edge_lists())
def test_matches_brute_force(data):
    graph = _graph(*data)
    cycles = find_elementary_cycles(graph)
    keys = [c.rotation_key() for c in cycles]
    assert len(keys) == len(set(keys))
    assert Counter(keys) == Counter(_brute_force(graph))


@settings(max_examples=100, deadline=None)
@given(edge_lists())
def test_every_cycle_is_closed_and_elementary(data):
    for cycle in find_elementary_cycles(_graph(*data)):
        assert cycle.closed
        origins = [e.origin for e in cycle]
        assert len(origins) == len(set(origins))


@settings(max_examples=100, deadline=None)
@given(edge_lists(), st.integers(min_value=1, max_value=4))
def test_cap_bounds_each_component(data, limit):
    graph = _graph(*data)
    full = find_elementary_cycles(graph)
    capped = CycleEnumerator(limit).enumerate(graph)
    assert {c.rotation_key() for c in capped.cycles} <= {c.rotation_key() for c in full}
    if capped.truncations:
        assert len(capped.cycles) < len(full)
    else:
        assert len(capped.cycles) == len(full)


@st.composite
def declaration_sets(draw):
    n, edges = draw(edge_lists())
    fields: dict[int, list[FieldDecl]] = {i: [] for i in range(n)}
    for origin, target, label in edges:
        fields[origin].append(FieldDecl(f"{label}{target}", TypeRef(f"p.T{target}")))
    decls = [TypeDecl(f"p.T{i}", fields=fields[i]) for i in range(n)]
    return decls, draw(st.permutations(decls))


@settings(max_examples=100, deadline=None)
@given(declaration_sets())
def test_declaration_order_does_not_matter(pair):
    decls, shuffled = pair
    expected = [[e.describe() for e in c] for c in find_cycles(build_graph(decls))]
    actual = [[e.describe() for e in c] for c in find_cycles(build_graph(shuffled))]
    assert actual == expected
