"""Tests for the declaration collector and the JSON declaration loader."""

import json

import pytest
from pathlib import Path

from cycle_finder.collector import (
    DeclarationError,
    TypeCollector,
    load_declaration_file,
    parse_declarations,
)
from cycle_finder.models import (
    UNKNOWN_TYPE,
    AnalysisConfig,
    FieldDecl,
    TypeDecl,
    TypeId,
    TypeKind,
    TypeRef,
)

FIXTURES = Path(__file__).parent / "fixtures"


# ── Helpers ───────────────────────────────────────────────────

def _ref(name, *args, **kwargs):
    return TypeRef(name=name, args=[_ref(a) if isinstance(a, str) else a for a in args], **kwargs)


def _decl(name, fields=(), supertypes=(), **kwargs):
    return TypeDecl(
        name=name,
        fields=[FieldDecl(n, _ref(t) if isinstance(t, str) else t) for n, t in fields],
        supertypes=[_ref(s) for s in supertypes],
        **kwargs,
    )


def _collect(*decls):
    return TypeCollector().collect(list(decls))


# ── Node records ──────────────────────────────────────────────

class TestNodeRecords:
    def test_declared_types_are_not_opaque(self):
        records = _collect(_decl("a.A"), _decl("a.B"))
        assert not records[TypeId("a.A")].opaque
        assert not records[TypeId("a.B")].opaque

    def test_out_of_set_field_type_becomes_opaque_stub(self):
        records = _collect(_decl("a.A", fields=[("name", "java.lang.String")]))
        stub = records[TypeId("java.lang.String")]
        assert stub.opaque
        assert stub.fields == []

    def test_stub_created_once(self):
        records = _collect(
            _decl("a.A", fields=[("x", "lib.X")]),
            _decl("a.B", fields=[("x", "lib.X")], supertypes=["lib.X"]),
        )
        assert list(records).count(TypeId("lib.X")) == 1

    def test_identity_includes_arity(self):
        records = _collect(_decl("a.Box", type_params=["T"]))
        assert TypeId("a.Box", 1) in records

    def test_reference_resolves_to_declared_identity(self):
        records = _collect(
            _decl("a.Box", type_params=["T"]),
            _decl("a.User", fields=[("box", "a.Box")]),
        )
        fld = records[TypeId("a.User")].fields[0]
        assert fld.declared == TypeId("a.Box", 1)

    def test_declared_before_stubs_in_sorted_order(self):
        records = _collect(
            _decl("z.Z", fields=[("s", "lib.S")]),
            _decl("a.A"),
        )
        assert list(records)[:2] == [TypeId("a.A"), TypeId("z.Z")]

    def test_duplicate_declaration_keeps_one(self, caplog):
        records = _collect(_decl("a.A"), _decl("a.A", fields=[("x", "a.A")]))
        assert len([k for k in records if k.name == "a.A"]) == 1
        assert "Duplicate declaration" in caplog.text

    def test_supertypes_and_enclosing(self):
        records = _collect(
            _decl("a.Outer"),
            _decl("a.Outer$Inner", supertypes=["a.Base"], enclosing="a.Outer", static=False),
        )
        inner = records[TypeId("a.Outer$Inner")]
        assert inner.supertypes == [TypeId("a.Base")]
        assert inner.enclosing == TypeId("a.Outer")
        assert inner.captures_outer

    def test_static_nested_does_not_capture(self):
        records = _collect(_decl("a.Outer"), _decl("a.Outer$Nested", enclosing="a.Outer", static=True))
        assert not records[TypeId("a.Outer$Nested")].captures_outer

    def test_enclosed_type_captures_outer_by_default(self):
        records = _collect(_decl("a.Outer"), _decl("a.Outer$1", kind=TypeKind.ANONYMOUS, enclosing="a.Outer"))
        assert records[TypeId("a.Outer$1")].captures_outer

    def test_weak_outer_annotation(self):
        records = _collect(
            _decl("a.Outer"),
            _decl("a.Outer$1", enclosing="a.Outer", static=False, annotations=["WeakOuter"]),
        )
        assert records[TypeId("a.Outer$1")].weak_outer

    def test_weak_outer_annotation_from_config(self):
        config = AnalysisConfig(weak_outer_annotations=["Unowned"])
        records = TypeCollector(config).collect([
            _decl("a.Outer"),
            _decl("a.Outer$1", enclosing="a.Outer", annotations=["Unowned"]),
            _decl("a.Outer$2", enclosing="a.Outer", annotations=["WeakOuter"]),
        ])
        assert records[TypeId("a.Outer$1")].weak_outer
        assert not records[TypeId("a.Outer$2")].weak_outer

    def test_weak_field_annotation(self):
        decl = TypeDecl(
            name="a.A",
            fields=[FieldDecl("owner", _ref("a.B"), annotations=["Weak"])],
        )
        records = _collect(decl)
        assert records[TypeId("a.A")].fields[0].weak


# ── Erasure chains ────────────────────────────────────────────

class TestErasureChain:
    def test_plain_reference(self):
        chain = TypeCollector().erasure_chain(_ref("a.B"))
        assert chain.declared == TypeId("a.B")
        assert chain.elements == []

    def test_primitive_has_no_targets(self):
        chain = TypeCollector().erasure_chain(_ref("int"))
        assert chain.targets == []

    def test_primitive_flag(self):
        chain = TypeCollector().erasure_chain(_ref("x.Y", primitive=True))
        assert chain.targets == []

    def test_array_unwraps_to_base_element(self):
        chain = TypeCollector().erasure_chain(_ref("a.B", array_depth=3))
        assert chain.declared is None
        assert chain.elements == [TypeId("a.B")]

    def test_primitive_array_has_no_targets(self):
        chain = TypeCollector().erasure_chain(_ref("int", array_depth=2))
        assert chain.targets == []

    def test_generic_arguments_are_elements(self):
        chain = TypeCollector().erasure_chain(_ref("java.util.List", "a.B"))
        assert chain.declared == TypeId("java.util.List", 1)
        assert chain.elements == [TypeId("a.B")]

    def test_nested_generics_are_flattened(self):
        ref = _ref("java.util.Map", "a.K", _ref("java.util.List", "a.V"))
        chain = TypeCollector().erasure_chain(ref)
        assert chain.targets == [
            TypeId("java.util.Map", 2),
            TypeId("a.K"),
            TypeId("java.util.List", 1),
            TypeId("a.V"),
        ]

    def test_repeated_elements_deduplicated(self):
        chain = TypeCollector().erasure_chain(_ref("java.util.Map", "a.K", "a.K"))
        assert chain.elements == [TypeId("a.K")]

    def test_array_of_generic(self):
        chain = TypeCollector().erasure_chain(_ref("java.util.List", "a.B", array_depth=1))
        assert chain.declared is None
        assert chain.elements == [TypeId("java.util.List", 1), TypeId("a.B")]

    def test_weak_container_not_expanded(self):
        chain = TypeCollector().erasure_chain(_ref("java.lang.ref.WeakReference", "a.B"))
        assert chain.targets == [TypeId("java.lang.ref.WeakReference", 1)]

    def test_unresolved_field_type_is_unknown(self):
        collector = TypeCollector()
        chain = collector.erasure_chain(TypeRef(name=None))
        assert chain.declared == UNKNOWN_TYPE
        assert collector.records[UNKNOWN_TYPE].opaque

    def test_unresolved_argument_degrades_to_declared(self):
        chain = TypeCollector().erasure_chain(_ref("java.util.List", TypeRef(name=None)))
        assert chain.declared == TypeId("java.util.List", 1)
        assert chain.elements == []

    def test_type_variable_uses_bound(self):
        ref = TypeRef(name="T", variable=True, bound=_ref("a.Base"))
        chain = TypeCollector().erasure_chain(ref)
        assert chain.declared == TypeId("a.Base")

    def test_unbounded_type_variable_erases_to_root(self):
        chain = TypeCollector().erasure_chain(TypeRef(name="T", variable=True))
        assert chain.declared == TypeId("java.lang.Object")

    def test_recursive_bound_degrades(self):
        inner = TypeRef(name="T", variable=True)
        ref = TypeRef(name="T", variable=True, bound=_ref("java.lang.Comparable", inner))
        chain = TypeCollector().erasure_chain(ref)
        assert chain.declared == TypeId("java.lang.Comparable", 1)
        assert chain.elements == []

    def test_extends_wildcard_uses_bound(self):
        wildcard = TypeRef(name=None, wildcard="extends", bound=_ref("a.B"))
        chain = TypeCollector().erasure_chain(_ref("java.util.List", wildcard))
        assert chain.elements == [TypeId("a.B")]

    def test_super_and_unbounded_wildcards_erase_to_root(self):
        sup = TypeRef(name=None, wildcard="super", bound=_ref("a.B"))
        unbounded = TypeRef(name=None, wildcard="unbounded")
        chain = TypeCollector().erasure_chain(_ref("java.util.Map", sup, unbounded))
        assert chain.elements == [TypeId("java.lang.Object")]


# ── JSON loader ───────────────────────────────────────────────

class TestLoader:
    def test_load_fixture(self):
        decls = load_declaration_file(FIXTURES / "declarations.json")
        names = {d.name for d in decls}
        assert "com.example.Parent" in names
        assert "com.example.Activity$1" in names
        assert all(d.source == FIXTURES / "declarations.json" for d in decls)

    def test_shorthand_type_names(self):
        decls = parse_declarations([{"name": "a.A", "fields": [{"name": "b", "type": "a.B"}]}])
        assert decls[0].fields[0].type.name == "a.B"

    def test_full_type_reference(self):
        decls = parse_declarations({"types": [{
            "name": "a.A",
            "kind": "interface",
            "fields": [{
                "name": "items",
                "type": {"name": "java.util.List", "args": ["a.B"], "array_depth": 1},
                "annotations": ["Weak"],
            }],
        }]})
        decl = decls[0]
        assert decl.kind == TypeKind.INTERFACE
        fld = decl.fields[0]
        assert fld.type.array_depth == 1
        assert fld.type.args[0].name == "a.B"
        assert fld.annotations == ["Weak"]

    def test_missing_field_type_is_unresolved(self):
        decls = parse_declarations([{"name": "a.A", "fields": [{"name": "x"}]}])
        assert not decls[0].fields[0].type.resolved

    def test_anonymous_type(self):
        decls = load_declaration_file(FIXTURES / "declarations.json")
        anon = next(d for d in decls if d.name == "com.example.Activity$1")
        assert anon.kind == TypeKind.ANONYMOUS
        assert anon.captures_outer

    def test_enclosed_type_defaults_to_capturing(self):
        decls = parse_declarations([
            {"name": "a.Activity", "fields": [{"name": "handler", "type": "a.Activity$1"}]},
            {"name": "a.Activity$1", "kind": "anonymous", "enclosing": "a.Activity"},
            {"name": "a.Activity$Holder", "enclosing": "a.Activity", "static": True},
        ])
        by_name = {d.name: d for d in decls}
        assert by_name["a.Activity$1"].captures_outer
        assert not by_name["a.Activity$Holder"].captures_outer

    def test_schema_error(self):
        with pytest.raises(DeclarationError):
            parse_declarations({"types": [{"name": "a.A", "kind": "struct"}]})

    def test_negative_array_depth_rejected(self):
        with pytest.raises(DeclarationError):
            parse_declarations([{"name": "a.A", "fields": [
                {"name": "x", "type": {"name": "a.B", "array_depth": -1}},
            ]}])

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(DeclarationError, match="not valid JSON"):
            load_declaration_file(path)

    def test_declaration_error_is_value_error(self, tmp_path):
        path = tmp_path / "decls.json"
        path.write_text(json.dumps({"types": [{"name": ""}]}))
        with pytest.raises(ValueError):
            load_declaration_file(path)
