"""Declaration collector: one node record per declared or referenced type."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cycle_finder.models import (
    UNKNOWN_TYPE,
    AnalysisConfig,
    TypeDecl,
    TypeId,
    TypeKind,
    TypeRef,
)

logger = logging.getLogger(__name__)


class _Degrade(Exception):
    """Raised while erasing a type whose arguments cannot be expanded."""


@dataclass
class FieldRecord:
    """A field (or captured variable) with its erasure chain.

    ``declared`` is the nominal target, None for primitives and arrays.
    ``elements`` holds array base types and generic arguments, flattened.
    """
    name: str
    declared: TypeId | None
    elements: list[TypeId] = field(default_factory=list)
    static: bool = False
    weak: bool = False

    @property
    def targets(self) -> list[TypeId]:
        result = [self.declared] if self.declared is not None else []
        return result + [e for e in self.elements if e not in result]


@dataclass
class TypeRecord:
    type_id: TypeId
    kind: TypeKind = TypeKind.CLASS
    opaque: bool = False
    supertypes: list[TypeId] = field(default_factory=list)
    enclosing: TypeId | None = None
    captures_outer: bool = False
    weak_outer: bool = False
    fields: list[FieldRecord] = field(default_factory=list)
    captures: list[FieldRecord] = field(default_factory=list)


class TypeCollector:
    """Walk resolved declarations once and produce node records."""

    def __init__(self, config: AnalysisConfig | None = None):
        self.config = config or AnalysisConfig()
        self._primitives = set(self.config.primitive_types)
        self._weak_containers = set(self.config.weak_containers)
        self._weak_annotations = set(self.config.weak_annotations)
        self._weak_outer_annotations = set(self.config.weak_outer_annotations)
        self.records: dict[TypeId, TypeRecord] = {}
        self._by_name: dict[str, TypeId] = {}

    def collect(self, declarations: list[TypeDecl]) -> dict[TypeId, TypeRecord]:
        self.records = {}
        self._by_name = {}

        ordered = sorted(
            declarations,
            key=lambda d: (d.name, len(d.type_params), str(d.source or "")),
        )
        unique: list[TypeDecl] = []
        for decl in ordered:
            if decl.name in self._by_name:
                logger.warning("Duplicate declaration of %s ignored (%s)", decl.name, decl.source)
                continue
            self._by_name[decl.name] = decl.type_id
            unique.append(decl)

        # Register every declared type before resolving references to them
        for decl in unique:
            self.records[decl.type_id] = TypeRecord(type_id=decl.type_id, kind=decl.kind)

        for decl in unique:
            self._collect_decl(decl)

        logger.debug(
            "Collected %d declared types, %d opaque",
            len(unique), len(self.records) - len(unique),
        )
        return self.records

    def _collect_decl(self, decl: TypeDecl) -> None:
        record = self.records[decl.type_id]
        for sup in decl.supertypes:
            record.supertypes.append(self._nominal(sup))
        if decl.enclosing:
            record.enclosing = self._lookup(decl.enclosing)
            record.captures_outer = decl.captures_outer
            record.weak_outer = bool(self._weak_outer_annotations.intersection(decl.annotations))
        for fdecl in decl.fields:
            chain = self.erasure_chain(fdecl.type)
            chain.name = fdecl.name
            chain.static = fdecl.static
            chain.weak = bool(self._weak_annotations.intersection(fdecl.annotations))
            record.fields.append(chain)
        for var in decl.captures:
            chain = self.erasure_chain(var.type)
            chain.name = var.name
            record.captures.append(chain)

    # ── Erasure ──────────────────────────────────────────────

    def erasure_chain(self, ref: TypeRef) -> FieldRecord:
        """Compute the declared target and element targets of a type reference."""
        if not ref.resolved:
            return FieldRecord(name="", declared=self._stub(UNKNOWN_TYPE))
        try:
            declared, elements = self._erase(ref, frozenset())
        except _Degrade:
            logger.debug("Degrading %s to its declared type", ref)
            return FieldRecord(name="", declared=self._nominal(ref))

        unique: list[TypeId] = []
        for type_id in elements:
            if type_id not in unique:
                unique.append(type_id)
        return FieldRecord(name="", declared=declared, elements=unique)

    def _erase(self, ref: TypeRef, active: frozenset[str]) -> tuple[TypeId | None, list[TypeId]]:
        if not ref.resolved:
            raise _Degrade(str(ref))

        if ref.array_depth:
            base = TypeRef(
                name=ref.name, args=ref.args, primitive=ref.primitive,
                variable=ref.variable, bound=ref.bound, wildcard=ref.wildcard,
            )
            base_declared, base_elements = self._erase(base, active)
            head = [base_declared] if base_declared is not None else []
            return None, head + base_elements

        if self._is_primitive(ref):
            return None, []

        if ref.wildcard is not None:
            if ref.wildcard == "extends" and ref.bound is not None:
                return self._erase(ref.bound, active)
            return self._root(), []

        if ref.variable:
            if ref.name in active:
                raise _Degrade(f"recursive bound on {ref.name}")
            if ref.bound is None or not ref.bound.resolved:
                return self._root(), []
            return self._erase(ref.bound, active | {ref.name})

        declared = self._lookup(ref.name, len(ref.args))
        if ref.name in self._weak_containers:
            return declared, []

        elements: list[TypeId] = []
        for arg in ref.args:
            arg_declared, arg_elements = self._erase(arg, active)
            if arg_declared is not None:
                elements.append(arg_declared)
            elements.extend(arg_elements)
        return declared, elements

    def _nominal(self, ref: TypeRef) -> TypeId:
        """The declared type alone, with no element expansion."""
        if not ref.resolved:
            return self._stub(UNKNOWN_TYPE)
        if ref.wildcard is not None or ref.variable:
            bound = ref.bound
            if bound is not None and bound.resolved and not bound.variable and bound.wildcard is None:
                return self._lookup(bound.name, len(bound.args))
            return self._root()
        return self._lookup(ref.name, len(ref.args))

    # ── Node table ───────────────────────────────────────────

    def _is_primitive(self, ref: TypeRef) -> bool:
        return ref.primitive or (not ref.variable and ref.name in self._primitives)

    def _root(self) -> TypeId:
        return self._lookup(self.config.root_type)

    def _lookup(self, name: str, arity: int = 0) -> TypeId:
        type_id = self._by_name.get(name)
        if type_id is None:
            type_id = self._stub(TypeId(name, arity))
            self._by_name[name] = type_id
        return type_id

    def _stub(self, type_id: TypeId) -> TypeId:
        if type_id not in self.records:
            self.records[type_id] = TypeRecord(type_id=type_id, opaque=True)
        return type_id


def collect_types(
    declarations: list[TypeDecl],
    config: AnalysisConfig | None = None,
) -> dict[TypeId, TypeRecord]:
    """Collect node records for a declaration set."""
    return TypeCollector(config).collect(declarations)
