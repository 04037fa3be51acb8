"""Data models for resolved type declarations and analysis configuration."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


class TypeKind(enum.Enum):
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    ANONYMOUS = "anonymous"
    ANNOTATION = "annotation"


class ElementPolicy(enum.Enum):
    """How generic-argument and array element targets relate to the container."""
    SUPPLEMENT = "supplement"  # container edge + element edges
    REPLACE = "replace"        # element edges only, when there are any


@dataclass(frozen=True, order=True)
class TypeId:
    """Canonical type identity: qualified name plus generic arity."""
    name: str
    arity: int = 0

    def __str__(self) -> str:
        return self.name


UNKNOWN_TYPE = TypeId("<unknown>")


@dataclass
class TypeRef:
    """A reference to a type as it appears in a declaration, after resolution.

    ``name`` is None when the resolver could not determine the type.
    """
    name: str | None
    args: list[TypeRef] = field(default_factory=list)
    array_depth: int = 0
    primitive: bool = False
    variable: bool = False
    bound: TypeRef | None = None
    wildcard: str | None = None  # "extends" | "super" | "unbounded"

    @property
    def resolved(self) -> bool:
        return self.name is not None or self.wildcard is not None

    def __str__(self) -> str:
        if self.wildcard == "unbounded":
            text = "?"
        elif self.wildcard:
            text = f"? {self.wildcard} {self.bound}"
        else:
            text = self.name or "<unknown>"
            if self.args:
                text += "<" + ", ".join(str(a) for a in self.args) + ">"
        return text + "[]" * self.array_depth


@dataclass
class FieldDecl:
    name: str
    type: TypeRef
    static: bool = False
    annotations: list[str] = field(default_factory=list)


@dataclass
class CapturedVar:
    """A local variable captured by a local or anonymous type."""
    name: str
    type: TypeRef


@dataclass
class TypeDecl:
    """One resolved type declaration from the analyzed source set."""
    name: str
    kind: TypeKind = TypeKind.CLASS
    type_params: list[str] = field(default_factory=list)
    supertypes: list[TypeRef] = field(default_factory=list)
    fields: list[FieldDecl] = field(default_factory=list)
    enclosing: str | None = None
    static: bool = False  # only meaningful with enclosing
    annotations: list[str] = field(default_factory=list)
    captures: list[CapturedVar] = field(default_factory=list)
    source: Path | None = None

    @property
    def type_id(self) -> TypeId:
        return TypeId(self.name, len(self.type_params))

    @property
    def captures_outer(self) -> bool:
        return self.enclosing is not None and not self.static


@dataclass
class AnalysisConfig:
    """Configuration for graph construction and cycle search."""
    element_policy: ElementPolicy = ElementPolicy.SUPPLEMENT
    expand_subtypes: bool = False
    max_cycles_per_component: int | None = None
    root_type: str = "java.lang.Object"
    weak_annotations: list[str] = field(default_factory=lambda: [
        "Weak", "WeakOuter", "RetainedWith",
    ])
    weak_outer_annotations: list[str] = field(default_factory=lambda: ["WeakOuter"])
    weak_containers: list[str] = field(default_factory=lambda: [
        "java.lang.ref.WeakReference", "java.lang.ref.SoftReference",
        "java.lang.ref.PhantomReference",
        "weakref.ref", "weakref.ReferenceType", "weakref.WeakSet",
        "weakref.WeakValueDictionary",
    ])
    primitive_types: list[str] = field(default_factory=lambda: [
        "boolean", "byte", "char", "short", "int", "long", "float", "double", "void",
    ])
