"""Load resolved declarations from the JSON interchange format.

A declaration file is either a list of type objects or an object with a
``types`` list. Type references may be written as a bare qualified name:

    {"types": [
      {"name": "com.foo.Parent",
       "fields": [{"name": "child", "type": "com.foo.Child"},
                  {"name": "kids", "type": {"name": "java.util.List",
                                            "args": ["com.foo.Child"]}}]},
      {"name": "com.foo.Child",
       "fields": [{"name": "parent", "type": "com.foo.Parent"}]}
    ]}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, Field, ValidationError

from cycle_finder.models import CapturedVar, FieldDecl, TypeDecl, TypeKind, TypeRef


class DeclarationError(ValueError):
    """A declaration file could not be read or did not match the schema."""


class TypeRefModel(BaseModel):
    name: str | None = None
    args: list[Union[TypeRefModel, str]] = Field(default_factory=list)
    array_depth: int = Field(default=0, ge=0)
    primitive: bool = False
    variable: bool = False
    bound: Union[TypeRefModel, str, None] = None
    wildcard: Literal["extends", "super", "unbounded"] | None = None


TypeRefModel.model_rebuild()


class FieldModel(BaseModel):
    name: str
    type: Union[TypeRefModel, str, None] = None
    static: bool = False
    annotations: list[str] = Field(default_factory=list)


class CaptureModel(BaseModel):
    name: str
    type: Union[TypeRefModel, str, None] = None


class TypeDeclModel(BaseModel):
    name: str = Field(min_length=1)
    kind: TypeKind = TypeKind.CLASS
    type_params: list[str] = Field(default_factory=list)
    supertypes: list[Union[TypeRefModel, str]] = Field(default_factory=list)
    fields: list[FieldModel] = Field(default_factory=list)
    enclosing: str | None = None
    static: bool = False
    annotations: list[str] = Field(default_factory=list)
    captures: list[CaptureModel] = Field(default_factory=list)


class DeclarationSetModel(BaseModel):
    types: list[TypeDeclModel] = Field(default_factory=list)


def to_type_ref(value: TypeRefModel | str | None) -> TypeRef:
    if value is None:
        return TypeRef(name=None)
    if isinstance(value, str):
        return TypeRef(name=value)
    return TypeRef(
        name=value.name,
        args=[to_type_ref(a) for a in value.args],
        array_depth=value.array_depth,
        primitive=value.primitive,
        variable=value.variable,
        bound=to_type_ref(value.bound) if value.bound is not None else None,
        wildcard=value.wildcard,
    )


def to_type_decl(model: TypeDeclModel, source: Path | None = None) -> TypeDecl:
    return TypeDecl(
        name=model.name,
        kind=model.kind,
        type_params=list(model.type_params),
        supertypes=[to_type_ref(s) for s in model.supertypes],
        fields=[
            FieldDecl(
                name=f.name,
                type=to_type_ref(f.type),
                static=f.static,
                annotations=list(f.annotations),
            )
            for f in model.fields
        ],
        enclosing=model.enclosing,
        static=model.static,
        annotations=list(model.annotations),
        captures=[CapturedVar(name=c.name, type=to_type_ref(c.type)) for c in model.captures],
        source=source,
    )


def parse_declarations(data: object, source: Path | None = None) -> list[TypeDecl]:
    """Validate decoded JSON and convert it to declarations."""
    if isinstance(data, list):
        data = {"types": data}
    try:
        model = DeclarationSetModel.model_validate(data)
    except ValidationError as e:
        where = f" in {source}" if source else ""
        raise DeclarationError(f"Invalid declarations{where}: {e}") from e
    return [to_type_decl(t, source) for t in model.types]


def load_declaration_file(path: Path) -> list[TypeDecl]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise DeclarationError(f"{path}: not valid JSON: {e}") from e
    except OSError as e:
        raise DeclarationError(f"{path}: {e}") from e
    return parse_declarations(data, source=path)
