"""Python scanner using the ast module.

Turns annotated Python classes into resolved declarations: class-level
annotations and annotated ``self.x`` assignments become instance fields,
``ClassVar`` annotations become static fields, bases become supertypes.
Names are resolved against the module's own classes, its imports and the
builtins; anything else is left unresolved.
"""

from __future__ import annotations

import ast
import builtins
from pathlib import Path

from cycle_finder.models import FieldDecl, TypeDecl, TypeKind, TypeRef
from cycle_finder.scanner.base import BaseScanner

ROOT_TYPE = "builtins.object"

# Immutable value types never hold references to user objects
PRIMITIVES = {
    "int", "float", "bool", "str", "bytes", "complex", "None", "NoneType",
    "builtins.int", "builtins.float", "builtins.bool", "builtins.str",
    "builtins.bytes", "builtins.complex", "typing.Literal", "typing.LiteralString",
}

_ALIASES = {
    "typing.List": "builtins.list",
    "typing.Dict": "builtins.dict",
    "typing.Set": "builtins.set",
    "typing.FrozenSet": "builtins.frozenset",
    "typing.Tuple": "builtins.tuple",
    "typing.Type": "builtins.type",
    "typing.Any": "builtins.object",
    "typing.DefaultDict": "collections.defaultdict",
    "typing.Deque": "collections.deque",
    "typing.OrderedDict": "collections.OrderedDict",
    "typing.Sequence": "collections.abc.Sequence",
    "typing.Mapping": "collections.abc.Mapping",
    "typing.Iterable": "collections.abc.Iterable",
    "typing.Callable": "collections.abc.Callable",
}

_UNWRAP = {"typing.Optional", "typing.Final", "typing.Annotated", "typing.Required", "typing.NotRequired"}
_UNION = {"typing.Union"}
_STATIC = {"typing.ClassVar"}
_OPAQUE_ARGS = {"collections.abc.Callable", "builtins.type"}


class _ModuleScope:
    """Name table for one module: local classes, imports, type variables."""

    def __init__(self, module: str, tree: ast.Module):
        self.module = module
        self.imports: dict[str, str] = {}
        self.classes: dict[str, str] = {}
        self.type_vars: dict[str, ast.expr | None] = {}

        package = module.rsplit(".", 1)[0] if "." in module else ""
        for node in tree.body:
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.asname:
                        self.imports[alias.asname] = alias.name
                    else:
                        head = alias.name.split(".")[0]
                        self.imports[head] = head
            elif isinstance(node, ast.ImportFrom):
                base = node.module or ""
                if node.level:
                    parts = package.split(".") if package else []
                    parts = parts[: len(parts) - (node.level - 1)] if node.level > 1 else parts
                    base = ".".join(p for p in [*parts, base] if p)
                for alias in node.names:
                    if alias.name != "*":
                        self.imports[alias.asname or alias.name] = f"{base}.{alias.name}"
            elif isinstance(node, ast.Assign) and _is_type_var(node.value):
                for target in node.targets:
                    if isinstance(target, ast.Name):
                        self.type_vars[target.id] = _type_var_bound(node.value)

        self._index_classes(tree.body, prefix="")

    def _index_classes(self, body: list[ast.stmt], prefix: str) -> None:
        for node in body:
            if isinstance(node, ast.ClassDef):
                local = f"{prefix}{node.name}"
                self.classes[local] = f"{self.module}.{local}"
                self._index_classes(node.body, prefix=f"{local}.")

    def resolve(self, dotted: str, enclosing: list[str]) -> str | None:
        head, _, rest = dotted.partition(".")
        # Innermost enclosing class scope first
        for depth in range(len(enclosing), -1, -1):
            candidate = ".".join([*enclosing[:depth], dotted])
            if candidate in self.classes:
                return self.classes[candidate]
        if head in self.imports:
            full = self.imports[head] + (f".{rest}" if rest else "")
        elif not rest and hasattr(builtins, head):
            full = f"builtins.{head}"
        elif rest and head in {"typing", "collections", "weakref", "builtins"}:
            full = dotted
        else:
            return None
        return _ALIASES.get(full, full)


class PythonScanner(BaseScanner):
    extensions = (".py",)

    def scan_file(self, file_path: Path, module: str | None = None) -> list[TypeDecl]:
        source = file_path.read_text(encoding="utf-8", errors="replace")
        return self.scan_source(source, module or file_path.stem, file_path)

    def scan_source(self, source: str, module: str, file_path: Path | None = None) -> list[TypeDecl]:
        tree = ast.parse(source, filename=str(file_path or module))
        scope = _ModuleScope(module, tree)
        decls: list[TypeDecl] = []
        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                self._scan_class(node, scope, [], decls, file_path)
        return decls

    def _scan_class(
        self,
        node: ast.ClassDef,
        scope: _ModuleScope,
        enclosing: list[str],
        decls: list[TypeDecl],
        file_path: Path | None,
    ) -> None:
        path = [*enclosing, node.name]
        decl = TypeDecl(
            name=f"{scope.module}.{'.'.join(path)}",
            enclosing=f"{scope.module}.{'.'.join(enclosing)}" if enclosing else None,
            static=True,
            source=file_path,
        )
        converter = _AnnotationConverter(scope, path)

        for pep695 in getattr(node, "type_params", None) or []:
            name = getattr(pep695, "name", None)
            if name:
                decl.type_params.append(name)
                converter.local_vars[name] = getattr(pep695, "bound", None)

        for base in node.bases:
            name = converter.qualified(base.value if isinstance(base, ast.Subscript) else base)
            if name in {"typing.Generic", "typing.Protocol"} and isinstance(base, ast.Subscript):
                decl.type_params.extend(_names(base.slice))
            if name == "typing.Protocol":
                decl.kind = TypeKind.INTERFACE
                continue
            if name in {"typing.Generic", "builtins.object"}:
                continue
            if name in {"enum.Enum", "enum.IntEnum", "enum.StrEnum", "enum.Flag"}:
                decl.kind = TypeKind.ENUM
            decl.supertypes.append(converter.convert(base))

        seen: set[str] = set()
        for child in node.body:
            if isinstance(child, ast.AnnAssign) and isinstance(child.target, ast.Name):
                self._add_field(decl, seen, child.target.id, child.annotation, converter)
            elif isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._scan_method(decl, seen, child, converter)

        decls.append(decl)
        for child in node.body:
            if isinstance(child, ast.ClassDef):
                self._scan_class(child, scope, path, decls, file_path)

    def _scan_method(
        self,
        decl: TypeDecl,
        seen: set[str],
        func: ast.FunctionDef | ast.AsyncFunctionDef,
        converter: _AnnotationConverter,
    ) -> None:
        if not func.args.args:
            return
        self_name = func.args.args[0].arg
        params = {
            a.arg: a.annotation
            for a in [*func.args.args[1:], *func.args.kwonlyargs]
            if a.annotation is not None
        }
        for stmt in ast.walk(func):
            if isinstance(stmt, ast.AnnAssign):
                attr = _self_attribute(stmt.target, self_name)
                if attr:
                    self._add_field(decl, seen, attr, stmt.annotation, converter)
            elif isinstance(stmt, ast.Assign) and isinstance(stmt.value, ast.Name):
                annotation = params.get(stmt.value.id)
                if annotation is None:
                    continue
                for target in stmt.targets:
                    attr = _self_attribute(target, self_name)
                    if attr:
                        self._add_field(decl, seen, attr, annotation, converter)

    @staticmethod
    def _add_field(
        decl: TypeDecl,
        seen: set[str],
        name: str,
        annotation: ast.expr,
        converter: _AnnotationConverter,
    ) -> None:
        if name in seen:
            return
        seen.add(name)
        static = False
        if isinstance(annotation, ast.Subscript) and converter.qualified(annotation.value) in _STATIC:
            static = True
            annotation = annotation.slice
        elif converter.qualified(annotation) in _STATIC:
            static = True
        decl.fields.append(FieldDecl(name=name, type=converter.convert(annotation), static=static))


class _AnnotationConverter:
    """Convert annotation expressions to resolved type references."""

    def __init__(self, scope: _ModuleScope, enclosing: list[str]):
        self.scope = scope
        self.enclosing = enclosing
        self.local_vars: dict[str, ast.expr | None] = {}

    def qualified(self, node: ast.expr) -> str | None:
        dotted = _dotted(node)
        if dotted is None:
            return None
        return self.scope.resolve(dotted, self.enclosing)

    def convert(self, node: ast.expr | None, depth: int = 0) -> TypeRef:
        if node is None or depth > 20:
            return TypeRef(name=None)

        if isinstance(node, ast.Constant):
            if node.value is None:
                return TypeRef(name="None", primitive=True)
            if isinstance(node.value, str):
                try:
                    parsed = ast.parse(node.value, mode="eval").body
                except SyntaxError:
                    return TypeRef(name=None)
                return self.convert(parsed, depth + 1)
            return TypeRef(name=None)

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._union(_flatten_union(node), depth)

        if isinstance(node, ast.Subscript):
            return self._subscript(node, depth)

        dotted = _dotted(node)
        if dotted is None:
            return TypeRef(name=None)
        type_var = self._type_var(dotted)
        if type_var is not None:
            return type_var
        name = self.qualified(node)
        if name is None:
            return TypeRef(name=None)
        return TypeRef(name=name, primitive=name in PRIMITIVES or dotted in PRIMITIVES)

    def _type_var(self, dotted: str) -> TypeRef | None:
        for table in (self.local_vars, self.scope.type_vars):
            if dotted in table:
                bound = table[dotted]
                return TypeRef(
                    name=dotted,
                    variable=True,
                    bound=self.convert(bound) if bound is not None else TypeRef(name=ROOT_TYPE),
                )
        return None

    def _subscript(self, node: ast.Subscript, depth: int) -> TypeRef:
        name = self.qualified(node.value)
        args = list(node.slice.elts) if isinstance(node.slice, ast.Tuple) else [node.slice]
        if name in _UNWRAP:
            return self.convert(args[0], depth + 1)
        if name in _UNION:
            return self._union(args, depth)
        if name is None:
            return TypeRef(name=None)
        if name in PRIMITIVES:
            return TypeRef(name=name, primitive=True)
        if name in _OPAQUE_ARGS:
            return TypeRef(name=name)
        converted = [
            self.convert(arg, depth + 1)
            for arg in args
            if not (isinstance(arg, ast.Constant) and arg.value is Ellipsis)
        ]
        return TypeRef(name=name, args=converted)

    def _union(self, members: list[ast.expr], depth: int) -> TypeRef:
        refs = [self.convert(m, depth + 1) for m in members]
        refs = [r for r in refs if not (r.primitive and r.name == "None")]
        if len(refs) == 1:
            return refs[0]
        if not refs:
            return TypeRef(name="None", primitive=True)
        return TypeRef(name="typing.Union", args=refs)


def _dotted(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        head = _dotted(node.value)
        return f"{head}.{node.attr}" if head else None
    return None


def _names(node: ast.expr) -> list[str]:
    elts = node.elts if isinstance(node, ast.Tuple) else [node]
    return [e.id for e in elts if isinstance(e, ast.Name)]


def _flatten_union(node: ast.expr) -> list[ast.expr]:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _flatten_union(node.left) + _flatten_union(node.right)
    return [node]


def _self_attribute(target: ast.expr, self_name: str) -> str | None:
    if (
        isinstance(target, ast.Attribute)
        and isinstance(target.value, ast.Name)
        and target.value.id == self_name
    ):
        return target.attr
    return None


def _is_type_var(value: ast.expr) -> bool:
    return (
        isinstance(value, ast.Call)
        and _dotted(value.func) in {"TypeVar", "typing.TypeVar"}
    )


def _type_var_bound(call: ast.Call) -> ast.expr | None:
    for kw in call.keywords:
        if kw.arg == "bound":
            return kw.value
    return None
