"""Whitelist: declarative suppression of known-safe reference edges.

Each non-blank line holds one rule; ``#`` starts a comment.

    com.foo.Child: parent        suppress field ``parent`` of com.foo.Child
    com.foo.Child: com.foo.Dad   suppress every edge from Child to Dad
    field com.foo.Child.parent   same as ``com.foo.Child: parent``
    type com.foo.Cache           suppress every edge into com.foo.Cache
    outer com.foo.Outer.Inner    suppress Inner's captured outer reference
    namespace com.foo.internal   suppress every edge out of that package

The right-hand side of the colon form is matched against both the edge's
field name and its target type, so one rule file can serve runs over
different source sets. Rules naming types or fields absent from the graph
are inert.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from cycle_finder.analysis.graph_models import Edge, EdgeKind

logger = logging.getLogger(__name__)

_NAME = r"[\w$<>\[\].]+"
_COLON_RULE = re.compile(rf"^({_NAME})\s*:\s*({_NAME})$")
_KEYWORD_RULE = re.compile(rf"^(field|type|outer|namespace)\s+({_NAME})$")


@dataclass(frozen=True)
class WhitelistDiagnostic:
    source: str
    line_number: int
    text: str
    message: str

    def __str__(self) -> str:
        return f"{self.source}:{self.line_number}: {self.message}: {self.text!r}"


@dataclass(frozen=True)
class WhitelistRule:
    kind: str  # "member" | "type" | "outer" | "namespace"
    origin: str = ""
    token: str = ""


@dataclass
class Whitelist:
    """Immutable-by-convention rule index, applied as a pure edge filter."""
    rules: tuple[WhitelistRule, ...] = ()
    diagnostics: list[WhitelistDiagnostic] = field(default_factory=list)

    def __post_init__(self) -> None:
        members: dict[str, set[str]] = {}
        for rule in self.rules:
            if rule.kind == "member":
                members.setdefault(rule.origin, set()).add(rule.token)
        self._members = {k: frozenset(v) for k, v in members.items()}
        self._types = frozenset(r.token for r in self.rules if r.kind == "type")
        self._outers = frozenset(r.token for r in self.rules if r.kind == "outer")
        self._namespaces = tuple(r.token for r in self.rules if r.kind == "namespace")

    # ── Construction ─────────────────────────────────────────

    @classmethod
    def empty(cls) -> Whitelist:
        return cls()

    @classmethod
    def parse(cls, text: str, source: str = "<string>") -> Whitelist:
        rules: list[WhitelistRule] = []
        diagnostics: list[WhitelistDiagnostic] = []

        for line_number, raw in enumerate(text.splitlines(), start=1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            rule = _parse_line(line)
            if rule is None:
                diag = WhitelistDiagnostic(source, line_number, raw.strip(), "malformed whitelist rule")
                logger.warning("%s", diag)
                diagnostics.append(diag)
                continue
            rules.append(rule)

        return cls(rules=tuple(rules), diagnostics=diagnostics)

    @classmethod
    def load(cls, paths: Iterable[Path]) -> Whitelist:
        result = cls.empty()
        for path in paths:
            # Undecodable bytes surface as malformed lines
            text = Path(path).read_text(encoding="utf-8", errors="replace")
            result = result.merge(cls.parse(text, source=str(path)))
        return result

    def merge(self, other: Whitelist) -> Whitelist:
        return Whitelist(
            rules=self.rules + other.rules,
            diagnostics=self.diagnostics + other.diagnostics,
        )

    # ── Matching ─────────────────────────────────────────────

    def matches(self, edge: Edge) -> bool:
        origin = edge.origin.name
        tokens = self._members.get(origin)
        if tokens:
            if edge.name and edge.name in tokens:
                return True
            if edge.target.name in tokens:
                return True
        if edge.target.name in self._types:
            return True
        if edge.kind is EdgeKind.OUTER and origin in self._outers:
            return True
        for namespace in self._namespaces:
            if origin == namespace or origin.startswith(namespace + "."):
                return True
        return False

    def apply(self, edges: Iterable[Edge]) -> list[Edge]:
        """Return the edges not matched by any rule."""
        return [e for e in edges if not self.matches(e)]

    def __len__(self) -> int:
        return len(self.rules)


def _parse_line(line: str) -> WhitelistRule | None:
    m = _KEYWORD_RULE.match(line)
    if m:
        keyword, name = m.groups()
        if keyword == "field":
            if "." not in name:
                return None
            origin, member = name.rsplit(".", 1)
            return WhitelistRule("member", origin, member)
        return WhitelistRule(keyword, token=name)

    m = _COLON_RULE.match(line)
    if m:
        return WhitelistRule("member", m.group(1), m.group(2))
    return None
