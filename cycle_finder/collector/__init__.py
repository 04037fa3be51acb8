"""Declaration collection: loading resolved declarations and building node records."""

from __future__ import annotations

from cycle_finder.collector.loader import (
    DeclarationError,
    load_declaration_file,
    parse_declarations,
)
from cycle_finder.collector.type_collector import (
    FieldRecord,
    TypeCollector,
    TypeRecord,
    collect_types,
)

__all__ = [
    "DeclarationError",
    "FieldRecord",
    "TypeCollector",
    "TypeRecord",
    "collect_types",
    "load_declaration_file",
    "parse_declarations",
]
