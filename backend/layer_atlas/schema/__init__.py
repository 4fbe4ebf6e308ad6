"""TL schema parsing, layer registry and history reconstruction."""

from .parser import parse_schema, parse_parameters, split_namespace
from .registry import SchemaRegistry, build_compact_definitions
from .history import HistoryEngine, object_usages
from .types import DefinitionType, FetchMode, ParsedSchema

__all__ = [
    "parse_schema",
    "parse_parameters",
    "split_namespace",
    "SchemaRegistry",
    "build_compact_definitions",
    "HistoryEngine",
    "object_usages",
    "DefinitionType",
    "FetchMode",
    "ParsedSchema",
]
