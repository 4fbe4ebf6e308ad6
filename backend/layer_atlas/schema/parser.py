"""TL schema parser.

Turns the raw text of one layer into a :class:`ParsedSchema`. A layer file
looks like::

    boolFalse#bc799737 = Bool;
    ///////// Main application API
    ---types---
    user#2e13f4c3 flags:# id:long first_name:flags.1?string = User;
    messages.chats#64ff9fd5 chats:Vector<Chat> = messages.Chats;
    ---functions---
    users.getUsers#d91a548 id:Vector<InputUser> = Vector<User>;

The parser is total: lines that break the grammar are skipped and logged
instead of aborting the whole layer.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator

from layer_atlas.core.logging import layer_context
from layer_atlas.models.entities import RawLayer
from layer_atlas.schema.types import (
    Constructor,
    FunctionDefinition,
    Parameter,
    ParsedSchema,
    TypeGroup,
)

logger = logging.getLogger(__name__)

IGNORED_DEFINITIONS = frozenset({"boolFalse", "boolTrue", "true", "error", "vector", "null"})
MAIN_API_MARKER = "///////// Main application API"
COMMENT_PREFIX = "//"
TYPES_MARKER = "---types---"
FUNCTIONS_MARKER = "---functions---"
OTHERS_NAMESPACE = "Others"

_DEFINITION_NAME_RE = re.compile(r"^\s*([^\s#]+)")


def parse_schema(raw: RawLayer) -> ParsedSchema:
    """Parse one layer into its object type groups and function buckets."""
    object_lines, function_lines = _split_sections(_preprocess(raw.text))
    objects = _parse_objects(object_lines, raw.layer_id)
    functions = _parse_functions(function_lines, raw.layer_id)
    logger.debug(
        "Parsed layer %s: %s type groups, %s function buckets",
        raw.layer_id,
        len(objects),
        len(functions),
        extra=layer_context(raw.layer_id),
    )
    return ParsedSchema(
        layer_id=raw.layer_id,
        release_date=raw.release_date,
        objects=objects,
        functions=functions,
    )


def split_namespace(name: str) -> tuple[str | None, str]:
    """Split ``ns.name`` into ``("ns", "name")``; other shapes have no namespace."""
    parts = name.split(".")
    if len(parts) == 2:
        return parts[0], parts[1]
    return None, name


def parse_parameters(text: str, layer_id: int | None = None) -> tuple[str, tuple[Parameter, ...]]:
    """Parse ``id name:type name:type ...`` into the combinator id and its parameters."""
    tokens = text.split()
    if not tokens:
        return "", ()
    combinator_id, *fields = tokens
    parameters: list[Parameter] = []
    for token in fields:
        # {X:Type} declares a type variable, not a field
        if token.startswith("{"):
            continue
        name, sep, param_type = token.partition(":")
        if not sep or not name or not param_type:
            logger.warning(
                "Skipping malformed parameter %r in layer %s", token, layer_id, extra=layer_context(layer_id)
            )
            continue
        parameters.append(_parse_parameter(name, param_type))
    return combinator_id, tuple(parameters)


def generic_inner_type(type_text: str) -> str | None:
    """Return the bracketed payload of ``Container<Inner>``, innermost first."""
    if "<" not in type_text:
        return None
    return type_text.split("<")[-1].split(">")[0]


# ----------------------------------------------------------------------


def _preprocess(text: str) -> str:
    lines = [line for line in text.splitlines() if line.strip() and not _is_ignored(line)]
    joined = "\n".join(lines)
    if MAIN_API_MARKER in joined:
        joined = joined.partition(MAIN_API_MARKER)[2]
    return "\n".join(
        line for line in joined.splitlines() if not line.lstrip().startswith(COMMENT_PREFIX)
    )


def _is_ignored(line: str) -> bool:
    match = _DEFINITION_NAME_RE.match(line)
    return bool(match) and match.group(1) in IGNORED_DEFINITIONS


def _split_sections(text: str) -> tuple[list[str], list[str]]:
    objects: list[str] = []
    functions: list[str] = []
    current = objects
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == TYPES_MARKER:
            current = objects
            continue
        if stripped == FUNCTIONS_MARKER:
            current = functions
            continue
        if stripped:
            current.append(stripped)
    return objects, functions


def _split_definition_line(line: str, layer_id: int) -> tuple[str, str] | None:
    definition, sep, result = line.partition("=")
    result = result.replace(";", "").strip()
    if not sep or not result:
        logger.warning(
            "Skipping definition without result type in layer %s: %r", layer_id, line, extra=layer_context(layer_id)
        )
        return None
    return definition, result


def _parse_definition(definition: str, layer_id: int) -> tuple[str, str, tuple[Parameter, ...]]:
    name, _, param_text = definition.partition("#")
    combinator_id, parameters = parse_parameters(param_text, layer_id)
    return name.strip(), combinator_id, parameters


def _parse_objects(lines: Iterable[str], layer_id: int) -> tuple[TypeGroup, ...]:
    groups: dict[str, list[Constructor]] = {}
    for line in lines:
        parsed = _split_definition_line(line, layer_id)
        if parsed is None:
            continue
        definition, category = parsed
        name, combinator_id, parameters = _parse_definition(definition, layer_id)
        namespace, _ = split_namespace(name)
        groups.setdefault(category, []).append(
            Constructor(id=combinator_id, name=name, namespace=namespace, parameters=parameters)
        )
    return tuple(TypeGroup(name=category, constructors=tuple(ctors)) for category, ctors in groups.items())


def _parse_functions(lines: Iterable[str], layer_id: int) -> dict[str, tuple[FunctionDefinition, ...]]:
    buckets: dict[str, list[FunctionDefinition]] = {}
    for function in _iter_functions(lines, layer_id):
        namespace, _ = split_namespace(function.name)
        buckets.setdefault(namespace or function.name, []).append(function)

    grouped: dict[str, tuple[FunctionDefinition, ...]] = {}
    singles: list[FunctionDefinition] = []
    for key, functions in buckets.items():
        if len(functions) == 1:
            singles.extend(functions)
        else:
            grouped[key] = tuple(functions)
    if singles:
        grouped[OTHERS_NAMESPACE] = grouped.get(OTHERS_NAMESPACE, ()) + tuple(singles)
    return grouped


def _iter_functions(lines: Iterable[str], layer_id: int) -> Iterator[FunctionDefinition]:
    for line in lines:
        parsed = _split_definition_line(line, layer_id)
        if parsed is None:
            continue
        definition, return_type = parsed
        name, combinator_id, parameters = _parse_definition(definition, layer_id)
        yield FunctionDefinition(
            id=combinator_id,
            name=name,
            parameters=parameters,
            return_type=return_type,
            inner_return_type=generic_inner_type(return_type),
        )


def _parse_parameter(name: str, param_type: str) -> Parameter:
    if param_type == "#":
        return Parameter(name=name, type=param_type, is_flag_placeholder=True)
    if param_type.startswith("!"):
        return Parameter(name=name, type=param_type, is_generic=True)
    if param_type.startswith("flags"):
        flag_name, dot, conditional = param_type.partition(".")
        offset, question, inner = conditional.partition("?")
        if dot and question:
            return Parameter(
                name=name,
                type=inner,
                inner_type=generic_inner_type(inner),
                flag_name=flag_name,
                flag_offset=offset,
                is_generic=inner.startswith("!"),
                is_optional=True,
            )
    return Parameter(name=name, type=param_type, inner_type=generic_inner_type(param_type))


__all__ = [
    "IGNORED_DEFINITIONS",
    "OTHERS_NAMESPACE",
    "parse_schema",
    "parse_parameters",
    "split_namespace",
    "generic_inner_type",
]
