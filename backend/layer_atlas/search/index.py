"""In-process search index over compact definitions."""

from __future__ import annotations

import heapq
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from rank_bm25 import BM25Okapi
from rapidfuzz import fuzz, process

from layer_atlas.core.logging import layer_context
from layer_atlas.schema.types import CompactDefinition

logger = logging.getLogger(__name__)

FILTERABLE_ATTRIBUTES = ("layer_id", "definition_id", "name", "definition_type", "return_type", "namespace")
SEARCHABLE_ATTRIBUTES = ("name", "namespace", "return_type", "definition_id")

# Minimum fuzzy similarity for a name that does not contain every query word.
FUZZY_THRESHOLD = 0.6
# Distinct names considered for typo matching per query.
FUZZY_LIMIT = 10
# Word matches re-ranked with fuzzy similarity, best BM25 first.
RERANK_DEPTH = 200
BM25_WEIGHT = 0.4

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


@dataclass(slots=True)
class SearchHit:
    document: dict[str, Any]
    score: float
    formatted: dict[str, Any]


@dataclass(slots=True)
class SearchResults:
    hits: list[SearchHit]
    total_hits: int
    query: str


class DefinitionIndex:
    """Id-keyed document store with equality filters and ranked search.

    :meth:`replace` swaps the contents wholesale and builds everything a
    query needs: the BM25 model, per-attribute word postings, exact-value
    lookups and per-layer positions. Queries only read those structures.

    A document is a hit when every query word occurs in the searched
    attributes, or when its name is among the closest fuzzy matches.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._ordered: list[dict[str, Any]] = []
        self._model: BM25Okapi | None = None
        self._postings: dict[str, dict[str, set[int]]] = {}
        self._values: dict[str, dict[str, list[int]]] = {}
        self._layers: dict[int, set[int]] = {}
        self._ready = False

    @property
    def size(self) -> int:
        return len(self._documents)

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def filterable_attributes(self) -> list[str]:
        return list(FILTERABLE_ATTRIBUTES)

    def replace(self, definitions: Iterable[CompactDefinition]) -> int:
        documents: dict[str, dict[str, Any]] = {}
        for definition in definitions:
            documents[definition.id] = definition.to_document()
        ordered = list(documents.values())

        postings: dict[str, dict[str, set[int]]] = {field: {} for field in SEARCHABLE_ATTRIBUTES}
        values: dict[str, dict[str, list[int]]] = {field: {} for field in FILTERABLE_ATTRIBUTES}
        layers: dict[int, set[int]] = {}
        corpus: list[list[str]] = []
        for position, document in enumerate(ordered):
            layers.setdefault(document["layer_id"], set()).add(position)
            for field in FILTERABLE_ATTRIBUTES:
                value = document.get(field)
                if value is not None:
                    values[field].setdefault(_value_key(value), []).append(position)
            tokens: list[str] = []
            for field in SEARCHABLE_ATTRIBUTES:
                field_tokens = _tokenize(str(document.get(field) or ""))
                for token in field_tokens:
                    postings[field].setdefault(token, set()).add(position)
                tokens.extend(field_tokens)
            corpus.append(tokens or ["_"])

        self._documents = documents
        self._ordered = ordered
        self._model = BM25Okapi(corpus) if corpus else None
        self._postings = postings
        self._values = values
        self._layers = layers
        self._ready = True
        logger.info(
            "Search index replaced with %s documents",
            len(documents),
            extra=layer_context(documents=len(documents), layers=len(layers)),
        )
        return len(documents)

    def filter(self, limit: int | None = None, **equals: Any) -> list[dict[str, Any]]:
        """Documents whose attributes equal every given value, in insertion order."""
        unknown = set(equals) - set(FILTERABLE_ATTRIBUTES)
        if unknown:
            raise ValueError(f"Attributes not filterable: {sorted(unknown)}")
        conditions = {key: _normalize_value(value) for key, value in equals.items() if value is not None}
        positions: Iterable[int] = range(len(self._ordered))
        if conditions:
            # Walk the rarest condition's positions only.
            candidates = [self._values.get(key, {}).get(_value_key(value), []) for key, value in conditions.items()]
            positions = min(candidates, key=len)
        matches: list[dict[str, Any]] = []
        for position in positions:
            document = self._ordered[position]
            if all(document.get(key) == value for key, value in conditions.items()):
                matches.append(document)
                if limit is not None and len(matches) >= limit:
                    break
        return matches

    def search(
        self,
        query: str,
        layer_id: int | None = None,
        attributes: Sequence[str] | None = None,
        limit: int = 10,
        highlight_pre: str = "",
        highlight_post: str = "",
    ) -> SearchResults:
        """Rank hits by BM25 blended with fuzzy similarity."""
        fields = _resolve_attributes(attributes)
        needle = query.strip().lower()
        if self._model is None or not needle:
            return SearchResults(hits=[], total_hits=0, query=query)

        allowed = self._layers.get(layer_id, set()) if layer_id is not None else None
        query_tokens = list(dict.fromkeys(_tokenize(query)))
        matched = self._match_all_words(query_tokens, fields, allowed)
        fuzzy = self._fuzzy_matches(needle, fields, allowed)
        total_hits = len(matched | fuzzy.keys())
        if not total_hits:
            return SearchResults(hits=[], total_hits=0, query=query)

        bm25 = self._bm25_scores(query_tokens, matched)
        shortlist = set(heapq.nlargest(RERANK_DEPTH, matched, key=bm25.__getitem__)) | fuzzy.keys()
        bm25.update(self._bm25_scores(query_tokens, shortlist - bm25.keys()))
        top_bm25 = max((bm25[position] for position in shortlist), default=0.0)

        scored: list[tuple[float, int]] = []
        for position in shortlist:
            similarity = fuzzy.get(position)
            if similarity is None:
                similarity = _fuzzy_similarity(needle, self._ordered[position], fields)
            normalized = bm25[position] / top_bm25 if top_bm25 > 0 else 0.0
            score = (1 - BM25_WEIGHT) * similarity + BM25_WEIGHT * max(normalized, 0.0)
            scored.append((score, position))

        scored.sort(key=lambda item: (-item[0], item[1]))
        hits = [
            SearchHit(
                document=self._ordered[position],
                score=round(score, 6),
                formatted=_highlight(self._ordered[position], fields, query_tokens, highlight_pre, highlight_post),
            )
            for score, position in scored[:limit]
        ]
        return SearchResults(hits=hits, total_hits=total_hits, query=query)

    def _match_all_words(
        self,
        tokens: Sequence[str],
        fields: Sequence[str],
        allowed: set[int] | None,
    ) -> set[int]:
        matched: set[int] | None = allowed
        for token in tokens:
            found: set[int] = set()
            for field in fields:
                found |= self._postings[field].get(token, set())
            matched = found if matched is None else matched & found
            if not matched:
                return set()
        return matched if tokens and matched is not None else set()

    def _fuzzy_matches(self, needle: str, fields: Sequence[str], allowed: set[int] | None) -> dict[int, float]:
        found: dict[int, float] = {}
        for field in fields:
            for position in self._values[field].get(needle, []):
                found[position] = 1.0
        if "name" in fields:
            names = self._values["name"]
            for value, score, _ in process.extract(
                needle,
                list(names),
                scorer=fuzz.WRatio,
                limit=FUZZY_LIMIT,
                score_cutoff=FUZZY_THRESHOLD * 100,
            ):
                similarity = 1.0 if value == needle else score / 100.0 * 0.99
                for position in names[value]:
                    found[position] = max(found.get(position, 0.0), similarity)
        if allowed is not None:
            found = {position: value for position, value in found.items() if position in allowed}
        return found

    def _bm25_scores(self, tokens: Sequence[str], positions: Iterable[int]) -> dict[int, float]:
        positions = list(positions)
        if self._model is None or not tokens or not positions:
            return {position: 0.0 for position in positions}
        scores = self._model.get_batch_scores(list(tokens), positions)
        return {position: float(score) for position, score in zip(positions, scores)}


def _resolve_attributes(attributes: Sequence[str] | None) -> tuple[str, ...]:
    if not attributes or "*" in attributes:
        return SEARCHABLE_ATTRIBUTES
    unknown = set(attributes) - set(SEARCHABLE_ATTRIBUTES)
    if unknown:
        raise ValueError(f"Attributes not searchable: {sorted(unknown)}")
    return tuple(attributes)


def _normalize_value(value: Any) -> Any:
    # str enums such as DefinitionType are stored by value
    return getattr(value, "value", value)


def _value_key(value: Any) -> Any:
    value = _normalize_value(value)
    return value.lower() if isinstance(value, str) else value


def _tokenize(text: str) -> list[str]:
    """Split dotted and camelCase identifiers into lower-case words."""
    return [token.lower() for token in _WORD_RE.findall(text)]


def _fuzzy_similarity(needle: str, document: dict[str, Any], fields: Sequence[str]) -> float:
    best = 0.0
    for field in fields:
        value = document.get(field)
        if not value:
            continue
        haystack = str(value).lower()
        if haystack == needle:
            return 1.0
        best = max(best, fuzz.WRatio(needle, haystack) / 100.0 * 0.99)
    return best


def _highlight(
    document: dict[str, Any],
    fields: Sequence[str],
    tokens: Sequence[str],
    pre: str,
    post: str,
) -> dict[str, Any]:
    formatted = dict(document)
    if not tokens or not (pre or post):
        return formatted
    pattern = re.compile(
        "|".join(re.escape(token) for token in sorted(set(tokens), key=len, reverse=True)),
        re.IGNORECASE,
    )
    for field in fields:
        value = formatted.get(field)
        if isinstance(value, str):
            formatted[field] = pattern.sub(lambda match: f"{pre}{match.group(0)}{post}", value)
    return formatted


__all__ = [
    "DefinitionIndex",
    "SearchHit",
    "SearchResults",
    "FILTERABLE_ATTRIBUTES",
    "SEARCHABLE_ATTRIBUTES",
]
