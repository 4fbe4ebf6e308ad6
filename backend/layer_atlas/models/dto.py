"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from layer_atlas.schema.types import FetchMode
from layer_atlas.search.index import SEARCHABLE_ATTRIBUTES


class _NameField(BaseModel):
    @field_validator("name", "namespace", "query", mode="before", check_fields=False)
    @classmethod
    def _trim(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class GetByNameRequest(_NameField):
    name: str = Field(min_length=3, max_length=100)
    layer_id: int | None = Field(default=None, ge=1, le=1000)
    mode: FetchMode = FetchMode.COMPACT
    limit: int | None = Field(default=None, ge=1, le=300)


class GetNamespaceRequest(_NameField):
    layer_id: int = Field(ge=1, le=1000)
    namespace: str = Field(min_length=3, max_length=100)


class HistoryRequest(_NameField):
    name: str = Field(min_length=3, max_length=100)


class SearchLayerRequest(_NameField):
    query: str = Field(min_length=3, max_length=100)
    layer_id: int | None = Field(default=None, ge=1, le=1000)
    filter: list[str] = Field(default_factory=list, description="Attributes to search on")
    limit: int | None = Field(default=None, ge=1, le=300)
    highlight: bool = False
    highlight_prefix: str | None = Field(default=None, min_length=1, max_length=15)
    highlight_postfix: str | None = Field(default=None, min_length=1, max_length=15)

    @field_validator("filter", mode="before")
    @classmethod
    def _normalize_filter(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item.strip().lower() if isinstance(item, str) else item for item in value]
        return value

    @field_validator("filter")
    @classmethod
    def _check_filter(cls, value: list[str]) -> list[str]:
        allowed = set(SEARCHABLE_ATTRIBUTES) | {"*"}
        unknown = [item for item in value if item not in allowed]
        if unknown:
            raise ValueError(f"unsupported search attributes: {unknown}")
        return value

    @field_validator("highlight_prefix", "highlight_postfix", mode="before")
    @classmethod
    def _trim_tags(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class DefinitionHit(BaseModel):
    ranking_score: float
    layer_id: int
    definition_id: str
    name: str
    namespace: str
    return_type: str | None = None
    definition_type: str
    formatted_result: dict[str, Any] | None = None


class SearchResponse(BaseModel):
    results: list[DefinitionHit]
    process_time_ms: int
    total_hits: int
    query: str

    def summary(self) -> str:
        return f"processed {self.query} ({self.process_time_ms} MS). estimated hits: {self.total_hits}."


class ApiResponse(BaseModel):
    message: str = ""
    data: Any = None


__all__ = [
    "GetByNameRequest",
    "GetNamespaceRequest",
    "HistoryRequest",
    "SearchLayerRequest",
    "DefinitionHit",
    "SearchResponse",
    "ApiResponse",
]
