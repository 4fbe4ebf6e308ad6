"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(slots=True, frozen=True)
class RawLayer:
    """Unprocessed text of one layer as stored in ``tl_layer``."""

    layer_id: int
    release_date: date
    text: str

    @classmethod
    def from_month(cls, layer_id: int, year: int, month: int, text: str) -> "RawLayer":
        return cls(layer_id=layer_id, release_date=date(year, month, 1), text=text)


@dataclass(slots=True, frozen=True)
class LayerReleaseDate:
    layer_id: int
    release_date: date


__all__ = ["RawLayer", "LayerReleaseDate"]
