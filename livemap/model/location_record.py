"""LocationRecord - One validated position read from the runtime data store.

A LocationRecord is created fresh on every successful fetch and discarded
on the next one. Records only exist with coordinates inside the WGS84
ranges; anything else is dropped by the fetcher before it gets here.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from livemap.core.value_parsing import parse_index_key


@dataclass(frozen=True)
class LatLng:
    """A bare coordinate pair (decimal degrees)."""

    lat: float
    lng: float


@dataclass(frozen=True)
class LocationRecord:
    """A validated location with its remaining payload fields.

    Attributes:
        id: Storage row id
        created_at: Insertion timestamp (timezone aware)
        latitude: Decimal degrees in [-90, 90]
        longitude: Decimal degrees in [-180, 180]
        index_key: Raw index column value (string or number) if present
        extra: Payload fields other than the coordinate columns, read-only
    """

    id: str
    created_at: datetime
    latitude: float
    longitude: float
    index_key: str | float | int | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.extra, MappingProxyType):
            object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def position(self) -> LatLng:
        return LatLng(lat=self.latitude, lng=self.longitude)

    @property
    def numeric_index(self) -> float | None:
        """Index key as a number, or None when missing or unparsable."""
        return parse_index_key(self.index_key)

    def get(self, key: str) -> Any:
        """Payload field lookup (None when absent)."""
        return self.extra.get(key)
