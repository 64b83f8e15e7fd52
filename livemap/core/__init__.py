"""Data pipeline for the live map.

- GeoCalculator: Geodesic math (distances, bearings, bounds, fit zoom)
- DataFetcher: Storage rows -> validated LocationRecords
- PointOrderer: Index/timestamp path ordering
- RuntimeDataStore: Storage read protocol (Supabase REST, in-memory)
- GeolocationProvider: One-shot viewer position (IP lookup, fixed)
"""

from livemap.core.geo_calculator import GeoCalculator
from livemap.core.runtime_store import (
    InMemoryRuntimeDataStore,
    RuntimeDataStore,
    RuntimeRow,
    SupabaseRuntimeDataStore,
)
from livemap.core.value_parsing import coerce_number, parse_index_key, parse_timestamp

# DataFetcher, PointOrderer and the geolocation providers have circular import with model.location_record
# Import directly: from livemap.core.data_fetcher import DataFetcher

__all__ = [
    # Geo calculator
    "GeoCalculator",
    # Value parsing
    "coerce_number",
    "parse_index_key",
    "parse_timestamp",
    # Storage
    "RuntimeDataStore",
    "RuntimeRow",
    "SupabaseRuntimeDataStore",
    "InMemoryRuntimeDataStore",
]
