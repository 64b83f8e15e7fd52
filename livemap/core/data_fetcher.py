"""DataFetcher - Turns raw runtime rows into a validated LocationRecord snapshot.

Pipeline per row:
1. Read latitude / longitude / index out of the payload by configured column name
2. Coerce numeric-looking strings to numbers (anything else becomes NaN)
3. Drop the row if either coordinate is NaN or outside the WGS84 range
4. Keep every other payload field attached for popup composition
5. An unparsable created_at becomes UNKNOWN_TIMESTAMP (sorts first), the row is kept

Result semantics:
- Empty snapshot = "no data" (success)
- FetchFailedMessage = storage or transport failure; the caller keeps its
  last good render
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from livemap.constants import FetchConfig
from livemap.core.geo_calculator import GeoCalculator
from livemap.core.runtime_store import RuntimeDataStore, RuntimeRow
from livemap.core.value_parsing import coerce_number, parse_timestamp
from livemap.exceptions import StorageError
from livemap.model.location_record import LocationRecord
from livemap.model.map_configuration import ColumnMapping
from livemap.model.message import FetchFailedMessage

logger = logging.getLogger(__name__)

UNKNOWN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one poll: either a snapshot or an error, never both."""

    records: tuple[LocationRecord, ...] = ()
    error: FetchFailedMessage | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_empty(self) -> bool:
        return self.ok and not self.records

    @staticmethod
    def failure(reason: str) -> "FetchResult":
        return FetchResult(records=(), error=FetchFailedMessage(reason=reason))


class DataFetcher:
    """Polls the runtime store and validates rows into records.

    Example:
        fetcher = DataFetcher(store=InMemoryRuntimeDataStore())
        result = fetcher.fetch_batch(product_id="p1", table_name="gps", device_id=None,
                                     column_mapping=ColumnMapping())
    """

    def __init__(self, store: RuntimeDataStore, max_rows: int = FetchConfig.MAX_ROWS) -> None:
        self.store = store
        self.max_rows = min(max_rows, FetchConfig.MAX_ROWS)

    def fetch_batch(
        self,
        product_id: str,
        table_name: str,
        device_id: str | None,
        column_mapping: ColumnMapping,
    ) -> FetchResult:
        """Fetch the newest rows and transform them into valid records.

        Returns:
            FetchResult with records in fetch (newest-first) order, or an error.
        """
        try:
            rows = self.store.query(
                product_id=product_id,
                table_name=table_name,
                device_id=device_id,
                limit=self.max_rows,
            )
        except StorageError as e:
            logger.error(f"[FETCH] Storage query failed for {product_id}/{table_name}: {e}")
            return FetchResult.failure(reason=str(e))

        records = tuple(
            record
            for record in (self.transform_row(row=row, column_mapping=column_mapping) for row in rows[: self.max_rows])
            if record is not None
        )
        logger.info(f"[FETCH] {product_id}/{table_name}: {len(records)} valid of {len(rows)} rows")
        return FetchResult(records=records)

    @staticmethod
    def transform_row(row: RuntimeRow, column_mapping: ColumnMapping) -> LocationRecord | None:
        """Validate one row. Returns None if the row can't be placed on the map."""
        payload = row.data_payload or {}
        lat = coerce_number(payload.get(column_mapping.latitude))
        lon = coerce_number(payload.get(column_mapping.longitude))

        if not GeoCalculator.is_valid_coordinate(lat=lat, lon=lon):
            logger.debug(f"[FETCH] Skipping row {row.id}: invalid coordinates lat={lat}, lon={lon}")
            return None

        created_at = parse_timestamp(row.created_at)
        if created_at is None:
            logger.warning(f"[FETCH] Row {row.id} has unparsable created_at '{row.created_at}', ordering it first")
            created_at = UNKNOWN_TIMESTAMP

        geometry_columns = {column_mapping.latitude, column_mapping.longitude}
        extra = {key: value for key, value in payload.items() if key not in geometry_columns}

        return LocationRecord(
            id=row.id,
            created_at=created_at,
            latitude=lat,
            longitude=lon,
            index_key=payload.get(column_mapping.index),
            extra=extra,
        )
