"""DataSource - Where the map widget gets its points from.

One parameterized widget covers both the static preview and the live,
storage-bound map:

    NoDataSource:      nothing to draw (design mode with markers off)
    StaticDataSource:  a single point at the configured center
    LiveDataSource:    polled runtime table
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from livemap.model.location_record import LatLng, LocationRecord
from livemap.model.map_configuration import MapConfiguration


@dataclass(frozen=True)
class NoDataSource:
    is_live = False


@dataclass(frozen=True)
class StaticDataSource:
    point: LatLng
    is_live = False

    def records(self) -> tuple[LocationRecord, ...]:
        """The single static point as a record set."""
        return (
            LocationRecord(
                id="static",
                created_at=datetime.now(timezone.utc),
                latitude=self.point.lat,
                longitude=self.point.lng,
            ),
        )


@dataclass(frozen=True)
class LiveDataSource:
    product_id: str
    table_name: str
    device_id: str | None = None
    is_live = True


DataSource = NoDataSource | StaticDataSource | LiveDataSource


def resolve_data_source(config: MapConfiguration) -> DataSource:
    """Pick the data source for a configuration.

    A complete product/table binding outside design mode polls storage.
    Otherwise the widget is a static preview at its configured center.
    """
    binding = config.data_binding
    if binding.is_complete and not config.design_mode:
        return LiveDataSource(
            product_id=binding.product_id,
            table_name=binding.table_name,
            device_id=binding.device_id,
        )
    if config.marker_visual.show:
        return StaticDataSource(point=config.center)
    return NoDataSource()
