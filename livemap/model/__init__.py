"""Data model for the live map widget.

- LocationRecord / LatLng: Validated point with its payload
- MapConfiguration: Frozen widget configuration and change classification
- DataSource: None | Static | Live
- Message: Inline widget messages (no data, fetch failed, render error)
"""

from livemap.model.data_source import (
    DataSource,
    LiveDataSource,
    NoDataSource,
    StaticDataSource,
    resolve_data_source,
)
from livemap.model.location_record import LatLng, LocationRecord
from livemap.model.map_configuration import (
    ColumnMapping,
    DataBinding,
    MapConfiguration,
    MarkerVisual,
    PathVisual,
    PopupFlags,
    ShapeClip,
)
from livemap.model.message import (
    DesignModeMessage,
    FetchFailedMessage,
    LoadingMessage,
    MapRenderErrorMessage,
    Message,
    MessageLevel,
    NoDataMessage,
)

__all__ = [
    "LatLng",
    "LocationRecord",
    "MapConfiguration",
    "MarkerVisual",
    "PathVisual",
    "ColumnMapping",
    "PopupFlags",
    "ShapeClip",
    "DataBinding",
    "DataSource",
    "NoDataSource",
    "StaticDataSource",
    "LiveDataSource",
    "resolve_data_source",
    "Message",
    "MessageLevel",
    "NoDataMessage",
    "LoadingMessage",
    "DesignModeMessage",
    "FetchFailedMessage",
    "MapRenderErrorMessage",
]
