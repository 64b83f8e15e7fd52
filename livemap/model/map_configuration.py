"""MapConfiguration - Immutable widget configuration for one reconciliation pass.

The dashboard stores widget settings as a loose camelCase dict. This module
turns that dict into frozen dataclasses once, applying the dashboard
defaults, so the rest of the pipeline never reads raw config keys.

Change classification (see LifecycleController):
    - tile_provider / shape_clip / design_mode: destroy and rebuild the surface
    - polling_key(): reinstall the polling timer
    - view_key(): move the viewport
    - marker/path/popup visuals: reconcile again with the last snapshot
"""

import logging
from dataclasses import dataclass, field, replace
from math import isfinite
from typing import Any

from livemap.constants import MapDefaults, MarkerConfig, ShapeConfig, TileConfig
from livemap.core.geo_calculator import GeoCalculator
from livemap.core.value_parsing import coerce_number
from livemap.model.location_record import LatLng

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerVisual:
    color: str = MapDefaults.MARKER_COLOR
    type: str = MapDefaults.MARKER_TYPE
    show: bool = True


@dataclass(frozen=True)
class PathVisual:
    enabled: bool = True
    color: str = MapDefaults.PATH_COLOR
    arrows_enabled: bool = True
    arrow_color: str = MapDefaults.ARROW_COLOR


@dataclass(frozen=True)
class ColumnMapping:
    """Payload field names for each role (caller-supplied, not fixed by storage)."""

    latitude: str = MapDefaults.LATITUDE_COLUMN
    longitude: str = MapDefaults.LONGITUDE_COLUMN
    index: str = MapDefaults.INDEX_COLUMN
    title: str = MapDefaults.TITLE_COLUMN
    description: str = MapDefaults.DESCRIPTION_COLUMN


@dataclass(frozen=True)
class PopupFlags:
    """Display flags for marker popups and permanent labels."""

    show_custom_fields: bool = False
    always_show_label: bool = False


@dataclass(frozen=True)
class ShapeClip:
    type: str = MapDefaults.SHAPE
    sides: int = MapDefaults.SHAPE_SIDES


@dataclass(frozen=True)
class DataBinding:
    """Which runtime table feeds the widget."""

    product_id: str | None = None
    table_name: str | None = None
    device_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.product_id and self.table_name)


@dataclass(frozen=True)
class MapConfiguration:
    """Complete widget configuration.

    Example:
        config = MapConfiguration.from_widget_config({"productId": "p1", "runtimeTableName": "gps"})
    """

    tile_provider: str = MapDefaults.TILE_PROVIDER
    center: LatLng = LatLng(lat=MapDefaults.CENTER_LAT, lng=MapDefaults.CENTER_LON)
    zoom: float = MapDefaults.ZOOM
    marker_visual: MarkerVisual = field(default_factory=MarkerVisual)
    path_visual: PathVisual = field(default_factory=PathVisual)
    column_mapping: ColumnMapping = field(default_factory=ColumnMapping)
    popup_flags: PopupFlags = field(default_factory=PopupFlags)
    data_binding: DataBinding = field(default_factory=DataBinding)
    refresh_interval_ms: int = MapDefaults.REFRESH_INTERVAL_MS
    design_mode: bool = False
    shape_clip: ShapeClip = field(default_factory=ShapeClip)
    show_controls: bool = True
    show_user_location: bool = False

    def __post_init__(self) -> None:
        if self.tile_provider not in TileConfig.NAMES:
            raise ValueError(f"Unknown tile provider '{self.tile_provider}'. Expected one of {TileConfig.NAMES}")
        if self.shape_clip.type not in ShapeConfig.TYPES:
            raise ValueError(f"Unknown shape '{self.shape_clip.type}'. Expected one of {ShapeConfig.TYPES}")

    # =========================================================================
    # CHANGE CLASSIFICATION
    # =========================================================================

    def surface_key(self) -> tuple:
        """Fields the rendering surface can't swap in place."""
        return (self.tile_provider, self.shape_clip, self.design_mode)

    def view_key(self) -> tuple:
        """Fields applied with a viewport move."""
        return (self.center, self.zoom)

    def polling_key(self) -> tuple:
        """Fields that require a new polling timer."""
        return (
            self.data_binding,
            self.column_mapping.latitude,
            self.column_mapping.longitude,
            self.column_mapping.index,
            self.refresh_interval_ms,
            self.design_mode,
        )

    def requires_reinitialization(self, other: "MapConfiguration") -> bool:
        return self.surface_key() != other.surface_key()

    def requires_new_poller(self, other: "MapConfiguration") -> bool:
        return self.polling_key() != other.polling_key()

    def with_changes(self, **changes: Any) -> "MapConfiguration":
        return replace(self, **changes)

    # =========================================================================
    # DASHBOARD MAPPING
    # =========================================================================

    @staticmethod
    def from_widget_config(
        config: dict[str, Any] | None,
        device_id: str | None = None,
        design_mode: bool = False,
    ) -> "MapConfiguration":
        """Build a configuration from the dashboard's camelCase widget config.

        Falsy values fall back to defaults (the dashboard stores cleared
        fields as empty strings). Boolean toggles that default to on are
        only off when explicitly False. Values the widget can't use (unknown
        provider or shape, non-numeric numbers, an off-globe center) are
        logged and replaced by their defaults, so a stored config never
        keeps the map from rendering.

        Args:
            config: Widget config dict as stored by the dashboard builder
            device_id: Device filter supplied by the hosting page, if any
            design_mode: True when rendered inside the dashboard builder canvas
        """
        c = config or {}

        def on_unless_false(key: str) -> bool:
            return c.get(key) is not False

        def off_unless_true(key: str) -> bool:
            return c.get(key) is True

        def number_or_default(*keys: str, default: float) -> float:
            value = next((c[key] for key in keys if c.get(key)), None)
            if value is None:
                return default
            number = coerce_number(value)
            if not isfinite(number):
                logger.warning(f"[CONFIG] Ignoring non-numeric {keys[0]}={value!r}, using {default}")
                return default
            return number

        def choice_or_default(key: str, choices: list[str], default: str) -> str:
            value = c.get(key)
            if not value:
                return default
            if value not in choices:
                logger.warning(f"[CONFIG] Unknown {key} '{value}', using '{default}'")
                return default
            return value

        center = LatLng(
            lat=number_or_default("latitude", default=MapDefaults.CENTER_LAT),
            lng=number_or_default("longitude", default=MapDefaults.CENTER_LON),
        )
        if not GeoCalculator.is_valid_coordinate(lat=center.lat, lon=center.lng):
            logger.warning(f"[CONFIG] Center ({center.lat}, {center.lng}) is off the globe, using default")
            center = LatLng(lat=MapDefaults.CENTER_LAT, lng=MapDefaults.CENTER_LON)

        return MapConfiguration(
            tile_provider=choice_or_default("mapProvider", TileConfig.NAMES, MapDefaults.TILE_PROVIDER),
            center=center,
            zoom=number_or_default("zoomLevel", default=MapDefaults.ZOOM),
            marker_visual=MarkerVisual(
                color=c.get("markerColor") or MapDefaults.MARKER_COLOR,
                type=choice_or_default("markerType", MarkerConfig.TYPES, MapDefaults.MARKER_TYPE),
                show=on_unless_false("showMarker"),
            ),
            path_visual=PathVisual(
                enabled=on_unless_false("showPath"),
                color=c.get("pathColor") or MapDefaults.PATH_COLOR,
                arrows_enabled=on_unless_false("showArrows"),
                arrow_color=c.get("arrowColor") or MapDefaults.ARROW_COLOR,
            ),
            column_mapping=ColumnMapping(
                latitude=c.get("latitudeColumn") or MapDefaults.LATITUDE_COLUMN,
                longitude=c.get("longitudeColumn") or MapDefaults.LONGITUDE_COLUMN,
                index=c.get("indexColumn") or MapDefaults.INDEX_COLUMN,
                title=c.get("pinTitleColumn") or MapDefaults.TITLE_COLUMN,
                description=c.get("pinDescriptionColumn") or MapDefaults.DESCRIPTION_COLUMN,
            ),
            popup_flags=PopupFlags(
                show_custom_fields=off_unless_true("showPinDescriptions"),
                always_show_label=off_unless_true("alwaysShowPinDescriptions"),
            ),
            data_binding=DataBinding(
                product_id=c.get("productId") or None,
                table_name=c.get("runtimeTableName") or c.get("mapTableName") or None,
                device_id=device_id or c.get("deviceId") or None,
            ),
            refresh_interval_ms=int(
                number_or_default("refreshInterval", "mapRefreshInterval", default=MapDefaults.REFRESH_INTERVAL_MS)
            ),
            design_mode=design_mode,
            shape_clip=ShapeClip(
                type=choice_or_default("mapShape", ShapeConfig.TYPES, MapDefaults.SHAPE),
                sides=int(number_or_default("mapShapeSides", default=MapDefaults.SHAPE_SIDES)),
            ),
            show_controls=on_unless_false("showControls"),
            show_user_location=off_unless_true("showUserLocation"),
        )
