"""Tests for livemap data model.

Tests: LocationRecord, MapConfiguration (dashboard mapping and change
classification), DataSource resolution, inline messages.
"""

from types import MappingProxyType

import pytest

from conftest import make_record
from livemap.constants import MapDefaults
from livemap.model.data_source import LiveDataSource, NoDataSource, StaticDataSource, resolve_data_source
from livemap.model.location_record import LatLng
from livemap.model.map_configuration import (
    DataBinding,
    MapConfiguration,
    MarkerVisual,
    PathVisual,
    ShapeClip,
)
from livemap.model.message import (
    DesignModeMessage,
    FetchFailedMessage,
    LoadingMessage,
    MapRenderErrorMessage,
    MessageLevel,
    NoDataMessage,
)


class TestLocationRecord:
    """LocationRecord - immutable snapshot entry."""

    def test_extra_is_read_only(self) -> None:
        record = make_record(lat=1, lng=2, speed=10)
        assert isinstance(record.extra, MappingProxyType)
        with pytest.raises(TypeError):
            record.extra["speed"] = 20  # type: ignore[index]

    def test_extra_is_decoupled_from_source_dict(self) -> None:
        payload = {"speed": 10}
        record = make_record(lat=1, lng=2, **payload)
        payload["speed"] = 99
        assert record.get("speed") == 10

    def test_position_and_numeric_index(self) -> None:
        record = make_record(lat=40.7, lng=-74.0, index_key="12")
        assert record.position == LatLng(lat=40.7, lng=-74.0)
        assert record.numeric_index == 12.0

    def test_get_missing_field(self) -> None:
        assert make_record(lat=0, lng=0).get("title") is None


class TestMapConfigurationFromWidgetConfig:
    """Dashboard camelCase config → frozen MapConfiguration."""

    def test_defaults(self) -> None:
        config = MapConfiguration.from_widget_config({})
        assert config.center == LatLng(lat=40.7128, lng=-74.0060)
        assert config.zoom == 13
        assert config.refresh_interval_ms == 5000
        assert config.marker_visual == MarkerVisual(color="#ff0000", type="default", show=True)
        assert config.path_visual == PathVisual(enabled=True, color="#3b82f6", arrows_enabled=True, arrow_color="#3b82f6")
        assert config.column_mapping.index == "index"
        assert config.tile_provider == "openstreetmap"
        assert config.show_controls is True
        assert config.show_user_location is False
        assert not config.data_binding.is_complete

    def test_none_config(self) -> None:
        assert MapConfiguration.from_widget_config(None) == MapConfiguration.from_widget_config({})

    def test_full_mapping(self) -> None:
        config = MapConfiguration.from_widget_config(
            {
                "productId": "p1",
                "mapTableName": "tracker",
                "latitudeColumn": "lat",
                "longitudeColumn": "lng",
                "indexColumn": "seq",
                "mapRefreshInterval": 1000,
                "mapProvider": "esri",
                "latitude": "48.2",
                "longitude": 16.37,
                "zoomLevel": 9,
                "showMarker": False,
                "markerColor": "#00ff00",
                "markerType": "drone",
                "mapShape": "customPolygon",
                "mapShapeSides": "8",
                "showControls": False,
                "showPath": False,
                "showArrows": False,
                "showUserLocation": True,
                "showPinDescriptions": True,
                "alwaysShowPinDescriptions": True,
                "pinTitleColumn": "name",
                "pinDescriptionColumn": "note",
            },
            device_id="dev-1",
        )
        assert config.data_binding == DataBinding(product_id="p1", table_name="tracker", device_id="dev-1")
        assert config.column_mapping.latitude == "lat"
        assert config.column_mapping.index == "seq"
        assert config.column_mapping.title == "name"
        assert config.refresh_interval_ms == 1000
        assert config.tile_provider == "esri"
        assert config.center == LatLng(lat=48.2, lng=16.37)
        assert config.zoom == 9
        assert config.marker_visual == MarkerVisual(color="#00ff00", type="drone", show=False)
        assert config.path_visual.enabled is False
        assert config.path_visual.arrows_enabled is False
        assert config.shape_clip == ShapeClip(type="customPolygon", sides=8)
        assert config.show_controls is False
        assert config.show_user_location is True
        assert config.popup_flags.show_custom_fields is True
        assert config.popup_flags.always_show_label is True

    def test_runtime_table_name_preferred(self) -> None:
        config = MapConfiguration.from_widget_config({"runtimeTableName": "a", "mapTableName": "b"})
        assert config.data_binding.table_name == "a"

    def test_unknown_marker_type_becomes_default(self) -> None:
        config = MapConfiguration.from_widget_config({"markerType": "submarine"})
        assert config.marker_visual.type == MapDefaults.MARKER_TYPE

    def test_empty_strings_fall_back_to_defaults(self) -> None:
        config = MapConfiguration.from_widget_config({"productId": "", "markerColor": "", "zoomLevel": ""})
        assert config.data_binding.product_id is None
        assert config.marker_visual.color == MapDefaults.MARKER_COLOR
        assert config.zoom == MapDefaults.ZOOM

    @pytest.mark.parametrize(
        "widget_config,attribute,expected",
        [
            ({"mapProvider": "google"}, "tile_provider", MapDefaults.TILE_PROVIDER),
            ({"mapProvider": 42}, "tile_provider", MapDefaults.TILE_PROVIDER),
            ({"mapShape": "hexagon"}, "shape_clip", ShapeClip()),
            ({"mapShapeSides": "many"}, "shape_clip", ShapeClip()),
            ({"latitude": "abc"}, "center", LatLng(lat=MapDefaults.CENTER_LAT, lng=MapDefaults.CENTER_LON)),
            ({"longitude": {"x": 1}}, "center", LatLng(lat=MapDefaults.CENTER_LAT, lng=MapDefaults.CENTER_LON)),
            ({"latitude": 123, "longitude": 10}, "center", LatLng(lat=MapDefaults.CENTER_LAT, lng=MapDefaults.CENTER_LON)),
            ({"zoomLevel": "close"}, "zoom", MapDefaults.ZOOM),
            ({"refreshInterval": "fast"}, "refresh_interval_ms", MapDefaults.REFRESH_INTERVAL_MS),
            ({"mapRefreshInterval": "nan"}, "refresh_interval_ms", MapDefaults.REFRESH_INTERVAL_MS),
        ],
    )
    def test_unusable_values_fall_back_to_defaults(self, widget_config: dict, attribute: str, expected) -> None:
        config = MapConfiguration.from_widget_config(widget_config)
        assert getattr(config, attribute) == expected

    def test_unusable_value_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING", logger="livemap.model.map_configuration"):
            MapConfiguration.from_widget_config({"mapProvider": "google"})
        assert "Unknown mapProvider 'google'" in caplog.text

    def test_numeric_strings_are_accepted(self) -> None:
        config = MapConfiguration.from_widget_config(
            {"zoomLevel": "9", "refreshInterval": "1000", "mapShape": "customPolygon", "mapShapeSides": "8.0"}
        )
        assert config.zoom == 9
        assert config.refresh_interval_ms == 1000
        assert config.shape_clip == ShapeClip(type="customPolygon", sides=8)

    def test_design_mode_flag(self) -> None:
        assert MapConfiguration.from_widget_config({}, design_mode=True).design_mode is True

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValueError, match="tile provider"):
            MapConfiguration(tile_provider="google")

    def test_unknown_shape_rejected(self) -> None:
        with pytest.raises(ValueError, match="shape"):
            MapConfiguration(shape_clip=ShapeClip(type="star"))


class TestChangeClassification:
    """Which configuration changes rebuild the surface or the poller."""

    @pytest.mark.parametrize(
        "changes",
        [
            {"tile_provider": "carto"},
            {"shape_clip": ShapeClip(type="circle")},
            {"design_mode": True},
        ],
    )
    def test_reinitialization_triggers(self, changes: dict) -> None:
        base = MapConfiguration()
        assert base.requires_reinitialization(base.with_changes(**changes))

    @pytest.mark.parametrize(
        "changes",
        [
            {"marker_visual": MarkerVisual(color="#000000")},
            {"path_visual": PathVisual(enabled=False)},
            {"zoom": 4},
            {"refresh_interval_ms": 1000},
            {"show_user_location": True},
        ],
    )
    def test_in_place_changes(self, changes: dict) -> None:
        base = MapConfiguration()
        assert not base.requires_reinitialization(base.with_changes(**changes))

    @pytest.mark.parametrize(
        "changes",
        [
            {"refresh_interval_ms": 1000},
            {"data_binding": DataBinding(product_id="p2", table_name="gps")},
            {"design_mode": True},
        ],
    )
    def test_new_poller_triggers(self, changes: dict) -> None:
        base = MapConfiguration(data_binding=DataBinding(product_id="p1", table_name="gps"))
        assert base.requires_new_poller(base.with_changes(**changes))

    def test_visual_change_keeps_poller(self) -> None:
        base = MapConfiguration()
        assert not base.requires_new_poller(base.with_changes(marker_visual=MarkerVisual(type="car")))


class TestDataSource:
    """None | Static | Live resolution."""

    def test_complete_binding_is_live(self) -> None:
        config = MapConfiguration(data_binding=DataBinding(product_id="p1", table_name="gps", device_id="d"))
        assert resolve_data_source(config) == LiveDataSource(product_id="p1", table_name="gps", device_id="d")

    def test_design_mode_never_polls(self) -> None:
        config = MapConfiguration(data_binding=DataBinding(product_id="p1", table_name="gps"), design_mode=True)
        source = resolve_data_source(config)
        assert isinstance(source, StaticDataSource)
        assert not source.is_live

    def test_incomplete_binding_is_static_preview(self) -> None:
        config = MapConfiguration(data_binding=DataBinding(product_id="p1"))
        source = resolve_data_source(config)
        assert source == StaticDataSource(point=config.center)
        (record,) = source.records()
        assert record.position == config.center

    def test_hidden_markers_without_binding_is_none(self) -> None:
        config = MapConfiguration(marker_visual=MarkerVisual(show=False))
        assert isinstance(resolve_data_source(config), NoDataSource)


class TestMessages:
    """Inline widget messages."""

    @pytest.mark.parametrize(
        "message,level",
        [
            (NoDataMessage(table_name="gps"), MessageLevel.INFO),
            (LoadingMessage(), MessageLevel.INFO),
            (DesignModeMessage(), MessageLevel.INFO),
            (FetchFailedMessage(reason="timeout"), MessageLevel.ERROR),
            (MapRenderErrorMessage(reason="boom"), MessageLevel.ERROR),
        ],
    )
    def test_levels(self, message, level: MessageLevel) -> None:
        assert message.level == level
        assert message.is_error is (level == MessageLevel.ERROR)

    def test_texts_carry_context(self) -> None:
        assert "gps" in NoDataMessage(table_name="gps").message
        assert "timeout" in FetchFailedMessage(reason="timeout").message
        assert "boom" in MapRenderErrorMessage(reason="boom").message
