"""Shared pytest fixtures for livemap tests.

Provides fakes for every collaborator of the map pipeline so tests stay
deterministic and never touch the network or spawn threads:

    RecordingBackend:      MapBackend that records calls and attached layers
    ManualScheduler:       IntervalScheduler whose ticks are fired by hand
    DeferredRunner:        task runner that queues tasks until run_all()
    FailingGeolocation:    GeolocationProvider that always raises

COORDINATES:
    Test rows sit around New York (the widget's default center) so popups
    and bounds look like real data.
"""

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from livemap.core.data_fetcher import DataFetcher
from livemap.core.geolocation import FixedGeolocationProvider, GeolocationOptions
from livemap.core.runtime_store import InMemoryRuntimeDataStore, RuntimeRow
from livemap.exceptions import GeolocationError, StorageError
from livemap.model.location_record import LatLng, LocationRecord
from livemap.model.map_configuration import DataBinding, MapConfiguration
from livemap.ui.map_backend import ArrowPattern, LineStyle
from livemap.ui.marker_icons import IconDescriptor
from livemap.ui.popup_composer import PopupContent

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
PRODUCT_ID = "p1"
TABLE_NAME = "gps"


# =============================================================================
# RECORDS AND ROWS
# =============================================================================


def make_record(
    lat: float,
    lng: float,
    index_key: Any = None,
    minutes: int = 0,
    record_id: str | None = None,
    **extra: Any,
) -> LocationRecord:
    """LocationRecord created `minutes` after BASE_TIME."""
    return LocationRecord(
        id=record_id or f"r-{lat}-{lng}-{minutes}",
        created_at=BASE_TIME + timedelta(minutes=minutes),
        latitude=lat,
        longitude=lng,
        index_key=index_key,
        extra=extra,
    )


def make_row(payload: dict[str, Any], minutes: int = 0, row_id: str = "row") -> RuntimeRow:
    return RuntimeRow(
        id=row_id,
        created_at=(BASE_TIME + timedelta(minutes=minutes)).isoformat(),
        data_payload=payload,
    )


# =============================================================================
# RENDERING BACKEND
# =============================================================================

_fake_ids = itertools.count(1)


@dataclass(eq=False)
class FakeLayer:
    kind: str
    payload: dict = field(default_factory=dict)
    children: list["FakeLayer"] = field(default_factory=list)
    layer_id: str = field(default_factory=lambda: f"fake_{next(_fake_ids)}")


class RecordingBackend:
    """MapBackend fake keeping the attached layers and a call log."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.attached: list[FakeLayer] = []
        self.removed: list[FakeLayer] = []
        self.fitted: list[tuple[list[LatLng], int]] = []
        self.container: str | None = None
        self.center: LatLng | None = None
        self.zoom: float | None = None
        self.has_zoom_control = False
        self.destroyed = 0

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    def create_map(self, container: str, center: LatLng, zoom: float) -> None:
        self._record("create_map")
        self.container = container
        self.center = center
        self.zoom = zoom

    def tile_layer(self, url_template: str, attribution: str) -> FakeLayer:
        self._record("tile_layer")
        return FakeLayer(kind="tiles", payload={"url": url_template, "attribution": attribution})

    def marker(self, position: LatLng, icon: IconDescriptor, popup: PopupContent | None = None) -> FakeLayer:
        self._record("marker")
        return FakeLayer(kind="marker", payload={"position": position, "icon": icon, "popup": popup})

    def polyline(self, points: list[LatLng], style: LineStyle) -> FakeLayer:
        self._record("polyline")
        return FakeLayer(kind="polyline", payload={"points": list(points), "style": style})

    def polyline_decorator(self, polyline: FakeLayer, pattern: ArrowPattern) -> FakeLayer:
        self._record("polyline_decorator")
        return FakeLayer(kind="decorator", payload={"polyline": polyline, "pattern": pattern})

    def layer_group(self, layers: list[FakeLayer]) -> FakeLayer:
        self._record("layer_group")
        return FakeLayer(kind="group", children=list(layers))

    def add_layer(self, layer: FakeLayer) -> None:
        self._record("add_layer")
        self.attached.append(layer)

    def remove_layer(self, layer: FakeLayer) -> None:
        self._record("remove_layer")
        self.attached.remove(layer)
        self.removed.append(layer)

    def fit_bounds(self, points: list[LatLng], padding_px: int) -> None:
        self._record("fit_bounds")
        self.fitted.append((list(points), padding_px))

    def set_view(self, center: LatLng, zoom: float) -> None:
        self._record("set_view")
        self.center = center
        self.zoom = zoom

    def zoom_control(self) -> None:
        self._record("zoom_control")
        self.has_zoom_control = True

    def destroy(self) -> None:
        self._record("destroy")
        self.destroyed += 1

    # Helpers for assertions

    def layers_of(self, kind: str) -> list[FakeLayer]:
        return [layer for layer in self.attached if layer.kind == kind]

    @property
    def markers(self) -> list[FakeLayer]:
        """Point markers inside the attached marker group(s)."""
        return [child for group in self.layers_of("group") for child in group.children]


# =============================================================================
# SCHEDULING
# =============================================================================


class ManualTimer:
    def __init__(self, interval_s: float, callback: Callable[[], None]) -> None:
        self.interval_s = interval_s
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def is_active(self) -> bool:
        return not self.cancelled


class ManualScheduler:
    """Keeps every timer it started; tests call tick() to fire them."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def start(self, interval_s: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(interval_s=interval_s, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[ManualTimer]:
        return [timer for timer in self.timers if timer.is_active]

    def tick(self) -> None:
        for timer in self.active:
            timer.callback()


def run_now(task: Callable[[], None]) -> None:
    """Synchronous task runner."""
    task()


class DeferredRunner:
    """Queues tasks so tests control when async work completes."""

    def __init__(self) -> None:
        self.pending: list[Callable[[], None]] = []

    def __call__(self, task: Callable[[], None]) -> None:
        self.pending.append(task)

    def run_all(self) -> None:
        tasks, self.pending = self.pending, []
        for task in tasks:
            task()


# =============================================================================
# STORAGE AND GEOLOCATION
# =============================================================================


class FailingStore:
    """RuntimeDataStore whose queries fail until `fail` is cleared."""

    def __init__(self, inner: InMemoryRuntimeDataStore) -> None:
        self.inner = inner
        self.fail = True
        self.queries = 0

    def query(self, product_id: str, table_name: str, device_id: str | None = None, limit: int = 100):
        self.queries += 1
        if self.fail:
            raise StorageError("connection refused")
        return self.inner.query(product_id=product_id, table_name=table_name, device_id=device_id, limit=limit)


class FailingGeolocation:
    def __init__(self) -> None:
        self.requests = 0

    def current_position(self, options: GeolocationOptions) -> LatLng:
        self.requests += 1
        raise GeolocationError("User denied Geolocation")


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> InMemoryRuntimeDataStore:
    """Three valid rows and one with an unparsable latitude."""
    store = InMemoryRuntimeDataStore()
    points = [
        ({"latitude": "40.7000", "longitude": "-74.0000", "index": "1", "speed": 10}, 0),
        ({"latitude": 40.7100, "longitude": -74.0100, "index": "2", "speed": 12}, 1),
        ({"latitude": "abc", "longitude": "-74.0200", "index": "3"}, 2),
        ({"latitude": "40.7300", "longitude": "-74.0300", "index": "4", "speed": 9}, 3),
    ]
    for payload, minutes in points:
        store.insert(
            product_id=PRODUCT_ID,
            table_name=TABLE_NAME,
            payload=payload,
            created_at=(BASE_TIME + timedelta(minutes=minutes)).isoformat(),
        )
    return store


@pytest.fixture
def fetcher(store: InMemoryRuntimeDataStore) -> DataFetcher:
    return DataFetcher(store=store)


@pytest.fixture
def live_config() -> MapConfiguration:
    return MapConfiguration(data_binding=DataBinding(product_id=PRODUCT_ID, table_name=TABLE_NAME))


@pytest.fixture
def fixed_geolocation() -> FixedGeolocationProvider:
    return FixedGeolocationProvider(position=LatLng(lat=40.75, lng=-73.98))


@pytest.fixture
def three_records() -> list[LocationRecord]:
    return [
        make_record(lat=40.70, lng=-74.00, index_key="3", minutes=0, title="Depot"),
        make_record(lat=40.71, lng=-74.01, index_key="1", minutes=1),
        make_record(lat=40.72, lng=-74.02, index_key="2", minutes=2),
    ]
