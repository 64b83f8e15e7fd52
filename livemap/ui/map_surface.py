"""MapSurface - Owns the rendering surface and reconciles it against data.

The surface holds every live layer in one RenderedLayers record and replaces
entries wholesale on each reconciliation (old layer released before the new
one attaches). Nothing else holds layer references.

Lifecycle (SurfaceStateMachine):
    Uninitialized --initialize()--> Ready --dispose()--> Disposed

All mutations run under one re-entrant lock, so timer-thread fetch
completions and geolocation completions are serialized with host reads.
Calls that reach a surface that is not Ready are ignored (logged), which is
what keeps late async completions from touching a torn-down map.
"""

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, fields

from livemap.constants import ViewportConfig
from livemap.core.geo_calculator import GeoCalculator
from livemap.core.geolocation import GeolocationOptions, GeolocationProvider
from livemap.exceptions import GeolocationError, RenderInitError
from livemap.model.location_record import LatLng, LocationRecord
from livemap.model.map_configuration import (
    ColumnMapping,
    MapConfiguration,
    MarkerVisual,
    PathVisual,
    PopupFlags,
)
from livemap.ui.map_backend import ArrowPattern, LineStyle, MapBackend, MapLayer
from livemap.ui.marker_icons import MarkerIconResolver
from livemap.ui.popup_composer import PopupComposer
from livemap.ui.shape_clip import StyleDescriptor, style_for_shape
from livemap.ui.state_machine import SurfaceStateMachine
from livemap.ui.tile_layer import tile_source_for

logger = logging.getLogger(__name__)

TaskRunner = Callable[[Callable[[], None]], None]


def spawn_daemon_thread(task: Callable[[], None]) -> None:
    """Run a one-shot task off the caller thread."""
    threading.Thread(target=task, name="livemap-task", daemon=True).start()


@dataclass
class RenderedLayers:
    """Every layer the surface has attached. Owned exclusively by MapSurface."""

    tiles: MapLayer | None = None
    markers: MapLayer | None = None
    path: MapLayer | None = None
    arrows: MapLayer | None = None
    user_location: MapLayer | None = None

    def attached(self) -> list[MapLayer]:
        return [getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None]

    @property
    def is_empty(self) -> bool:
        return not self.attached()


class MapSurface:
    """Stateful map reconciliation.

    Example:
        surface = MapSurface(backend=PydeckBackend(), geolocation=IpGeolocationProvider())
        surface.initialize(container="map-1", config=config)
        surface.reconcile_markers(records, config.marker_visual)
        surface.reconcile_path(PointOrderer.order(records, "index"), config.path_visual)
        surface.fit_to_data(records)
        surface.dispose()
    """

    def __init__(
        self,
        backend: MapBackend,
        geolocation: GeolocationProvider | None = None,
        run_async: TaskRunner = spawn_daemon_thread,
        surface_name: str = "map",
    ) -> None:
        self.backend = backend
        self.geolocation = geolocation
        self.run_async = run_async
        self.surface_name = surface_name
        self.config: MapConfiguration | None = None
        self.layers = RenderedLayers()
        self.lifecycle = SurfaceStateMachine(surface_name=surface_name)
        self._lock = threading.RLock()
        self._user_location_enabled = False
        self._geo_request_id = 0

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_live(self) -> bool:
        """True while Ready (initialized and not disposed)."""
        return self.lifecycle.is_ready

    @property
    def is_disposed(self) -> bool:
        return self.lifecycle.is_disposed

    @contextmanager
    def locked(self) -> Iterator["MapSurface"]:
        """Hold the surface lock (for hosts reading backend state)."""
        with self._lock:
            yield self

    def style_descriptor(self) -> StyleDescriptor:
        if self.config is None:
            return StyleDescriptor()
        return style_for_shape(self.config.shape_clip)

    def _guard(self, operation: str) -> bool:
        if self.is_live:
            return True
        logger.debug(f"[SURFACE] {operation} ignored: {self.surface_name} is {self.lifecycle.get_state_name()}")
        return False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self, container: str, config: MapConfiguration) -> None:
        """Create the map instance with one tile layer and optional zoom controls.

        Raises:
            RenderInitError: If the backend fails. The surface is disposed.
        """
        with self._lock:
            if not self.lifecycle.is_uninitialized:
                raise RenderInitError(f"Surface {self.surface_name} is already {self.lifecycle.get_state_name()}")
            self.config = config
            try:
                self.backend.create_map(container=container, center=config.center, zoom=config.zoom)

                source = tile_source_for(config.tile_provider)
                tiles = self.backend.tile_layer(url_template=source.url_template, attribution=source.attribution)
                self.backend.add_layer(tiles)
                self.layers.tiles = tiles

                if config.show_controls and not config.design_mode:
                    self.backend.zoom_control()

                markers = self.backend.layer_group([])
                self.backend.add_layer(markers)
                self.layers.markers = markers
            except Exception as e:
                logger.error(f"[SURFACE] Initialization of {self.surface_name} failed: {e}")
                self.dispose()
                raise RenderInitError(str(e)) from e

            self.lifecycle.mount()
            logger.info(f"[SURFACE] {self.surface_name} ready (tiles={source.name}, design_mode={config.design_mode})")

    def dispose(self) -> None:
        """Detach the map and release all layers. Safe to call repeatedly."""
        with self._lock:
            if self.lifecycle.is_disposed:
                return
            self._user_location_enabled = False
            self._geo_request_id += 1
            try:
                for layer in self.layers.attached():
                    self.backend.remove_layer(layer)
                self.backend.destroy()
            except Exception as e:
                logger.warning(f"[SURFACE] Backend error while disposing {self.surface_name}: {e}")
            finally:
                self.layers = RenderedLayers()
                self.lifecycle.teardown()

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def _swap(self, slot: str, new_layer: MapLayer | None) -> None:
        """Release the layer in a slot, then attach its replacement."""
        old_layer = getattr(self.layers, slot)
        if old_layer is not None:
            self.backend.remove_layer(old_layer)
        if new_layer is not None:
            self.backend.add_layer(new_layer)
        setattr(self.layers, slot, new_layer)

    def reconcile_markers(
        self,
        records: Sequence[LocationRecord],
        marker_visual: MarkerVisual,
        popup_flags: PopupFlags | None = None,
        column_mapping: ColumnMapping | None = None,
    ) -> bool:
        """Replace all point markers with one marker per valid record.

        Returns:
            False if the surface isn't live (nothing changed).
        """
        with self._lock:
            if not self._guard("reconcile_markers"):
                return False
            flags = popup_flags or self.config.popup_flags
            columns = column_mapping or self.config.column_mapping

            markers = []
            if marker_visual.show:
                icon = MarkerIconResolver.resolve(visual_type=marker_visual.type, color=marker_visual.color)
                for record in records:
                    if not GeoCalculator.is_valid_coordinate(lat=record.latitude, lon=record.longitude):
                        logger.warning(f"[SURFACE] Skipping record {record.id} with invalid coordinates")
                        continue
                    popup = PopupComposer.compose(record=record, display_flags=flags, column_mapping=columns)
                    markers.append(self.backend.marker(position=record.position, icon=icon, popup=popup))

            self._swap("markers", self.backend.layer_group(markers))
            logger.debug(f"[SURFACE] {len(markers)} markers on {self.surface_name}")
            return True

    def reconcile_path(self, ordered_records: Sequence[LocationRecord], path_visual: PathVisual) -> bool:
        """Replace the path and arrows. A path exists only when enabled with ≥ 2 points."""
        with self._lock:
            if not self._guard("reconcile_path"):
                return False
            self._swap("arrows", None)
            self._swap("path", None)

            points = [
                record.position
                for record in ordered_records
                if GeoCalculator.is_valid_coordinate(lat=record.latitude, lon=record.longitude)
            ]
            if not path_visual.enabled or len(points) < 2:
                return True

            path = self.backend.polyline(points=points, style=LineStyle(color=path_visual.color))
            self._swap("path", path)
            if path_visual.arrows_enabled:
                arrows = self.backend.polyline_decorator(path, ArrowPattern(color=path_visual.arrow_color))
                self._swap("arrows", arrows)
            logger.debug(f"[SURFACE] Path with {len(points)} points (arrows={path_visual.arrows_enabled})")
            return True

    def fit_to_data(self, records: Sequence[LocationRecord]) -> bool:
        """Fit the viewport to all valid points. No-op without valid points."""
        with self._lock:
            if not self._guard("fit_to_data"):
                return False
            points = [
                record.position
                for record in records
                if GeoCalculator.is_valid_coordinate(lat=record.latitude, lon=record.longitude)
            ]
            if not points:
                return False
            self.backend.fit_bounds(points=points, padding_px=ViewportConfig.FIT_PADDING_PX)
            return True

    def set_view(self, center: LatLng, zoom: float) -> bool:
        """Move the viewport to the configured center and zoom."""
        with self._lock:
            if not self._guard("set_view"):
                return False
            self.backend.set_view(center=center, zoom=zoom)
            logger.info(f"[SURFACE] View moved to ({center.lat:.4f}, {center.lng:.4f}) zoom={zoom}")
            return True

    # =========================================================================
    # USER LOCATION
    # =========================================================================

    def update_user_location(self, enabled: bool, options: GeolocationOptions | None = None) -> None:
        """Request the viewer position once (enabled) or remove its marker (disabled)."""
        with self._lock:
            if not self._guard("update_user_location"):
                return
            self._user_location_enabled = enabled
            self._geo_request_id += 1
            if not enabled:
                self._swap("user_location", None)
                return
            if self.geolocation is None:
                logger.info(f"[GEO] No geolocation provider for {self.surface_name}, skipping user marker")
                return
            request_id = self._geo_request_id

        self.run_async(lambda: self._resolve_user_location(request_id, options or GeolocationOptions()))

    def _resolve_user_location(self, request_id: int, options: GeolocationOptions) -> None:
        try:
            position = self.geolocation.current_position(options)
        except GeolocationError as e:
            logger.warning(f"[GEO] User location unavailable: {e}")
            return
        self._place_user_marker(request_id=request_id, position=position)

    def _place_user_marker(self, request_id: int, position: LatLng) -> None:
        with self._lock:
            if not self.is_live:
                logger.debug(f"[GEO] Surface {self.surface_name} gone, dropping position")
                return
            if request_id != self._geo_request_id or not self._user_location_enabled:
                logger.debug("[GEO] Stale position response ignored")
                return
            marker = self.backend.marker(position=position, icon=MarkerIconResolver.user_location())
            self._swap("user_location", marker)
            logger.info(f"[GEO] User marker at ({position.lat:.4f}, {position.lng:.4f})")

    def __repr__(self) -> str:
        return f"MapSurface(name={self.surface_name!r}, state={self.lifecycle.get_state_name()})"
