"""LifecycleController - Wires polling, reconciliation and teardown for one widget.

Responsibilities:
    - mount(): build the MapSurface, fetch once immediately, install the timer
    - update_config(): classify the change (see MapConfiguration) and react
        * surface_key changed  -> dispose and rebuild the surface, reapply snapshot
        * polling_key changed  -> cancel the timer, fetch now, install a new one
        * view_key changed     -> move the viewport to the new center and zoom
        * visuals changed      -> reconcile again with the current snapshot
    - unmount(): cancel the timer and dispose the surface

Invariants:
    - At most one active timer per controller
    - A fetch that completes after unmount, or after its poller was
      replaced, never touches the surface
    - Fetch failures only surface as a message when nothing was rendered yet
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TypeVar

from livemap.core.data_fetcher import DataFetcher, FetchResult
from livemap.core.geolocation import GeolocationProvider
from livemap.core.point_orderer import PointOrderer
from livemap.model.data_source import LiveDataSource, NoDataSource, StaticDataSource, resolve_data_source
from livemap.model.location_record import LocationRecord
from livemap.model.map_configuration import MapConfiguration
from livemap.model.message import (
    DesignModeMessage,
    FetchFailedMessage,
    LoadingMessage,
    Message,
    NoDataMessage,
)
from livemap.ui.error_boundary import ErrorBoundary
from livemap.ui.map_backend import MapBackend
from livemap.ui.map_surface import MapSurface, TaskRunner, spawn_daemon_thread
from livemap.ui.scheduler import IntervalScheduler, ThreadingIntervalScheduler, TimerHandle
from livemap.ui.shape_clip import StyleDescriptor, style_for_shape

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WidgetStatus:
    """What the host shows around the map."""

    loading: bool
    message: Message | None
    record_count: int
    last_fetch_at: datetime | None = None


class LifecycleController:
    """Owns one map widget instance from mount to unmount.

    Example:
        controller = LifecycleController(
            config=MapConfiguration.from_widget_config(widget_config),
            fetcher=DataFetcher(store=SupabaseRuntimeDataStore(base_url=StorageConfig.URL, api_key=StorageConfig.API_KEY)),
            backend_factory=PydeckBackend,
        )
        controller.mount(container="map-1")
        deck = controller.render(lambda backend: backend.to_deck())
        controller.unmount()
    """

    def __init__(
        self,
        config: MapConfiguration,
        fetcher: DataFetcher,
        backend_factory: Callable[[], MapBackend],
        geolocation: GeolocationProvider | None = None,
        scheduler: IntervalScheduler | None = None,
        run_async: TaskRunner = spawn_daemon_thread,
        widget_name: str = "map",
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.backend_factory = backend_factory
        self.geolocation = geolocation
        self.scheduler = scheduler or ThreadingIntervalScheduler()
        self.run_async = run_async
        self.widget_name = widget_name
        self.boundary = ErrorBoundary(widget_name=widget_name)

        self.surface: MapSurface | None = None
        self.container: str | None = None
        self._lock = threading.RLock()
        self._mounted = False
        self._timer: TimerHandle | None = None
        self._generation = 0

        # Current snapshot. None until the first render.
        self._records: tuple[LocationRecord, ...] | None = None
        self._records_are_live = False
        self._fetch_error: FetchFailedMessage | None = None
        self._loading = False
        self._last_fetch_at: datetime | None = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def timer(self) -> TimerHandle | None:
        return self._timer

    @property
    def records(self) -> tuple[LocationRecord, ...]:
        return self._records or ()

    @property
    def status(self) -> WidgetStatus:
        with self._lock:
            return WidgetStatus(
                loading=self._loading,
                message=self._current_message(),
                record_count=len(self.records),
                last_fetch_at=self._last_fetch_at,
            )

    def _current_message(self) -> Message | None:
        """At most one inline message, most severe first."""
        if self.boundary.error is not None:
            return self.boundary.error
        if self._fetch_error is not None:
            return self._fetch_error
        source = resolve_data_source(self.config)
        if isinstance(source, LiveDataSource):
            if self._loading and not self._records_are_live:
                return LoadingMessage()
            if self._records_are_live and not self._records:
                return NoDataMessage(table_name=source.table_name)
        if self.config.design_mode:
            return DesignModeMessage()
        return None

    def style_descriptor(self) -> StyleDescriptor:
        return style_for_shape(self.config.shape_clip)

    def render(self, draw: Callable[[MapBackend], T]) -> T | None:
        """Read the backend under the surface lock, inside the error boundary."""
        with self._lock:
            surface = self.surface
            if surface is None or not surface.is_live:
                return None
            with surface.locked():
                return self.boundary.run(lambda: draw(surface.backend))

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def mount(self, container: str) -> None:
        """Build the surface and start polling. Mounting twice is a no-op."""
        with self._lock:
            if self._mounted:
                logger.debug(f"[POLL] {self.widget_name} already mounted")
                return
            self._mounted = True
            self.container = container
            logger.info(f"[POLL] Mounting {self.widget_name} in '{container}'")
            self._build_surface()
            self._restart_polling()

    def unmount(self) -> None:
        """Cancel the timer and dispose the surface. Safe to call repeatedly."""
        with self._lock:
            if not self._mounted:
                return
            self._mounted = False
            self._cancel_timer()
            self._generation += 1
            if self.surface is not None:
                self.surface.dispose()
                self.surface = None
            logger.info(f"[POLL] Unmounted {self.widget_name}")

    def update_config(self, new_config: MapConfiguration) -> None:
        """Apply a configuration change while mounted."""
        with self._lock:
            old_config = self.config
            self.config = new_config
            if not self._mounted or new_config == old_config:
                return

            if not self._records_are_live:
                self._refresh_preview_records()

            if old_config.requires_reinitialization(new_config):
                logger.info(f"[SURFACE] Rebuilding {self.widget_name}: {old_config.surface_key()} -> {new_config.surface_key()}")
                if self.surface is not None:
                    self.surface.dispose()
                    self.surface = None
                self._build_surface()
            else:
                if self.surface is not None and old_config.view_key() != new_config.view_key():
                    self.surface.set_view(center=new_config.center, zoom=new_config.zoom)
                self._render_snapshot()
                if self.surface is not None and old_config.show_user_location != new_config.show_user_location:
                    self.surface.update_user_location(enabled=new_config.show_user_location)

            if old_config.requires_new_poller(new_config):
                self._restart_polling()

    def _build_surface(self) -> None:
        surface = MapSurface(
            backend=self.backend_factory(),
            geolocation=self.geolocation,
            run_async=self.run_async,
            surface_name=self.widget_name,
        )
        self.boundary.reset()
        self.boundary.run(lambda: surface.initialize(container=self.container, config=self.config), tag="SURFACE")
        if self.boundary.has_error:
            surface.dispose()
            self.surface = None
            return

        self.surface = surface
        self._render_snapshot()
        if self.config.show_user_location:
            surface.update_user_location(enabled=True)

    # =========================================================================
    # POLLING
    # =========================================================================

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _restart_polling(self) -> None:
        """Replace the poller for the current data source."""
        self._cancel_timer()
        self._generation += 1
        self._fetch_error = None
        source = resolve_data_source(self.config)

        if isinstance(source, LiveDataSource):
            generation = self._generation
            self._loading = True
            self.run_async(lambda: self._poll(generation))
            interval_ms = self.config.refresh_interval_ms
            if interval_ms > 0:
                self._timer = self.scheduler.start(interval_s=interval_ms / 1000, callback=lambda: self._poll(generation))
                logger.info(f"[POLL] {self.widget_name} polling {source.table_name} every {interval_ms}ms")
            else:
                logger.info(f"[POLL] {self.widget_name} refresh disabled, single fetch only")
            return

        self._loading = False
        if self._records_are_live:
            # Binding cleared mid-session: keep the last live render on screen
            logger.info(f"[POLL] {self.widget_name} configuration incomplete, polling stopped")
            return
        self._refresh_preview_records()
        logger.info(f"[POLL] {self.widget_name} not polling ({type(source).__name__})")
        self._render_snapshot()

    def _refresh_preview_records(self) -> None:
        """Re-resolve the snapshot for sources that don't poll."""
        source = resolve_data_source(self.config)
        if isinstance(source, StaticDataSource):
            self._records = source.records()
        elif isinstance(source, NoDataSource):
            self._records = ()

    def _poll(self, generation: int) -> None:
        """One fetch. Runs on a worker thread; overlapping calls are allowed."""
        with self._lock:
            if not self._mounted or generation != self._generation:
                return
            binding = self.config.data_binding
            column_mapping = self.config.column_mapping

        result = self.fetcher.fetch_batch(
            product_id=binding.product_id,
            table_name=binding.table_name,
            device_id=binding.device_id,
            column_mapping=column_mapping,
        )
        self._apply_fetch_result(generation=generation, result=result)

    def _apply_fetch_result(self, generation: int, result: FetchResult) -> None:
        with self._lock:
            if not self._mounted or generation != self._generation:
                logger.debug(f"[POLL] Dropping stale fetch result for {self.widget_name}")
                return
            self._loading = False

            if not result.ok:
                if self._records_are_live:
                    logger.warning(f"[POLL] Fetch failed, keeping last render: {result.error.reason}")
                else:
                    self._fetch_error = result.error
                return

            self._fetch_error = None
            self._records = result.records
            self._records_are_live = True
            self._last_fetch_at = datetime.now(timezone.utc)
            self._render_snapshot()

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def _render_snapshot(self) -> None:
        """Reconcile the surface against the current snapshot."""
        surface = self.surface
        if surface is None or not surface.is_live or self._records is None:
            return
        records = self._records
        config = self.config

        def reconcile() -> None:
            ordered = PointOrderer.order(records, index_column=config.column_mapping.index)
            surface.reconcile_markers(
                records,
                config.marker_visual,
                popup_flags=config.popup_flags,
                column_mapping=config.column_mapping,
            )
            surface.reconcile_path(ordered, config.path_visual)
            if self._records_are_live:
                surface.fit_to_data(records)

        self.boundary.reset()
        self.boundary.run(reconcile, tag="SURFACE")
