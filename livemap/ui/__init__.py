"""Rendering and lifecycle for the live map widget.

- map_surface.py: MapSurface, reconciles RenderedLayers against data
- map_backend.py: Rendering capability protocol
- pydeck_backend.py: pydeck adapter (PathLayer, ScatterplotLayer, TextLayer)
- lifecycle_controller.py: Polling timer, config changes, teardown
- state_machine.py: SurfaceStateMachine (Uninitialized -> Ready -> Disposed)
- session_registry.py: Unmounts controllers of closed browser sessions
- marker_icons.py / popup_composer.py: Pure marker and popup builders
"""

from livemap.ui.error_boundary import ErrorBoundary
from livemap.ui.lifecycle_controller import LifecycleController, WidgetStatus
from livemap.ui.map_backend import ArrowPattern, LineStyle, MapBackend
from livemap.ui.map_surface import MapSurface, RenderedLayers
from livemap.ui.marker_icons import IconDescriptor, MarkerIconResolver
from livemap.ui.popup_composer import PopupComposer, PopupContent
from livemap.ui.pydeck_backend import PydeckBackend
from livemap.ui.scheduler import IntervalScheduler, ThreadingIntervalScheduler
from livemap.ui.session_registry import SessionRegistry
from livemap.ui.state_machine import SurfaceLoggingListener, SurfaceStateMachine

__all__ = [
    "MapSurface",
    "RenderedLayers",
    "MapBackend",
    "LineStyle",
    "ArrowPattern",
    "PydeckBackend",
    "LifecycleController",
    "WidgetStatus",
    "ErrorBoundary",
    "IntervalScheduler",
    "ThreadingIntervalScheduler",
    "SessionRegistry",
    "SurfaceStateMachine",
    "SurfaceLoggingListener",
    "MarkerIconResolver",
    "IconDescriptor",
    "PopupComposer",
    "PopupContent",
]
