"""MapBackend - Capability interface of the rendering surface.

MapSurface only talks to the map through these primitives, so swapping the
rendering library means writing one adapter (see PydeckBackend):

    create_map(container, center, zoom)
    tile_layer(url_template, attribution)
    marker(position, icon, popup)
    polyline(points, style)
    polyline_decorator(polyline, pattern)
    layer_group(layers)
    add_layer(layer) / remove_layer(layer)
    fit_bounds(points, padding_px)
    set_view(center, zoom)
    zoom_control()
    destroy()

Layer primitives only build layers; nothing is visible until add_layer().
"""

from dataclasses import dataclass
from typing import Protocol

from livemap.constants import PathConfig
from livemap.model.location_record import LatLng
from livemap.ui.marker_icons import IconDescriptor
from livemap.ui.popup_composer import PopupContent


@dataclass(frozen=True)
class LineStyle:
    color: str
    weight: int = PathConfig.LINE_WIDTH_PX
    opacity: float = PathConfig.LINE_OPACITY


@dataclass(frozen=True)
class ArrowPattern:
    """Direction glyphs repeated along a line (fractions of total length)."""

    color: str
    offset: float = PathConfig.ARROW_OFFSET_FRACTION
    repeat: float = PathConfig.ARROW_REPEAT_FRACTION
    pixel_size: int = PathConfig.ARROW_PIXEL_SIZE

    def positions(self) -> list[float]:
        """Fractions along the line where a glyph is placed."""
        if self.repeat <= 0:
            return [self.offset] if 0 <= self.offset <= 1 else []
        positions = []
        fraction = self.offset
        while fraction <= 1.0 + 1e-9:
            positions.append(round(fraction, 9))
            fraction += self.repeat
        return positions


class MapLayer(Protocol):
    """Opaque handle to a backend layer."""

    layer_id: str


class MapBackend(Protocol):
    """Rendering primitives consumed by MapSurface."""

    def create_map(self, container: str, center: LatLng, zoom: float) -> None: ...

    def tile_layer(self, url_template: str, attribution: str) -> MapLayer: ...

    def marker(self, position: LatLng, icon: IconDescriptor, popup: PopupContent | None = None) -> MapLayer: ...

    def polyline(self, points: list[LatLng], style: LineStyle) -> MapLayer: ...

    def polyline_decorator(self, polyline: MapLayer, pattern: ArrowPattern) -> MapLayer: ...

    def layer_group(self, layers: list[MapLayer]) -> MapLayer: ...

    def add_layer(self, layer: MapLayer) -> None: ...

    def remove_layer(self, layer: MapLayer) -> None: ...

    def fit_bounds(self, points: list[LatLng], padding_px: int) -> None: ...

    def set_view(self, center: LatLng, zoom: float) -> None: ...

    def zoom_control(self) -> None: ...

    def destroy(self) -> None: ...
