"""PydeckBackend - MapBackend adapter producing a pydeck Deck.

Layer handles are plain records; nothing touches pydeck until to_deck()
turns the attached handles into GPU layers:

- Tile layer        → raster Mapbox GL style dict (map_style)
- Dot markers       → ScatterplotLayer (radius in pixels, white border)
- Glyph markers     → TextLayer (emoji glyph)
- Permanent labels  → TextLayer above the marker
- Polyline          → PathLayer
- Decorator         → PathLayer of arrowhead chevrons
- Popups            → deck tooltip reading each row's "popup_html"

Key differences from Leaflet:
- Uses [lon, lat] coordinate order (GeoJSON standard)
- Colors as RGBA lists [R, G, B, A] (0-255)
- Z-order is list order (back to front)
"""

import html
import itertools
import logging
from dataclasses import dataclass, field

import pydeck as pdk

from livemap.constants import MapDefaults, MarkerConfig, TileConfig, ViewportConfig
from livemap.core.geo_calculator import GeoCalculator
from livemap.exceptions import SurfaceDisposedError
from livemap.model.location_record import LatLng
from livemap.ui.map_backend import ArrowPattern, LineStyle
from livemap.ui.marker_icons import IconDescriptor
from livemap.ui.path_decorator import arrowhead_paths
from livemap.ui.popup_composer import PopupContent
from livemap.ui.tile_layer import raster_style

logger = logging.getLogger(__name__)

_layer_ids = itertools.count(1)


class LayerKind:
    TILES = "tiles"
    MARKER = "marker"
    POLYLINE = "polyline"
    DECORATOR = "decorator"
    GROUP = "group"


# Z-order (back to front) when building the deck
_Z_ORDER = [LayerKind.POLYLINE, LayerKind.DECORATOR, LayerKind.GROUP, LayerKind.MARKER]


@dataclass(eq=False)
class DeckLayer:
    """Handle for one backend layer."""

    kind: str
    payload: dict = field(default_factory=dict)
    children: list["DeckLayer"] = field(default_factory=list)
    layer_id: str = field(default_factory=lambda: f"layer_{next(_layer_ids)}")


def hex_to_rgba(hex_color: str, alpha: int = 255) -> list[int]:
    """Convert #rgb / #rrggbb to an RGBA list. Unparsable colors fall back to the marker default."""
    value = (hex_color or "").strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        r = int(value[0:2], 16)
        g = int(value[2:4], 16)
        b = int(value[4:6], 16)
    except ValueError:
        logger.warning(f"[RENDER] Invalid color '{hex_color}', using default")
        return hex_to_rgba(MapDefaults.MARKER_COLOR, alpha)
    if len(value) != 6:
        logger.warning(f"[RENDER] Invalid color '{hex_color}', using default")
        return hex_to_rgba(MapDefaults.MARKER_COLOR, alpha)
    return [r, g, b, alpha]


def popup_html(popup: PopupContent | None) -> str:
    """Escaped tooltip HTML, first line bold."""
    if popup is None:
        return ""
    lines = [html.escape(line) for line in popup.popup_text.split("\n")]
    if lines:
        lines[0] = f"<b>{lines[0]}</b>"
    return "<br/>".join(lines)


class PydeckBackend:
    """Rendering surface backed by pydeck.

    Example:
        backend = PydeckBackend()
        surface = MapSurface(backend=backend)
        surface.initialize(container="map-1", config=config)
        st.pydeck_chart(backend.to_deck())
    """

    def __init__(
        self,
        width_px: int = ViewportConfig.WIDTH_PX,
        height_px: int = ViewportConfig.HEIGHT_PX,
    ) -> None:
        self.width_px = width_px
        self.height_px = height_px
        self.container: str | None = None
        self.center: LatLng | None = None
        self.zoom: float = MapDefaults.ZOOM
        self.has_zoom_control = False
        self._attached: list[DeckLayer] = []
        self._destroyed = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _check_live(self) -> None:
        if self._destroyed:
            raise SurfaceDisposedError("Pydeck backend was destroyed")

    def create_map(self, container: str, center: LatLng, zoom: float) -> None:
        self._check_live()
        self.container = container
        self.center = center
        self.zoom = zoom
        logger.info(f"[RENDER] Map created in '{container}' at ({center.lat:.4f}, {center.lng:.4f}) zoom={zoom}")

    def destroy(self) -> None:
        self._attached.clear()
        self._destroyed = True

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # =========================================================================
    # LAYER PRIMITIVES
    # =========================================================================

    def tile_layer(self, url_template: str, attribution: str) -> DeckLayer:
        return DeckLayer(kind=LayerKind.TILES, payload={"style": raster_style(url_template, attribution)})

    def marker(self, position: LatLng, icon: IconDescriptor, popup: PopupContent | None = None) -> DeckLayer:
        return DeckLayer(kind=LayerKind.MARKER, payload={"position": position, "icon": icon, "popup": popup})

    def polyline(self, points: list[LatLng], style: LineStyle) -> DeckLayer:
        return DeckLayer(kind=LayerKind.POLYLINE, payload={"points": list(points), "style": style})

    def polyline_decorator(self, polyline: DeckLayer, pattern: ArrowPattern) -> DeckLayer:
        return DeckLayer(kind=LayerKind.DECORATOR, payload={"points": polyline.payload["points"], "pattern": pattern})

    def layer_group(self, layers: list[DeckLayer]) -> DeckLayer:
        return DeckLayer(kind=LayerKind.GROUP, children=list(layers))

    def add_layer(self, layer: DeckLayer) -> None:
        self._check_live()
        if layer not in self._attached:
            self._attached.append(layer)

    def remove_layer(self, layer: DeckLayer) -> None:
        if layer in self._attached:
            self._attached.remove(layer)

    def zoom_control(self) -> None:
        self._check_live()
        self.has_zoom_control = True

    def fit_bounds(self, points: list[LatLng], padding_px: int) -> None:
        self._check_live()
        bounds = GeoCalculator.bounds([(p.lat, p.lng) for p in points])
        if bounds is None:
            return
        lat, lng, zoom = GeoCalculator.fit_bounds_zoom(
            bounds=bounds,
            width_px=self.width_px,
            height_px=self.height_px,
            padding_px=padding_px,
            tile_size_px=TileConfig.TILE_SIZE_PX,
            max_zoom=ViewportConfig.MAX_ZOOM,
            min_zoom=ViewportConfig.MIN_ZOOM,
            single_point_zoom=ViewportConfig.SINGLE_POINT_ZOOM,
        )
        self.center = LatLng(lat=lat, lng=lng)
        self.zoom = zoom

    def set_view(self, center: LatLng, zoom: float) -> None:
        self._check_live()
        self.center = center
        self.zoom = zoom

    @property
    def attached_layers(self) -> list[DeckLayer]:
        return list(self._attached)

    # =========================================================================
    # DECK CONSTRUCTION
    # =========================================================================

    def to_deck(self) -> pdk.Deck:
        """Build the pydeck Deck for the currently attached layers."""
        self._check_live()
        center = self.center or LatLng(lat=MapDefaults.CENTER_LAT, lng=MapDefaults.CENTER_LON)

        tiles = [layer for layer in self._attached if layer.kind == LayerKind.TILES]
        map_style = tiles[-1].payload["style"] if tiles else None

        layers: list[pdk.Layer] = []
        for kind in _Z_ORDER:
            for handle in (layer for layer in self._attached if layer.kind == kind):
                layers.extend(self._build_layers(handle))

        if self.has_zoom_control:
            controller: bool | dict = True
        else:
            controller = {"scrollZoom": False, "doubleClickZoom": False, "touchZoom": False}

        return pdk.Deck(
            map_style=map_style,
            map_provider="mapbox" if map_style is not None else None,
            initial_view_state=pdk.ViewState(latitude=center.lat, longitude=center.lng, zoom=self.zoom),
            views=[pdk.View(type="MapView", controller=controller)],
            layers=layers,
            tooltip=self._tooltip_config(),
        )

    def _build_layers(self, handle: DeckLayer) -> list[pdk.Layer]:
        if handle.kind == LayerKind.POLYLINE:
            return [self._polyline_layer(handle)]
        if handle.kind == LayerKind.DECORATOR:
            return self._decorator_layers(handle)
        if handle.kind == LayerKind.GROUP:
            return self._marker_layers(markers=handle.children, layer_id=handle.layer_id)
        if handle.kind == LayerKind.MARKER:
            return self._marker_layers(markers=[handle], layer_id=handle.layer_id)
        return []

    def _polyline_layer(self, handle: DeckLayer) -> pdk.Layer:
        style: LineStyle = handle.payload["style"]
        alpha = int(round(style.opacity * 255))
        data = [
            {
                "path": [[p.lng, p.lat] for p in handle.payload["points"]],
                "color": hex_to_rgba(style.color, alpha),
            }
        ]
        return pdk.Layer(
            "PathLayer",
            data,
            get_path="path",
            get_color="color",
            get_width=style.weight,
            width_units="pixels",
            cap_rounded=True,
            joint_rounded=True,
            pickable=False,
            id=handle.layer_id,
        )

    def _decorator_layers(self, handle: DeckLayer) -> list[pdk.Layer]:
        pattern: ArrowPattern = handle.payload["pattern"]
        chevrons = arrowhead_paths(points=handle.payload["points"], positions=pattern.positions())
        if not chevrons:
            return []
        color = hex_to_rgba(pattern.color)
        data = [{"path": chevron, "color": color} for chevron in chevrons]
        return [
            pdk.Layer(
                "PathLayer",
                data,
                get_path="path",
                get_color="color",
                get_width=max(2, pattern.pixel_size // 3),
                width_units="pixels",
                cap_rounded=True,
                joint_rounded=True,
                pickable=False,
                id=handle.layer_id,
            )
        ]

    def _marker_layers(self, markers: list[DeckLayer], layer_id: str) -> list[pdk.Layer]:
        dots = []
        glyphs = []
        labels = []
        for marker in markers:
            position: LatLng = marker.payload["position"]
            icon: IconDescriptor = marker.payload["icon"]
            popup: PopupContent | None = marker.payload.get("popup")
            row = {"position": [position.lng, position.lat], "popup_html": popup_html(popup)}
            if icon.is_dot:
                dots.append({**row, "color": hex_to_rgba(icon.content), "radius": icon.size[0] / 2})
            else:
                glyphs.append({**row, "text": icon.content})
            if popup is not None and popup.permanent_label_text:
                labels.append({**row, "text": popup.permanent_label_text})

        layers = []
        if dots:
            layers.append(
                pdk.Layer(
                    "ScatterplotLayer",
                    dots,
                    get_position="position",
                    get_fill_color="color",
                    get_radius="radius",
                    radius_units="pixels",
                    get_line_color=hex_to_rgba(MarkerConfig.DOT_BORDER_COLOR),
                    line_width_units="pixels",
                    get_line_width=MarkerConfig.DOT_BORDER_WIDTH_PX,
                    stroked=True,
                    pickable=True,
                    id=f"{layer_id}_dots",
                )
            )
        if glyphs:
            layers.append(
                pdk.Layer(
                    "TextLayer",
                    glyphs,
                    get_position="position",
                    get_text="text",
                    get_size=MarkerConfig.GLYPH_FONT_SIZE_PX,
                    character_set="auto",
                    pickable=True,
                    id=f"{layer_id}_glyphs",
                )
            )
        if labels:
            layers.append(
                pdk.Layer(
                    "TextLayer",
                    labels,
                    get_position="position",
                    get_text="text",
                    get_size=MarkerConfig.LABEL_FONT_SIZE_PX,
                    get_pixel_offset=list(MarkerConfig.LABEL_OFFSET_PX),
                    get_text_anchor="'middle'",
                    get_alignment_baseline="'bottom'",
                    background=True,
                    character_set="auto",
                    pickable=False,
                    id=f"{layer_id}_labels",
                )
            )
        return layers

    def _tooltip_config(self) -> dict[str, str | dict[str, str]]:
        """Popup HTML per marker row."""
        return {
            "html": "{popup_html}",
            "style": {
                "backgroundColor": "rgba(255, 255, 255, 0.95)",
                "color": "#333",
                "padding": "6px 10px",
                "borderRadius": "4px",
            },
        }
