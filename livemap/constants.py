"""Configuration constants for the live map widget.

All configurable parameters are centralized here for easy tuning.

Classes:
    AppConfig: Streamlit host settings
    MapDefaults: Default widget configuration (matches the dashboard defaults)
    TileConfig: Tile provider catalogue
    MarkerConfig: Marker visuals and icon catalogue
    PathConfig: Travel path and direction arrow styling
    ViewportConfig: Bounds fitting parameters
    FetchConfig: Storage polling parameters
    GeolocationConfig: One-shot geolocation request options
    StorageConfig: Runtime data backend connection
    ShapeConfig: Widget clip shapes
"""

import os


class AppConfig:
    """Streamlit host settings."""

    TITLE = "Live Map Widget"
    ICON = "🗺️"
    LAYOUT = "wide"


class MapDefaults:
    """Default widget configuration values."""

    CENTER_LAT = 40.7128  # New York
    CENTER_LON = -74.0060
    ZOOM = 13
    REFRESH_INTERVAL_MS = 5000

    LATITUDE_COLUMN = "latitude"
    LONGITUDE_COLUMN = "longitude"
    INDEX_COLUMN = "index"
    TITLE_COLUMN = "title"
    DESCRIPTION_COLUMN = "description"

    TILE_PROVIDER = "openstreetmap"
    MARKER_TYPE = "default"
    MARKER_COLOR = "#ff0000"
    PATH_COLOR = "#3b82f6"
    ARROW_COLOR = "#3b82f6"
    SHAPE = "rectangle"
    SHAPE_SIDES = 6


class TileConfig:
    """Background imagery sources (XYZ templates with attribution)."""

    PROVIDERS = {
        "openstreetmap": {
            "url": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
            "attribution": "© OpenStreetMap contributors",
        },
        "esri": {
            "url": "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
            "attribution": "Tiles © Esri",
        },
        "carto": {
            "url": "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
            "attribution": "© CartoDB",
        },
    }
    NAMES = list(PROVIDERS.keys())

    # Pydeck raster sources don't expand {s}, so each subdomain becomes its own URL
    SUBDOMAINS = ["a", "b", "c"]
    TILE_SIZE_PX = 256
    MAX_ZOOM = 19


assert MapDefaults.TILE_PROVIDER in TileConfig.NAMES


class MarkerConfig:
    """Marker icon catalogue and sizing."""

    ICON_SIZE_PX = (32, 32)
    ICON_ANCHOR_PX = (16, 16)
    GLYPH_FONT_SIZE_PX = 24
    DOT_DIAMETER_PX = 24
    DOT_BORDER_COLOR = "#ffffff"
    DOT_BORDER_WIDTH_PX = 2

    # Thematic visuals (anything else falls back to a colored dot)
    GLYPHS = {
        "car": "🚗",
        "bike": "🚲",
        "robot": "🤖",
        "tractor": "🚜",
        "cow": "🐄",
        "person": "👤",
        "drone": "🛸",
        "boat": "🚤",
        "plane": "✈️",
    }
    TYPES = list(GLYPHS.keys()) + ["default"]

    USER_LOCATION_COLOR = "#4ade80"  # green-400
    USER_LOCATION_SIZE_PX = (16, 16)
    USER_LOCATION_ANCHOR_PX = (8, 8)

    # Permanent label placement above the marker
    LABEL_OFFSET_PX = (0, -10)
    LABEL_FONT_SIZE_PX = 12


assert MapDefaults.MARKER_TYPE in MarkerConfig.TYPES


class PathConfig:
    """Travel path and arrow decorator styling."""

    MIN_POINTS = 2
    LINE_WIDTH_PX = 3
    LINE_OPACITY = 0.7

    # Arrow pattern as fractions of total path length
    ARROW_OFFSET_FRACTION = 0.10
    ARROW_REPEAT_FRACTION = 0.20
    ARROW_PIXEL_SIZE = 10
    # Arrowhead wing length relative to path length, clamped to a sane range
    ARROW_WING_FRACTION = 0.03
    ARROW_WING_MIN_M = 5.0
    ARROW_WING_MAX_M = 500.0
    ARROW_WING_ANGLE_DEG = 150.0


class ViewportConfig:
    """Bounds fitting."""

    FIT_PADDING_PX = 50
    # Assumed widget size for bounds→zoom conversion
    WIDTH_PX = 800
    HEIGHT_PX = 500
    # Single-point (degenerate) bounds keep a usable zoom
    SINGLE_POINT_ZOOM = 15
    MIN_ZOOM = 1
    MAX_ZOOM = 18


class FetchConfig:
    """Runtime data polling."""

    TABLE = "product_runtime_data"
    MAX_ROWS = 100
    REQUEST_TIMEOUT_S = 15


class GeolocationConfig:
    """One-shot user location request options."""

    HIGH_ACCURACY = True
    TIMEOUT_S = 10.0
    MAXIMUM_AGE_S = 60.0
    IP_LOOKUP_URL = "https://ipapi.co/json/"


class StorageConfig:
    """Runtime data backend connection (PostgREST / Supabase)."""

    URL = os.environ.get("LIVEMAP_SUPABASE_URL", "")
    API_KEY = os.environ.get("LIVEMAP_SUPABASE_KEY", "")


class ShapeConfig:
    """Widget clip shapes."""

    TYPES = ["rectangle", "circle", "roundedRectangle", "ellipse", "customPolygon"]
    MIN_SIDES = 3
    MAX_SIDES = 20
    ROUNDED_RADIUS_PX = 15


assert MapDefaults.SHAPE in ShapeConfig.TYPES
