"""Geodesic and viewport calculations for the map widget.

Provides geographic helper functions for the path and viewport renderers:
- Coordinate range validation (WGS84 latitude/longitude limits)
- Distance calculation (Haversine formula)
- Bearing calculation (initial heading between points)
- Destination calculation (endpoint from start, bearing, distance)
- Bounding boxes and Web-Mercator zoom fitting

All calculations use WGS84 spherical Earth approximation (R = 6,371 km).
"""

from math import asin, atan2, cos, degrees, isfinite, log2, radians, sin, sqrt

import numpy as np

# Earth's radius in meters (WGS84 spherical approximation)
EARTH_RADIUS_M = 6_371_000

LAT_LIMIT = 90.0
LON_LIMIT = 180.0

# Web-Mercator latitude cutoff (tiles end here)
MERCATOR_LAT_LIMIT = 85.05112878


class GeoCalculator:
    """Static methods for geodesic calculations on Earth's surface.

    Coordinates are in decimal degrees (WGS84).
    Bearings are in degrees clockwise from North (0-360).
    Distances are in meters.
    """

    EARTH_RADIUS_M = EARTH_RADIUS_M

    @staticmethod
    def is_valid_coordinate(lat: float, lon: float) -> bool:
        """True if both values are finite and inside the WGS84 ranges.

        NaN fails every comparison, so it is rejected along with out-of-range values.
        """
        if not (isfinite(lat) and isfinite(lon)):
            return False
        return -LAT_LIMIT <= lat <= LAT_LIMIT and -LON_LIMIT <= lon <= LON_LIMIT

    @staticmethod
    def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate great-circle distance between two points using Haversine formula.

        Args:
            lat1: Latitude of first point (decimal degrees)
            lon1: Longitude of first point (decimal degrees)
            lat2: Latitude of second point (decimal degrees)
            lon2: Longitude of second point (decimal degrees)

        Returns:
            Distance in meters.
        """
        dlat = radians(lat2 - lat1)
        dlon = radians(lon2 - lon1)
        a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
        return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))

    @staticmethod
    def initial_bearing_deg(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
        """Calculate initial bearing from point 1 to point 2.

        Returns:
            Bearing in degrees (0-360, clockwise from North).
        """
        lon1_rad, lat1_rad = radians(lon1), radians(lat1)
        lon2_rad, lat2_rad = radians(lon2), radians(lat2)
        dlon = lon2_rad - lon1_rad
        y = sin(dlon) * cos(lat2_rad)
        x = cos(lat1_rad) * sin(lat2_rad) - sin(lat1_rad) * cos(lat2_rad) * cos(dlon)
        return (degrees(atan2(y, x)) + 360) % 360

    @staticmethod
    def destination(
        lon: float,
        lat: float,
        bearing_deg: float,
        distance_m: float,
    ) -> tuple[float, float]:
        """Calculate destination point given start, bearing, and distance.

        Returns:
            Tuple (lon, lat) of destination point in decimal degrees.
        """
        brng = radians(bearing_deg)
        lat1 = radians(lat)
        lon1 = radians(lon)
        d_R = distance_m / EARTH_RADIUS_M

        lat2 = asin(sin(lat1) * cos(d_R) + cos(lat1) * sin(d_R) * cos(brng))
        lon2 = lon1 + atan2(
            sin(brng) * sin(d_R) * cos(lat1),
            cos(d_R) - sin(lat1) * sin(lat2),
        )
        return degrees(lon2), degrees(lat2)

    @staticmethod
    def path_length_m(points: list[tuple[float, float]]) -> float:
        """Total great-circle length of a (lat, lon) polyline."""
        return sum(
            GeoCalculator.haversine_distance_m(lat1=a[0], lon1=a[1], lat2=b[0], lon2=b[1])
            for a, b in zip(points, points[1:])
        )

    @staticmethod
    def bounds(points: list[tuple[float, float]]) -> tuple[float, float, float, float] | None:
        """Bounding box of (lat, lon) points as (south, west, north, east).

        Returns:
            None if there are no points.
        """
        if not points:
            return None
        arr = np.asarray(points, dtype=float)
        south, west = arr.min(axis=0)
        north, east = arr.max(axis=0)
        return float(south), float(west), float(north), float(east)

    @staticmethod
    def _mercator_y(lat: float) -> float:
        """Normalized Web-Mercator y for a latitude (0 at equator)."""
        lat = max(-MERCATOR_LAT_LIMIT, min(MERCATOR_LAT_LIMIT, lat))
        return float(np.log(np.tan(np.pi / 4 + radians(lat) / 2)))

    @staticmethod
    def fit_bounds_zoom(
        bounds: tuple[float, float, float, float],
        width_px: int,
        height_px: int,
        padding_px: int,
        tile_size_px: int = 256,
        max_zoom: float = 18,
        min_zoom: float = 1,
        single_point_zoom: float = 15,
    ) -> tuple[float, float, float]:
        """Center and zoom that fit a bounding box into a padded viewport.

        Args:
            bounds: (south, west, north, east) in decimal degrees
            width_px, height_px: Viewport size in pixels
            padding_px: Padding applied on every side
            tile_size_px: Web-Mercator tile size
            max_zoom, min_zoom: Zoom clamp
            single_point_zoom: Zoom used when the box has no extent

        Returns:
            Tuple (center_lat, center_lon, zoom).
        """
        south, west, north, east = bounds
        center_lat = (south + north) / 2
        center_lon = (west + east) / 2

        lon_span = east - west
        y_span = abs(GeoCalculator._mercator_y(north) - GeoCalculator._mercator_y(south))
        if lon_span <= 0 and y_span <= 0:
            return center_lat, center_lon, min(single_point_zoom, max_zoom)

        usable_w = max(width_px - 2 * padding_px, 1)
        usable_h = max(height_px - 2 * padding_px, 1)

        zooms = []
        if lon_span > 0:
            zooms.append(log2(usable_w * 360.0 / (lon_span * tile_size_px)))
        if y_span > 0:
            zooms.append(log2(usable_h * 2 * np.pi / (y_span * tile_size_px)))
        zoom = max(min_zoom, min(max_zoom, min(zooms)))
        return center_lat, center_lon, zoom
