"""Arrowhead geometry for the path decorator.

Glyph positions are fractions of the line length, interpolated along a
shapely LineString in lon/lat space. Each glyph is a chevron whose wings
are swept back from the tip along the local travel bearing.
"""

from shapely.geometry import LineString

from livemap.constants import PathConfig
from livemap.core.geo_calculator import GeoCalculator
from livemap.model.location_record import LatLng

# Half-window (as a fraction of the line) used to estimate local direction
_DIRECTION_WINDOW = 0.005


def arrow_wing_length_m(points: list[LatLng]) -> float:
    """Wing length scaled to the path, clamped to a readable range."""
    length = GeoCalculator.path_length_m([(p.lat, p.lng) for p in points])
    wing = length * PathConfig.ARROW_WING_FRACTION
    return max(PathConfig.ARROW_WING_MIN_M, min(PathConfig.ARROW_WING_MAX_M, wing))


def arrowhead_paths(points: list[LatLng], positions: list[float]) -> list[list[list[float]]]:
    """Chevron paths ([[lon, lat], tip, [lon, lat]]) at the given fractions.

    Returns:
        Empty list if the line has fewer than 2 points or no extent.
    """
    if len(points) < 2:
        return []
    line = LineString([(p.lng, p.lat) for p in points])
    if line.length == 0:
        return []

    wing_m = arrow_wing_length_m(points)
    chevrons = []
    for fraction in positions:
        fraction = max(0.0, min(1.0, fraction))
        tip = line.interpolate(fraction, normalized=True)
        behind = line.interpolate(max(0.0, fraction - _DIRECTION_WINDOW), normalized=True)
        ahead = line.interpolate(min(1.0, fraction + _DIRECTION_WINDOW), normalized=True)
        if behind.equals(ahead):
            continue
        bearing = GeoCalculator.initial_bearing_deg(lon1=behind.x, lat1=behind.y, lon2=ahead.x, lat2=ahead.y)

        wings = []
        for sweep in (PathConfig.ARROW_WING_ANGLE_DEG, -PathConfig.ARROW_WING_ANGLE_DEG):
            lon, lat = GeoCalculator.destination(
                lon=tip.x,
                lat=tip.y,
                bearing_deg=(bearing + sweep) % 360,
                distance_m=wing_m,
            )
            wings.append([lon, lat])
        chevrons.append([wings[0], [tip.x, tip.y], wings[1]])
    return chevrons
