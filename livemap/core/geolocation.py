"""Geolocation - One-shot "where is the viewer" lookup.

The user-location marker needs a single position, not a watch. Providers
answer one request with a LatLng or raise GeolocationError; they are not
cancelable, so callers must re-check that their surface is still live
before using the answer.

Implementations:
    IpGeolocationProvider: coarse position from an IP lookup service (requests)
    FixedGeolocationProvider: constant position (kiosk installs, tests)
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Protocol

import requests

from livemap.constants import GeolocationConfig
from livemap.core.geo_calculator import GeoCalculator
from livemap.core.value_parsing import coerce_number
from livemap.exceptions import GeolocationError
from livemap.model.location_record import LatLng

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeolocationOptions:
    """Request options (same meaning as the browser Geolocation API)."""

    high_accuracy: bool = GeolocationConfig.HIGH_ACCURACY
    timeout_s: float = GeolocationConfig.TIMEOUT_S
    maximum_age_s: float = GeolocationConfig.MAXIMUM_AGE_S


class GeolocationProvider(Protocol):
    def current_position(self, options: GeolocationOptions) -> LatLng:
        """Return the current position. Raises GeolocationError on failure."""
        ...


class FixedGeolocationProvider:
    """Always answers with the same position."""

    def __init__(self, position: LatLng) -> None:
        self.position = position

    def current_position(self, options: GeolocationOptions) -> LatLng:
        return self.position


class IpGeolocationProvider:
    """Position from an IP geolocation HTTP service.

    Answers younger than options.maximum_age_s are served from cache.
    """

    def __init__(
        self,
        url: str = GeolocationConfig.IP_LOOKUP_URL,
        session: requests.Session | None = None,
        clock=time.monotonic,
    ) -> None:
        self.url = url
        self._session = session or requests.Session()
        self._clock = clock
        self._cached: tuple[float, LatLng] | None = None
        self._lock = threading.Lock()

    def current_position(self, options: GeolocationOptions) -> LatLng:
        with self._lock:
            if self._cached is not None:
                fetched_at, position = self._cached
                if self._clock() - fetched_at <= options.maximum_age_s:
                    return position

        try:
            response = self._session.get(self.url, timeout=options.timeout_s)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise GeolocationError(f"Position lookup failed: {e}") from e
        except ValueError as e:
            raise GeolocationError(f"Invalid position response: {e}") from e

        if not isinstance(body, dict):
            raise GeolocationError("Invalid position response")
        lat = coerce_number(body.get("latitude"))
        lng = coerce_number(body.get("longitude"))
        if not GeoCalculator.is_valid_coordinate(lat=lat, lon=lng):
            raise GeolocationError(f"Position unavailable (lat={body.get('latitude')}, lng={body.get('longitude')})")

        position = LatLng(lat=lat, lng=lng)
        with self._lock:
            self._cached = (self._clock(), position)
        logger.info(f"[GEO] Resolved position ({lat:.4f}, {lng:.4f})")
        return position
