"""Tile providers for the map basemap.

Pydeck's TileLayer only fetches tiles; it needs a JavaScript renderSubLayers
callback to draw them, which pydeck doesn't expose to Python. Raster XYZ
basemaps are therefore expressed as a Mapbox GL style dict passed as
map_style (with map_provider="mapbox", no API key needed for raster).

XYZ templates are normalized for that style:
- {s} subdomain placeholders become one URL per subdomain
- {r} retina placeholders are dropped
"""

import logging
from dataclasses import dataclass

from livemap.constants import TileConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileSource:
    """A tile provider ready to attach to a map."""

    name: str
    url_template: str
    attribution: str

    def expanded_urls(self) -> list[str]:
        """Concrete tile URLs with {s} and {r} resolved."""
        template = self.url_template.replace("{r}", "")
        if "{s}" not in template:
            return [template]
        return [template.replace("{s}", sub) for sub in TileConfig.SUBDOMAINS]


def tile_source_for(provider: str) -> TileSource:
    """Look up a provider by name (unknown names fall back to OpenStreetMap)."""
    entry = TileConfig.PROVIDERS.get(provider)
    if entry is None:
        logger.warning(f"[TILES] Unknown provider '{provider}', using openstreetmap")
        provider = "openstreetmap"
        entry = TileConfig.PROVIDERS[provider]
    return TileSource(name=provider, url_template=entry["url"], attribution=entry["attribution"])


def raster_style(url_template: str, attribution: str, source_id: str = "basemap") -> dict[str, object]:
    """Mapbox GL style specification for a single raster basemap."""
    source = TileSource(name=source_id, url_template=url_template, attribution=attribution)
    return {
        "version": 8,
        "sources": {
            source_id: {
                "type": "raster",
                "tiles": source.expanded_urls(),
                "tileSize": TileConfig.TILE_SIZE_PX,
                "attribution": attribution,
            }
        },
        "layers": [
            {
                "id": source_id,
                "type": "raster",
                "source": source_id,
                "minzoom": 0,
                "maxzoom": TileConfig.MAX_ZOOM,
            }
        ],
    }
