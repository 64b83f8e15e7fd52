"""Live Map Widget - Live geospatial data on a dashboard map.

Polls runtime location rows from storage, validates and orders them into a
travel path, and keeps a stateful map surface in sync with markers, path,
direction arrows and the viewer's own position.

Modules:
    core: Storage access, fetching, ordering and geodesic math
    model: Records, widget configuration, data sources, inline messages
    ui: Map surface, rendering backends, polling lifecycle

Example:
    from livemap.core import InMemoryRuntimeDataStore
    from livemap.core.data_fetcher import DataFetcher
    from livemap.model import MapConfiguration
    from livemap.ui import LifecycleController, PydeckBackend
"""
