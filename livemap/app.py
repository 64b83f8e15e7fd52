"""Live Map Widget - Dashboard page hosting one live map widget.

Polls runtime location rows for a product/table, draws them as markers with
a directional travel path, and keeps the map in sync while the widget
configuration changes in the sidebar.

Without LIVEMAP_SUPABASE_URL the page runs against an in-memory demo table.
Each session's controller is registered process-wide and unmounted once the
runtime reports its session closed, so polling threads don't outlive tabs.

Run: streamlit run livemap/app.py
"""

import logging
import random
import traceback
from datetime import datetime, timezone
from typing import Any

import streamlit as st
from streamlit.runtime import get_instance
from streamlit.runtime.scriptrunner import get_script_run_ctx

from livemap.constants import AppConfig, MapDefaults, MarkerConfig, ShapeConfig, StorageConfig, TileConfig, ViewportConfig
from livemap.core.data_fetcher import DataFetcher
from livemap.core.geolocation import IpGeolocationProvider
from livemap.core.runtime_store import InMemoryRuntimeDataStore, RuntimeDataStore, SupabaseRuntimeDataStore
from livemap.model.map_configuration import MapConfiguration
from livemap.ui.lifecycle_controller import LifecycleController
from livemap.ui.pydeck_backend import PydeckBackend
from livemap.ui.session_registry import SessionRegistry

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PRODUCT_ID = "demo-product"
DEMO_TABLE = "gps"
MAP_CONTAINER = "livemap-frame"


# =============================================================================
# SESSION STATE
# =============================================================================


def _create_store() -> RuntimeDataStore:
    if StorageConfig.URL:
        logger.info("[MAIN] Using Supabase runtime store")
        return SupabaseRuntimeDataStore()
    logger.info("[MAIN] LIVEMAP_SUPABASE_URL not set, using in-memory demo store")
    store = InMemoryRuntimeDataStore()
    for _ in range(5):
        _insert_demo_point(store)
    return store


def _insert_demo_point(store: InMemoryRuntimeDataStore) -> None:
    """Random-walk the demo device one step from its last position."""
    rows = store.query(product_id=DEMO_PRODUCT_ID, table_name=DEMO_TABLE, limit=1)
    if rows:
        lat = float(rows[0].data_payload["latitude"])
        lon = float(rows[0].data_payload["longitude"])
        index = int(rows[0].data_payload["index"]) + 1
    else:
        lat, lon, index = MapDefaults.CENTER_LAT, MapDefaults.CENTER_LON, 1
    store.insert(
        product_id=DEMO_PRODUCT_ID,
        table_name=DEMO_TABLE,
        payload={
            "latitude": round(lat + random.uniform(-0.002, 0.003), 6),
            "longitude": round(lon + random.uniform(-0.002, 0.003), 6),
            "index": index,
            "title": f"Stop {index}",
            "description": f"Speed {random.randint(5, 40)} km/h",
        },
        created_at=datetime.now(timezone.utc).isoformat(),
    )


@st.cache_resource
def _session_registry() -> SessionRegistry:
    return SessionRegistry()


def init_session_state() -> None:
    """Create the store and controller once per browser session."""
    registry = _session_registry()
    reaped = registry.reap(is_active=get_instance().is_active_session)
    if reaped:
        logger.info(f"[MAIN] Unmounted {reaped} map(s) of closed sessions")

    if "store" not in st.session_state:
        st.session_state.store = _create_store()

    if "controller" not in st.session_state:
        st.session_state.controller = LifecycleController(
            config=MapConfiguration.from_widget_config(_default_widget_config()),
            fetcher=DataFetcher(store=st.session_state.store),
            backend_factory=PydeckBackend,
            geolocation=IpGeolocationProvider(),
            widget_name=MAP_CONTAINER,
        )
        ctx = get_script_run_ctx()
        if ctx is not None:
            registry.register(ctx.session_id, st.session_state.controller)


def _default_widget_config() -> dict[str, Any]:
    if StorageConfig.URL:
        return {}
    return {"productId": DEMO_PRODUCT_ID, "runtimeTableName": DEMO_TABLE}


# =============================================================================
# SIDEBAR
# =============================================================================


def render_config_panel() -> dict[str, Any]:
    """Widget property panel. Returns the dashboard-style widget config."""
    defaults = _default_widget_config()
    with st.sidebar:
        st.header("🔌 Data")
        product_id = st.text_input("Product ID", value=defaults.get("productId", ""))
        table_name = st.text_input("Runtime table", value=defaults.get("runtimeTableName", ""))
        refresh_ms = st.number_input(
            "Refresh interval (ms)", min_value=0, value=MapDefaults.REFRESH_INTERVAL_MS, step=1000
        )
        with st.expander("Columns"):
            latitude_column = st.text_input("Latitude column", value=MapDefaults.LATITUDE_COLUMN)
            longitude_column = st.text_input("Longitude column", value=MapDefaults.LONGITUDE_COLUMN)
            index_column = st.text_input("Index column", value=MapDefaults.INDEX_COLUMN)
            title_column = st.text_input("Pin title column", value=MapDefaults.TITLE_COLUMN)
            description_column = st.text_input("Pin description column", value=MapDefaults.DESCRIPTION_COLUMN)

        st.header("🗺️ Map")
        provider = st.selectbox("Tiles", TileConfig.NAMES)
        shape = st.selectbox("Shape", ShapeConfig.TYPES)
        sides = MapDefaults.SHAPE_SIDES
        if shape == "customPolygon":
            sides = st.slider("Sides", ShapeConfig.MIN_SIDES, ShapeConfig.MAX_SIDES, MapDefaults.SHAPE_SIDES)
        design_mode = st.toggle("Design mode", value=False)
        show_controls = st.toggle("Zoom controls", value=True)
        show_user_location = st.toggle("Show my location", value=False)

        st.header("📍 Markers")
        show_marker = st.toggle("Show markers", value=True)
        marker_type = st.selectbox("Marker type", MarkerConfig.TYPES, index=MarkerConfig.TYPES.index("default"))
        marker_color = st.color_picker("Marker color", value=MapDefaults.MARKER_COLOR)
        show_pin_descriptions = st.toggle("Custom pin fields", value=False)
        always_show = st.toggle("Always show pin label", value=False)

        st.header("➰ Path")
        show_path = st.toggle("Show path", value=True)
        path_color = st.color_picker("Path color", value=MapDefaults.PATH_COLOR)
        show_arrows = st.toggle("Show arrows", value=True)
        arrow_color = st.color_picker("Arrow color", value=MapDefaults.ARROW_COLOR)

        store = st.session_state.store
        if isinstance(store, InMemoryRuntimeDataStore):
            st.divider()
            if st.button("➕ Add demo point", use_container_width=True):
                _insert_demo_point(store)

    return {
        "productId": product_id,
        "runtimeTableName": table_name,
        "refreshInterval": int(refresh_ms),
        "latitudeColumn": latitude_column,
        "longitudeColumn": longitude_column,
        "indexColumn": index_column,
        "pinTitleColumn": title_column,
        "pinDescriptionColumn": description_column,
        "mapProvider": provider,
        "mapShape": shape,
        "mapShapeSides": sides,
        "showControls": show_controls,
        "showUserLocation": show_user_location,
        "showMarker": show_marker,
        "markerType": marker_type,
        "markerColor": marker_color,
        "showPinDescriptions": show_pin_descriptions,
        "alwaysShowPinDescriptions": always_show,
        "showPath": show_path,
        "pathColor": path_color,
        "showArrows": show_arrows,
        "arrowColor": arrow_color,
        "_design_mode": design_mode,
    }


# =============================================================================
# MAP RENDERING
# =============================================================================


def _render_widget() -> None:
    """Draw the current surface snapshot with the widget status."""
    controller: LifecycleController = st.session_state.controller
    status = controller.status

    st.markdown(
        f"<style>.st-key-{MAP_CONTAINER} {{ {controller.style_descriptor().to_css()} }}</style>",
        unsafe_allow_html=True,
    )
    with st.container(key=MAP_CONTAINER):
        deck = controller.render(lambda backend: backend.to_deck())
        if deck is not None:
            st.pydeck_chart(deck, height=ViewportConfig.HEIGHT_PX)

    if status.message is not None:
        status.message.display()
    caption = f"{status.record_count} location(s)"
    if status.last_fetch_at is not None:
        caption += f" · updated {status.last_fetch_at:%H:%M:%S} UTC"
    st.caption(caption)


def render_map(config: MapConfiguration) -> None:
    """Re-render the map on the refresh interval without rerunning the page."""
    run_every = config.refresh_interval_ms / 1000 if config.refresh_interval_ms > 0 else None
    st.fragment(run_every=run_every)(_render_widget)()


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Application entry point."""
    st.set_page_config(page_title=AppConfig.TITLE, page_icon=AppConfig.ICON, layout=AppConfig.LAYOUT)
    init_session_state()

    st.title(AppConfig.TITLE)

    try:
        _run_app_ui()
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        full_traceback = traceback.format_exc()
        logger.error(f"[UI] UI error caught: {error_msg}\n{full_traceback}")
        st.error(f"⚠️ [UI] Something went wrong: {error_msg}")


def _run_app_ui() -> None:
    controller: LifecycleController = st.session_state.controller

    widget_config = render_config_panel()
    design_mode = widget_config.pop("_design_mode")
    config = MapConfiguration.from_widget_config(widget_config, design_mode=design_mode)

    controller.update_config(config)
    if not controller.is_mounted:
        controller.mount(container=MAP_CONTAINER)

    render_map(config)


if __name__ == "__main__":
    main()
