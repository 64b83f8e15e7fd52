"""Tests for the external collaborators: runtime data store and geolocation.

HTTP is replaced by FakeSession (records the request, returns a canned
response), so these tests check the exact PostgREST query and the error
mapping without a network.
"""

from typing import Any

import pytest
import requests

from livemap.constants import FetchConfig
from livemap.core.geolocation import (
    FixedGeolocationProvider,
    GeolocationOptions,
    IpGeolocationProvider,
)
from livemap.core.runtime_store import InMemoryRuntimeDataStore, RuntimeRow, SupabaseRuntimeDataStore
from livemap.exceptions import GeolocationError, StorageError
from livemap.model.location_record import LatLng


class FakeResponse:
    def __init__(self, body: Any = None, status: int = 200, invalid_json: bool = False) -> None:
        self.body = body
        self.status_code = status
        self.invalid_json = invalid_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self) -> Any:
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1")
        return self.body


class FakeSession:
    """Stands in for requests.Session.get()."""

    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse(body=[])
        self.error = error
        self.requests: list[dict[str, Any]] = []

    def get(self, url: str, params: dict | None = None, headers: dict | None = None, timeout: float | None = None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


# =============================================================================
# SUPABASE STORE
# =============================================================================


class TestSupabaseRuntimeDataStore:
    """PostgREST read of product_runtime_data."""

    def _store(self, session: FakeSession) -> SupabaseRuntimeDataStore:
        return SupabaseRuntimeDataStore(base_url="https://xyz.supabase.co/", api_key="anon", session=session)

    def test_query_parameters(self) -> None:
        session = FakeSession()
        self._store(session).query(product_id="p1", table_name="gps")

        request = session.requests[0]
        assert request["url"] == f"https://xyz.supabase.co/rest/v1/{FetchConfig.TABLE}"
        assert request["params"] == {
            "select": "*",
            "product_id": "eq.p1",
            "table_name": "eq.gps",
            "order": "created_at.desc",
            "limit": "100",
        }
        assert request["headers"]["apikey"] == "anon"
        assert request["headers"]["Authorization"] == "Bearer anon"
        assert request["timeout"] == FetchConfig.REQUEST_TIMEOUT_S

    def test_device_filter(self) -> None:
        session = FakeSession()
        self._store(session).query(product_id="p1", table_name="gps", device_id="dev-7")
        assert session.requests[0]["params"]["device_id"] == "eq.dev-7"

    def test_limit_never_exceeds_cap(self) -> None:
        session = FakeSession()
        self._store(session).query(product_id="p1", table_name="gps", limit=1000)
        assert session.requests[0]["params"]["limit"] == "100"

    def test_rows_are_parsed(self) -> None:
        body = [
            {"id": 7, "created_at": "2024-05-01T12:00:00+00:00", "data_payload": {"latitude": 1}},
            {"id": 8, "created_at": "2024-05-01T11:00:00+00:00", "data_payload": None},
            "garbage",
        ]
        rows = self._store(FakeSession(FakeResponse(body=body))).query(product_id="p1", table_name="gps")
        assert rows == [
            RuntimeRow(id="7", created_at="2024-05-01T12:00:00+00:00", data_payload={"latitude": 1}),
            RuntimeRow(id="8", created_at="2024-05-01T11:00:00+00:00", data_payload={}),
        ]

    @pytest.mark.parametrize(
        "session",
        [
            FakeSession(FakeResponse(status=500)),
            FakeSession(error=requests.ConnectionError("refused")),
            FakeSession(error=requests.Timeout("read timeout")),
            FakeSession(FakeResponse(invalid_json=True)),
            FakeSession(FakeResponse(body={"message": "JWT expired"})),
        ],
    )
    def test_failures_raise_storage_error(self, session: FakeSession) -> None:
        with pytest.raises(StorageError):
            self._store(session).query(product_id="p1", table_name="gps")

    def test_missing_url_rejected(self) -> None:
        with pytest.raises(ValueError, match="LIVEMAP_SUPABASE_URL"):
            SupabaseRuntimeDataStore(base_url="", api_key="anon", session=FakeSession())


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class TestInMemoryRuntimeDataStore:
    """Same contract as the real backend: newest first, capped, filtered."""

    def test_newest_first(self) -> None:
        store = InMemoryRuntimeDataStore()
        store.insert(product_id="p", table_name="t", payload={"n": 1}, created_at="2024-01-01T00:00:00")
        store.insert(product_id="p", table_name="t", payload={"n": 2}, created_at="2024-01-01T00:05:00")
        rows = store.query(product_id="p", table_name="t")
        assert [row.data_payload["n"] for row in rows] == [2, 1]

    def test_filters_by_product_table_and_device(self) -> None:
        store = InMemoryRuntimeDataStore()
        store.insert(product_id="p", table_name="t", payload={}, created_at="2024-01-01", device_id="a")
        store.insert(product_id="p", table_name="t", payload={}, created_at="2024-01-02", device_id="b")
        store.insert(product_id="p", table_name="other", payload={}, created_at="2024-01-03", device_id="a")
        assert len(store.query(product_id="p", table_name="t")) == 2
        assert len(store.query(product_id="p", table_name="t", device_id="a")) == 1
        assert store.query(product_id="q", table_name="t") == []

    def test_limit(self) -> None:
        store = InMemoryRuntimeDataStore()
        for day in range(1, 6):
            store.insert(product_id="p", table_name="t", payload={}, created_at=f"2024-01-0{day}")
        assert len(store.query(product_id="p", table_name="t", limit=3)) == 3

    def test_payload_is_copied(self) -> None:
        store = InMemoryRuntimeDataStore()
        payload = {"latitude": 1}
        store.insert(product_id="p", table_name="t", payload=payload, created_at="2024-01-01")
        payload["latitude"] = 99
        assert store.query(product_id="p", table_name="t")[0].data_payload == {"latitude": 1}


# =============================================================================
# GEOLOCATION
# =============================================================================


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestGeolocation:
    """One-shot position providers."""

    def test_fixed_provider(self) -> None:
        provider = FixedGeolocationProvider(position=LatLng(lat=1.0, lng=2.0))
        assert provider.current_position(GeolocationOptions()) == LatLng(lat=1.0, lng=2.0)

    def test_default_options(self) -> None:
        options = GeolocationOptions()
        assert options.high_accuracy is True
        assert options.timeout_s == 10
        assert options.maximum_age_s == 60

    def test_ip_lookup_uses_timeout(self) -> None:
        session = FakeSession(FakeResponse(body={"latitude": 48.2, "longitude": 16.37}))
        provider = IpGeolocationProvider(url="https://geo.test/json", session=session)
        position = provider.current_position(GeolocationOptions(timeout_s=3))
        assert position == LatLng(lat=48.2, lng=16.37)
        assert session.requests[0]["timeout"] == 3

    def test_answers_within_max_age_are_cached(self) -> None:
        session = FakeSession(FakeResponse(body={"latitude": "48.2", "longitude": "16.37"}))
        clock = FakeClock()
        provider = IpGeolocationProvider(url="https://geo.test/json", session=session, clock=clock)
        options = GeolocationOptions(maximum_age_s=60)

        provider.current_position(options)
        clock.now += 30
        provider.current_position(options)
        assert len(session.requests) == 1

        clock.now += 31
        provider.current_position(options)
        assert len(session.requests) == 2

    @pytest.mark.parametrize(
        "session",
        [
            FakeSession(error=requests.Timeout("timeout")),
            FakeSession(FakeResponse(status=429)),
            FakeSession(FakeResponse(invalid_json=True)),
            FakeSession(FakeResponse(body={"error": True, "reason": "RateLimited"})),
            FakeSession(FakeResponse(body={"latitude": 123.0, "longitude": 0.0})),
            FakeSession(FakeResponse(body=["not", "a", "dict"])),
        ],
    )
    def test_failures_raise_geolocation_error(self, session: FakeSession) -> None:
        provider = IpGeolocationProvider(url="https://geo.test/json", session=session)
        with pytest.raises(GeolocationError):
            provider.current_position(GeolocationOptions())
