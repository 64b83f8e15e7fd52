"""Runtime data store - read access to persisted device rows.

Rows live in the `product_runtime_data` table keyed by product, table name
and device, each with a free-form JSON payload. The widget only ever reads
the newest rows, so the store contract is a single query:

    query(product_id, table_name, device_id=None, limit=100) -> list[RuntimeRow]

Rows come back newest first and capped at `limit`.

Implementations:
    SupabaseRuntimeDataStore: PostgREST endpoint over HTTP (requests)
    InMemoryRuntimeDataStore: process-local rows for demos and tests
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from livemap.constants import FetchConfig, StorageConfig
from livemap.exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeRow:
    """One persisted row as returned by storage.

    Attributes:
        id: Row id
        created_at: Insertion timestamp as stored (ISO-8601 string)
        data_payload: Free-form payload map
        device_id: Device the row belongs to, if any
    """

    id: str
    created_at: str
    data_payload: dict[str, Any] = field(default_factory=dict)
    device_id: str | None = None

    @staticmethod
    def from_json(row: dict[str, Any]) -> "RuntimeRow":
        payload = row.get("data_payload")
        return RuntimeRow(
            id=str(row.get("id", "")),
            created_at=str(row.get("created_at", "")),
            data_payload=payload if isinstance(payload, dict) else {},
            device_id=row.get("device_id"),
        )


class RuntimeDataStore(Protocol):
    """Read-only runtime data collaborator."""

    def query(
        self,
        product_id: str,
        table_name: str,
        device_id: str | None = None,
        limit: int = FetchConfig.MAX_ROWS,
    ) -> list[RuntimeRow]:
        """Newest-first rows for a product table. Raises StorageError on failure."""
        ...


class SupabaseRuntimeDataStore:
    """PostgREST-backed store (Supabase REST API).

    Example:
        store = SupabaseRuntimeDataStore(base_url="https://xyz.supabase.co", api_key="...")
        rows = store.query(product_id="p1", table_name="gps")
    """

    def __init__(
        self,
        base_url: str = StorageConfig.URL,
        api_key: str = StorageConfig.API_KEY,
        timeout_s: float = FetchConfig.REQUEST_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Supabase URL is not configured (set LIVEMAP_SUPABASE_URL)")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{FetchConfig.TABLE}"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def query(
        self,
        product_id: str,
        table_name: str,
        device_id: str | None = None,
        limit: int = FetchConfig.MAX_ROWS,
    ) -> list[RuntimeRow]:
        params = {
            "select": "*",
            "product_id": f"eq.{product_id}",
            "table_name": f"eq.{table_name}",
            "order": "created_at.desc",
            "limit": str(min(limit, FetchConfig.MAX_ROWS)),
        }
        if device_id:
            params["device_id"] = f"eq.{device_id}"

        try:
            response = self._session.get(
                self.endpoint,
                params=params,
                headers=self._headers(),
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise StorageError(str(e)) from e
        except ValueError as e:
            raise StorageError(f"Invalid JSON from storage: {e}") from e

        if not isinstance(body, list):
            raise StorageError(f"Unexpected storage response type: {type(body).__name__}")

        logger.debug(f"[STORE] {len(body)} rows for product={product_id} table={table_name} device={device_id}")
        return [RuntimeRow.from_json(row) for row in body if isinstance(row, dict)]


class InMemoryRuntimeDataStore:
    """Process-local store with the same ordering and cap as the real backend.

    Rows are kept per (product_id, table_name) in insertion order.
    """

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], list[RuntimeRow]] = {}
        self._lock = threading.Lock()
        self._counter = 0

    def insert(
        self,
        product_id: str,
        table_name: str,
        payload: dict[str, Any],
        created_at: str,
        device_id: str | None = None,
    ) -> RuntimeRow:
        with self._lock:
            self._counter += 1
            row = RuntimeRow(
                id=f"row-{self._counter}",
                created_at=created_at,
                data_payload=dict(payload),
                device_id=device_id,
            )
            self._rows.setdefault((product_id, table_name), []).append(row)
        return row

    def query(
        self,
        product_id: str,
        table_name: str,
        device_id: str | None = None,
        limit: int = FetchConfig.MAX_ROWS,
    ) -> list[RuntimeRow]:
        with self._lock:
            rows = list(self._rows.get((product_id, table_name), []))
        if device_id:
            rows = [row for row in rows if row.device_id == device_id]
        rows.sort(key=lambda row: row.created_at, reverse=True)
        return rows[: min(limit, FetchConfig.MAX_ROWS)]
