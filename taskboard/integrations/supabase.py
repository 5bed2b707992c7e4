"""Relational store gateway (PostgREST) with stub and live modes."""
import copy
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from taskboard.config import Settings, settings as default_settings
from taskboard.core.exceptions import BackendError
from taskboard.integrations.realtime import LocalChangeFeed

logger = logging.getLogger(__name__)


class BackendMode(str, Enum):
    """Backend integration mode."""

    STUB = "stub"
    LIVE = "live"


class SupabaseGateway:
    """Snapshot queries and row mutations against the hosted relational store.

    In stub mode tables live in memory and every mutation is published to the
    local change feed, so subscribers see the same insert/update/delete
    stream the realtime service would send.
    """

    def __init__(self, config: Settings = default_settings, feed: Optional[LocalChangeFeed] = None):
        self.config = config
        self.mode = BackendMode(config.BACKEND_MODE.lower())
        self.feed = feed
        self.base_url = config.SUPABASE_URL.rstrip("/") if config.SUPABASE_URL else None
        self.api_key = config.SUPABASE_ANON_KEY
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        if self.mode == BackendMode.LIVE and (not self.base_url or not self.api_key):
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required in live mode")

    def snapshot_order(self, table: str) -> Optional[Tuple[str, bool]]:
        """Return (column, descending) used for the snapshot of ``table``."""
        if table == self.config.TASKS_TABLE:
            return ("created_at", True)
        if table == self.config.COLUMNS_TABLE:
            return ("position", False)
        return None

    # ── helpers ──────────────────────────────────────────────────────────────

    def _rest_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _build_headers(self, access_token: Optional[str] = None, *, returning: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {access_token or self.api_key}",
            "Accept-Profile": self.config.SUPABASE_SCHEMA,
            "Content-Profile": self.config.SUPABASE_SCHEMA,
        }
        if returning:
            headers["Prefer"] = "return=representation"
        return headers

    @staticmethod
    def _error_from(exc: httpx.HTTPError, action: str) -> BackendError:
        status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
        return BackendError(f"{action} failed: {exc}", status_code=status_code)

    def _publish(self, table: str, kind: str, new: Optional[dict], old: Optional[dict]) -> None:
        if self.feed is not None:
            self.feed.publish(table, {"eventType": kind, "new": new, "old": old})

    def _stub_table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def stub_rows(self, table: str) -> List[Dict[str, Any]]:
        """Current rows of a stub table, in insertion order."""
        return [copy.deepcopy(row) for row in self._stub_table(table).values()]

    def seed(self, table: str, rows: List[Dict[str, Any]]) -> None:
        """Load rows into a stub table without emitting change events."""
        target = self._stub_table(table)
        for row in rows:
            target[str(row["id"])] = copy.deepcopy(row)

    # ── snapshot ─────────────────────────────────────────────────────────────

    async def fetch_all(self, table: str, access_token: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch every row of ``table`` in its snapshot order."""
        order = self.snapshot_order(table)
        if self.mode == BackendMode.STUB:
            rows = [copy.deepcopy(row) for row in self._stub_table(table).values()]
            if order:
                column, descending = order
                present = [row for row in rows if row.get(column) is not None]
                missing = [row for row in rows if row.get(column) is None]
                present.sort(key=lambda row: row[column], reverse=descending)
                rows = present + missing
            logger.debug("Stub snapshot of %s: %d rows", table, len(rows))
            return rows

        params = {"select": "*"}
        if order:
            column, descending = order
            params["order"] = f"{column}.{'desc' if descending else 'asc'}"
        try:
            rows = await self._get_rows(table, params, access_token)
        except httpx.HTTPError as exc:
            raise self._error_from(exc, f"Fetching {table}") from exc
        except ValueError as exc:
            raise BackendError(f"Fetching {table} returned a body that is not JSON: {exc}") from exc
        if not isinstance(rows, list):
            raise BackendError(f"Fetching {table} returned {type(rows).__name__}, expected a list")
        return rows

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _get_rows(self, table: str, params: Dict[str, str], access_token: Optional[str]) -> Any:
        async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
            response = await client.get(
                self._rest_url(table),
                params=params,
                headers=self._build_headers(access_token),
            )
            response.raise_for_status()
            return response.json()

    # ── mutations (never retried) ────────────────────────────────────────────

    async def insert(self, table: str, fields: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        """Insert a row and return it as stored."""
        if self.mode == BackendMode.STUB:
            row = copy.deepcopy(fields)
            row.setdefault("id", str(uuid.uuid4()))
            if table == self.config.TASKS_TABLE:
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            self._stub_table(table)[str(row["id"])] = row
            self._publish(table, "INSERT", copy.deepcopy(row), None)
            return copy.deepcopy(row)

        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.post(
                    self._rest_url(table),
                    json=fields,
                    headers=self._build_headers(access_token, returning=True),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise self._error_from(exc, f"Insert into {table}") from exc
        except ValueError as exc:
            raise BackendError(f"Insert into {table} returned a body that is not JSON: {exc}") from exc
        if not data:
            raise BackendError(f"Insert into {table} returned no row")
        return data[0]

    async def update(
        self,
        table: str,
        row_id: str,
        fields: Dict[str, Any],
        access_token: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Update a row by id; returns the stored row, or None when no row matched."""
        if self.mode == BackendMode.STUB:
            rows = self._stub_table(table)
            current = rows.get(str(row_id))
            if current is None:
                return None
            old = copy.deepcopy(current)
            current.update(copy.deepcopy(fields))
            self._publish(table, "UPDATE", copy.deepcopy(current), old)
            return copy.deepcopy(current)

        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.patch(
                    self._rest_url(table),
                    params={"id": f"eq.{row_id}"},
                    json=fields,
                    headers=self._build_headers(access_token, returning=True),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise self._error_from(exc, f"Update of {table}/{row_id}") from exc
        except ValueError as exc:
            raise BackendError(f"Update of {table}/{row_id} returned a body that is not JSON: {exc}") from exc
        return data[0] if data else None

    async def delete(self, table: str, row_id: str, access_token: Optional[str] = None) -> bool:
        """Delete a row by id; returns False when no row matched."""
        if self.mode == BackendMode.STUB:
            removed = self._stub_table(table).pop(str(row_id), None)
            if removed is None:
                return False
            self._publish(table, "DELETE", None, {"id": removed["id"]})
            return True

        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.delete(
                    self._rest_url(table),
                    params={"id": f"eq.{row_id}"},
                    headers=self._build_headers(access_token, returning=True),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise self._error_from(exc, f"Delete of {table}/{row_id}") from exc
        except ValueError as exc:
            raise BackendError(f"Delete of {table}/{row_id} returned a body that is not JSON: {exc}") from exc
        return bool(data)
