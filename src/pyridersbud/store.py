"""Booking store collaborator: snapshot reads and the live-location mutation."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from pyridersbud._redact import redact_for_log
from pyridersbud.config import RidersBudConfig
from pyridersbud.exceptions import RidersBudConfigError, RidersBudStoreError
from pyridersbud.models.booking import Snapshot
from pyridersbud.models.location import LocationFix

_logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """What the engine needs from the persistence layer."""

    async def fetch_snapshot(self) -> Snapshot:
        ...

    async def update_customer_location(self, customer_id: str, fix: LocationFix) -> None:
        ...


class RestBookingStore:
    """aiohttp client for the booking store REST API.

    Usage::

        async with RestBookingStore(base_url) as store:
            snapshot = await store.fetch_snapshot()
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._external_session = session is not None
        self._http_session = session

    @classmethod
    def from_config(cls, config: RidersBudConfig, *, session: aiohttp.ClientSession | None = None) -> RestBookingStore:
        if not config.store_base_url:
            raise RidersBudConfigError("store_base_url is not configured")
        return cls(
            config.store_base_url,
            api_key=config.store_api_key,
            timeout=config.store_timeout,
            session=session,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RestBookingStore:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Store API
    # ------------------------------------------------------------------

    async def fetch_snapshot(self) -> Snapshot:
        """``GET /bookings`` -> immutable snapshot of all bookings."""
        body = await self._request("GET", "/bookings")
        bookings = body.get("bookings") if isinstance(body, dict) else body
        if not isinstance(bookings, list):
            raise RidersBudStoreError("Expected a list of bookings from /bookings", endpoint="/bookings")
        try:
            return Snapshot.from_bookings(bookings)
        except ValidationError as exc:
            raise RidersBudStoreError(f"Invalid booking payload from /bookings: {exc}", endpoint="/bookings") from exc

    async def update_customer_location(self, customer_id: str, fix: LocationFix) -> None:
        """``POST /customers/{id}/location`` with ``{"lat", "lng"}``."""
        await self._request("POST", f"/customers/{customer_id}/location", payload=fix.as_coordinates())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise RidersBudStoreError("Store not initialized. Use 'async with RestBookingStore(...) as store:'")
        return self._http_session

    async def _request(self, method: str, endpoint: str, *, payload: dict[str, Any] | None = None) -> Any:
        session = self._require_session()
        headers: dict[str, str] = {"accept": "application/json"}
        if self._api_key:
            headers["authorization"] = f"Bearer {self._api_key}"

        url = f"{self._base_url}{endpoint}"
        _logger.debug("%s %s headers=%s body=%s", method, url, redact_for_log(headers), redact_for_log(payload))

        try:
            async with session.request(method, url, json=payload, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise RidersBudStoreError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except RidersBudStoreError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise RidersBudStoreError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise RidersBudStoreError(f"Invalid JSON from {endpoint}: {text[:200]}", endpoint=endpoint) from exc
