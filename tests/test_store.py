from __future__ import annotations

from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pyridersbud.config import RidersBudConfig
from pyridersbud.exceptions import RidersBudConfigError, RidersBudStoreError
from pyridersbud.models import BookingStatus, LocationFix
from pyridersbud.store import RestBookingStore

_BOOKINGS = [
    {
        "id": "b1",
        "customerId": "c1",
        "customerName": "Ana",
        "status": "En Route",
        "mechanic": {"id": "m1", "name": "Jay"},
        "service": {"name": "Oil Change", "price": 1500},
        "vehicle": {"make": "Honda", "model": "Click 125i", "plateNumber": "ABC 1234"},
        "isPaid": False,
    }
]


def _app(received: list[dict[str, Any]], *, bookings: Any = None, status: int = 200) -> web.Application:
    async def get_bookings(request: web.Request) -> web.StreamResponse:
        received.append({"path": request.path, "authorization": request.headers.get("Authorization")})
        if status >= 400:
            return web.Response(status=status, text="store unavailable")
        return web.json_response(_BOOKINGS if bookings is None else bookings)

    async def post_location(request: web.Request) -> web.StreamResponse:
        received.append({"path": request.path, "body": await request.json()})
        return web.Response(status=204)

    app = web.Application()
    app.router.add_get("/bookings", get_bookings)
    app.router.add_post("/customers/{customer_id}/location", post_location)
    return app


@pytest.mark.asyncio
async def test_fetch_snapshot_parses_bookings_and_sends_bearer() -> None:
    received: list[dict[str, Any]] = []
    async with TestServer(_app(received)) as server:
        async with RestBookingStore(str(server.make_url("/")), api_key="secret-key") as store:
            snapshot = await store.fetch_snapshot()

    (booking,) = snapshot.bookings
    assert booking.status == BookingStatus.EN_ROUTE
    assert booking.mechanic is not None and booking.mechanic.name == "Jay"
    assert booking.vehicle.plate_number == "ABC 1234"
    assert received == [{"path": "/bookings", "authorization": "Bearer secret-key"}]


@pytest.mark.asyncio
async def test_fetch_snapshot_accepts_wrapped_payload() -> None:
    async with TestServer(_app([], bookings={"bookings": _BOOKINGS})) as server:
        async with RestBookingStore(str(server.make_url("/"))) as store:
            snapshot = await store.fetch_snapshot()

    assert [b.id for b in snapshot.bookings] == ["b1"]


@pytest.mark.asyncio
async def test_update_customer_location_posts_coordinates() -> None:
    received: list[dict[str, Any]] = []
    async with TestServer(_app(received)) as server:
        async with RestBookingStore(str(server.make_url("/"))) as store:
            await store.update_customer_location("c1", LocationFix(lat=14.6, lng=121.0))

    assert received == [{"path": "/customers/c1/location", "body": {"lat": 14.6, "lng": 121.0}}]


@pytest.mark.asyncio
async def test_http_error_raises_store_error() -> None:
    async with TestServer(_app([], status=503)) as server:
        async with RestBookingStore(str(server.make_url("/"))) as store:
            with pytest.raises(RidersBudStoreError) as exc_info:
                await store.fetch_snapshot()

    assert exc_info.value.status_code == 503
    assert exc_info.value.endpoint == "/bookings"


@pytest.mark.asyncio
async def test_invalid_payload_raises_store_error() -> None:
    async with TestServer(_app([], bookings=[{"id": "b1"}])) as server:
        async with RestBookingStore(str(server.make_url("/"))) as store:
            with pytest.raises(RidersBudStoreError):
                await store.fetch_snapshot()

    async with TestServer(_app([], bookings={"items": []})) as server:
        async with RestBookingStore(str(server.make_url("/"))) as store:
            with pytest.raises(RidersBudStoreError):
                await store.fetch_snapshot()


@pytest.mark.asyncio
async def test_unreachable_store_raises_store_error() -> None:
    async with RestBookingStore("http://127.0.0.1:9", timeout=2.0) as store:
        with pytest.raises(RidersBudStoreError):
            await store.fetch_snapshot()


@pytest.mark.asyncio
async def test_requires_context_manager() -> None:
    store = RestBookingStore("http://store.local")
    with pytest.raises(RidersBudStoreError):
        await store.fetch_snapshot()


def test_from_config() -> None:
    with pytest.raises(RidersBudConfigError):
        RestBookingStore.from_config(RidersBudConfig())

    store = RestBookingStore.from_config(RidersBudConfig(store_base_url="http://store.local/api/"))
    assert store._base_url == "http://store.local/api"  # type: ignore[attr-defined]
