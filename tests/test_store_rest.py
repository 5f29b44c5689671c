"""Tests for the PostgREST table backend."""

import json

import httpx
import pytest

from ecocampus.store.base import StoreError
from ecocampus.store.client import StoreClient
from ecocampus.store.rest import RestTableBackend


def _client(handler) -> StoreClient:
    backend = RestTableBackend(
        "https://proj.supabase.co/", "anon-key", transport=httpx.MockTransport(handler)
    )
    return StoreClient(backend)


class TestRequests:
    @pytest.mark.asyncio
    async def test_select_sends_order_and_key(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[
                    {
                        "id": "B1",
                        "name": "Library",
                        "total_consumption": "120.5",
                        "occupancy": 40,
                        "status": "Good",
                    }
                ],
            )

        store = _client(handler)
        (building,) = await store.list_buildings()
        await store.close()

        request = seen[0]
        assert request.url.path == "/rest/v1/buildings"
        assert request.url.params["order"] == "name.asc"
        assert request.url.params["select"] == "*"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"
        assert building.total_consumption == 120.5

    @pytest.mark.asyncio
    async def test_alerts_ordered_newest_first(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        store = _client(handler)
        assert await store.list_alerts() == []
        assert seen[0].url.params["order"] == "timestamp.desc"

    @pytest.mark.asyncio
    async def test_update_filters_by_id(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        store = _client(handler)
        await store.resolve_alert("12")
        request = seen[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.12"
        assert json.loads(request.content) == {"resolved": True}

    @pytest.mark.asyncio
    async def test_insert_sends_storage_row(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        store = _client(handler)
        await store.create_sensor({"id": "S-1", "name": "AC", "buildingId": ""})
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"id": "S-1", "name": "AC", "building_id": None}

    @pytest.mark.asyncio
    async def test_delete(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        store = _client(handler)
        await store.delete_wifi_point("AP-01")
        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/rest/v1/wifi_points"
        assert seen[0].url.params["id"] == "eq.AP-01"


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_response_carries_remote_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409, json={"code": "23505", "message": "duplicate key value violates unique constraint"}
            )

        store = _client(handler)
        with pytest.raises(StoreError) as exc_info:
            await store.create_building({"id": "B1", "name": "Library"})
        assert exc_info.value.status_code == 409
        assert "duplicate key" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error_becomes_store_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = _client(handler)
        with pytest.raises(StoreError, match="connection refused"):
            await store.list_sensors()
