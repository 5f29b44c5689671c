"""Tests for the store client on the SQL table backend."""

from datetime import UTC, datetime, timedelta

import pytest

from ecocampus.records.models import Building, BuildingStatus, Sensor, SensorType, WifiPoint
from ecocampus.store.base import StoreError
from ecocampus.store.mock import seed_store


class TestBuildings:
    @pytest.mark.asyncio
    async def test_create_and_list_ordered_by_name(self, store):
        await store.create_building(Building(id="B2", name="Library"))
        await store.create_building({"id": "B1", "name": "Admin Block", "occupancy": 90})
        buildings = await store.list_buildings()
        assert [b.name for b in buildings] == ["Admin Block", "Library"]
        assert buildings[0].occupancy == 90

    @pytest.mark.asyncio
    async def test_partial_update(self, store):
        await store.create_building(Building(id="B1", name="Library", occupancy=10))
        await store.update_building("B1", {"status": "Critical"})
        (building,) = await store.list_buildings()
        assert building.status == BuildingStatus.critical
        assert building.occupancy == 10

    @pytest.mark.asyncio
    async def test_duplicate_id_raises_store_error(self, store):
        await store.create_building(Building(id="B1", name="Library"))
        with pytest.raises(StoreError):
            await store.create_building(Building(id="B1", name="Other"))

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.create_building(Building(id="B1", name="Library"))
        await store.delete_building("B1")
        assert await store.list_buildings() == []

    @pytest.mark.asyncio
    async def test_update_missing_row_is_a_no_op(self, store):
        await store.update_building("nope", {"name": "Ghost"})
        assert await store.list_buildings() == []


class TestSensors:
    @pytest.mark.asyncio
    async def test_pir_and_numeric_values(self, store):
        await store.create_sensor(
            Sensor(id="S-1", name="Motion", type=SensorType.PIR, value="Active")
        )
        await store.create_sensor(Sensor(id="S-2", name="Power", value=2450))
        motion, power = await store.list_sensors()
        assert motion.value == "Active"
        assert power.value == 2450

    @pytest.mark.asyncio
    async def test_update_refreshes_last_updated(self, store):
        old = datetime.now(UTC) - timedelta(days=1)
        await store.create_sensor(Sensor(id="S-1", name="Power", last_updated=old))
        await store.update_sensor("S-1", {"value": 100})
        (sensor,) = await store.list_sensors()
        assert sensor.value == 100
        assert sensor.last_updated > old + timedelta(hours=23)

    @pytest.mark.asyncio
    async def test_unassigned_building_stored_as_null(self, store):
        await store.create_sensor({"id": "S-1", "name": "Power", "buildingId": ""})
        (sensor,) = await store.list_sensors()
        assert sensor.building_id is None


class TestAlerts:
    @pytest.mark.asyncio
    async def test_newest_first_and_store_assigned_ids(self, store):
        now = datetime.now(UTC)
        await store.create_alert({"title": "Old", "timestamp": now - timedelta(hours=2)})
        await store.create_alert({"id": "ignored", "title": "New", "timestamp": now})
        alerts = await store.list_alerts()
        assert [a.title for a in alerts] == ["New", "Old"]
        assert all(a.id.isdigit() for a in alerts)

    @pytest.mark.asyncio
    async def test_resolve(self, store):
        await store.create_alert({"title": "AC Left On", "severity": "medium"})
        (alert,) = await store.list_alerts()
        await store.resolve_alert(alert.id)
        (alert,) = await store.list_alerts()
        assert alert.resolved is True

    @pytest.mark.asyncio
    async def test_bad_id_raises_store_error(self, store):
        with pytest.raises(StoreError):
            await store.resolve_alert("not-a-number")


class TestWifiPoints:
    @pytest.mark.asyncio
    async def test_ordered_by_id(self, store):
        await store.create_wifi_point(WifiPoint(id="AP-02", location="Library 2F"))
        await store.create_wifi_point(WifiPoint(id="AP-01", location="Library 1F"))
        points = await store.list_wifi_points()
        assert [p.id for p in points] == ["AP-01", "AP-02"]

    @pytest.mark.asyncio
    async def test_update_and_delete_by_text_id(self, store):
        await store.create_wifi_point(WifiPoint(id="AP-01", location="Gym", clients=3))
        await store.create_wifi_point(WifiPoint(id="AP-02", location="Hall", clients=8))
        await store.update_wifi_point("AP-01", {"clients": 12})
        await store.delete_wifi_point("AP-02")
        (point,) = await store.list_wifi_points()
        assert (point.id, point.clients) == ("AP-01", 12)

    @pytest.mark.asyncio
    async def test_non_numeric_clients_rejected(self, store):
        with pytest.raises(StoreError):
            await store.create_wifi_point({"id": "AP-01", "location": "Gym", "clients": "many"})


class TestSeed:
    @pytest.mark.asyncio
    async def test_seeds_empty_store_once(self, store):
        assert await seed_store(store) is True
        assert len(await store.list_buildings()) == 5
        assert len(await store.list_sensors()) == 7
        assert len(await store.list_alerts()) == 3
        assert len(await store.list_wifi_points()) == 6
        assert await seed_store(store) is False
