"""Remote store client: one coroutine per entity and operation.

Each call issues exactly one backend request. Errors propagate as
``StoreError``; nothing is retried or cached, and callers re-fetch to
observe the result of a mutation.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ecocampus.records.mapper import (
    alert_mapper,
    building_mapper,
    sensor_mapper,
    wifi_point_mapper,
)
from ecocampus.records.models import Alert, Building, Sensor, WifiPoint
from ecocampus.store.base import TableBackend

Partial = Mapping[str, Any]


class StoreClient:
    """Typed CRUD over the ``buildings``, ``sensors``, ``alerts`` and ``wifi_points`` tables."""

    def __init__(self, backend: TableBackend) -> None:
        self.backend = backend

    # --- Buildings ---

    async def list_buildings(self) -> list[Building]:
        rows = await self.backend.select("buildings", order_by="name")
        return [building_mapper.to_domain(row) for row in rows]

    async def create_building(self, building: Building | Partial) -> None:
        await self.backend.insert("buildings", building_mapper.to_storage(building))

    async def update_building(self, building_id: str, updates: Partial) -> None:
        await self.backend.update("buildings", building_id, building_mapper.to_storage(updates))

    async def delete_building(self, building_id: str) -> None:
        await self.backend.delete("buildings", building_id)

    # --- Sensors ---

    async def list_sensors(self) -> list[Sensor]:
        rows = await self.backend.select("sensors", order_by="name")
        return [sensor_mapper.to_domain(row) for row in rows]

    async def create_sensor(self, sensor: Sensor | Partial) -> None:
        await self.backend.insert("sensors", sensor_mapper.to_storage(sensor))

    async def update_sensor(self, sensor_id: str, updates: Partial) -> None:
        # Every sensor update refreshes its reading time
        row = {"last_updated": datetime.now(UTC).isoformat()}
        row.update(sensor_mapper.to_storage(updates))
        await self.backend.update("sensors", sensor_id, row)

    async def delete_sensor(self, sensor_id: str) -> None:
        await self.backend.delete("sensors", sensor_id)

    # --- Alerts ---

    async def list_alerts(self) -> list[Alert]:
        rows = await self.backend.select("alerts", order_by="timestamp", descending=True)
        return [alert_mapper.to_domain(row) for row in rows]

    async def create_alert(self, alert: Partial) -> None:
        """Insert an alert; the store assigns its id."""
        row = alert_mapper.to_storage(alert)
        row.pop("id", None)
        await self.backend.insert("alerts", row)

    async def update_alert(self, alert_id: str, updates: Partial) -> None:
        await self.backend.update("alerts", alert_id, alert_mapper.to_storage(updates))

    async def resolve_alert(self, alert_id: str) -> None:
        await self.update_alert(alert_id, {"resolved": True})

    async def delete_alert(self, alert_id: str) -> None:
        await self.backend.delete("alerts", alert_id)

    # --- WiFi points ---

    async def list_wifi_points(self) -> list[WifiPoint]:
        rows = await self.backend.select("wifi_points", order_by="id")
        return [wifi_point_mapper.to_domain(row) for row in rows]

    async def create_wifi_point(self, point: WifiPoint | Partial) -> None:
        await self.backend.insert("wifi_points", wifi_point_mapper.to_storage(point))

    async def update_wifi_point(self, point_id: str, updates: Partial) -> None:
        await self.backend.update("wifi_points", point_id, wifi_point_mapper.to_storage(updates))

    async def delete_wifi_point(self, point_id: str) -> None:
        await self.backend.delete("wifi_points", point_id)

    async def close(self) -> None:
        await self.backend.close()
