"""Synthetic campus data for development and charts.

Seed rows give a fresh local store a realistic campus; chart series are
generated on every call because no historical readings are stored.
"""

import logging
import random
from datetime import UTC, datetime, timedelta

from ecocampus.records.models import (
    Building,
    BuildingStatus,
    Sensor,
    SensorStatus,
    SensorType,
    Severity,
    WifiPoint,
    WifiStatus,
)
from ecocampus.store.base import StoreError
from ecocampus.store.client import StoreClient

logger = logging.getLogger(__name__)

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# Weekly usage shown on the student dashboard
STUDENT_USAGE = [4000, 3000, 2000, 2780, 1890, 1390, 1490]


def demo_buildings() -> list[Building]:
    return [
        Building(id="B1", name="Science Block", total_consumption=450.2, occupancy=85),
        Building(id="B2", name="Library", total_consumption=120.5, occupancy=40),
        Building(
            id="B3",
            name="IT Center",
            total_consumption=890.0,
            occupancy=20,
            status=BuildingStatus.warning,
        ),
        Building(id="B4", name="Dormitories", total_consumption=340.8, occupancy=65),
        Building(
            id="B5",
            name="Admin Block",
            total_consumption=210.1,
            occupancy=90,
            status=BuildingStatus.critical,
        ),
    ]


def demo_sensors() -> list[Sensor]:
    power, temp, pir, wifi = SensorType.POWER, SensorType.TEMP, SensorType.PIR, SensorType.WIFI
    rows = [
        ("S-101", "Main Lab AC Unit", power, "Science Block A", 2450, "W", "ONLINE", "B1"),
        ("S-102", "Library Lighting", power, "Library Main Hall", 850, "W", "ONLINE", "B2"),
        ("S-103", "Server Room Temp", temp, "IT Center", 21.5, "°C", "ONLINE", "B3"),
        ("S-104", "Corridor Motion", pir, "Dorm Block B", "Active", "", "ONLINE", "B4"),
        ("S-105", "Cafeteria WiFi", wifi, "Student Center", -45, "dBm", "WARNING", None),
        ("S-106", "Lab Equipment 4", power, "Science Block A", 0, "W", "OFFLINE", "B1"),
        ("S-107", "Lecture Hall 1 AC", power, "Academic Block", 3200, "W", "WARNING", None),
    ]
    return [
        Sensor(
            id=sensor_id,
            name=name,
            type=sensor_type,
            location=location,
            value=value,
            unit=unit,
            status=SensorStatus(status),
            building_id=building_id,
        )
        for sensor_id, name, sensor_type, location, value, unit, status, building_id in rows
    ]


def demo_alerts(now: datetime | None = None) -> list[dict[str, object]]:
    """Alert payloads without ids; the store assigns them."""
    now = now or datetime.now(UTC)
    return [
        {
            "title": "High Power Usage",
            "message": "IT Center server room exceeding threshold by 15%.",
            "severity": Severity.high,
            "timestamp": now - timedelta(minutes=15),
            "resolved": False,
        },
        {
            "title": "AC Left On",
            "message": "Lecture Hall 3 AC running with 0 occupancy.",
            "severity": Severity.medium,
            "timestamp": now - timedelta(hours=1),
            "resolved": False,
        },
        {
            "title": "WiFi Weak Signal",
            "message": "Student Center AP-4 reporting low signal strength.",
            "severity": Severity.low,
            "timestamp": now - timedelta(hours=2),
            "resolved": True,
        },
    ]


def demo_wifi_points() -> list[WifiPoint]:
    rows = [
        ("AP-01", "Library 1F", -35, 45, WifiStatus.active),
        ("AP-02", "Library 2F", -55, 23, WifiStatus.active),
        ("AP-03", "Science Lab", -78, 12, WifiStatus.congested),
        ("AP-04", "Cafeteria", -42, 89, WifiStatus.active),
        ("AP-05", "Dorm Lobby", -90, 5, WifiStatus.down),
        ("AP-06", "Gym", -60, 15, WifiStatus.active),
    ]
    return [
        WifiPoint(
            id=point_id, location=location, signal_strength=rssi, clients=clients, status=status
        )
        for point_id, location, rssi, clients, status in rows
    ]


def weekly_chart_data() -> list[dict[str, int | str]]:
    """Random usage/predicted/solar series for the dashboard history chart."""
    return [
        {
            "name": day,
            "usage": random.randint(200, 699),
            "predicted": random.randint(200, 699),
            "solar": random.randint(50, 249),
        }
        for day in _DAYS
    ]


def student_chart_data() -> list[dict[str, int | str]]:
    return [{"name": day, "usage": usage} for day, usage in zip(_DAYS, STUDENT_USAGE)]


async def seed_store(store: StoreClient) -> bool:
    """Insert demo rows into an empty store. Return True if anything was seeded."""
    try:
        if await store.list_buildings():
            logger.info("Store already has data, skipping seed")
            return False
        for building in demo_buildings():
            await store.create_building(building)
        for sensor in demo_sensors():
            await store.create_sensor(sensor)
        for alert in demo_alerts():
            await store.create_alert(alert)
        for point in demo_wifi_points():
            await store.create_wifi_point(point)
    except StoreError:
        logger.exception("Seeding demo data failed")
        return False
    logger.info("Seeded demo campus data")
    return True
