"""Domain entities and their enums.

Entities use snake_case attributes with camelCase aliases, which is the
shape the pages and JSON payloads exchange. Storage rows live in
``ecocampus.records.tables``.
"""

import enum
from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(enum.StrEnum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    STUDENT = "STUDENT"


class SensorType(enum.StrEnum):
    POWER = "POWER"
    WIFI = "WIFI"
    TEMP = "TEMP"
    PIR = "PIR"


class SensorStatus(enum.StrEnum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    WARNING = "WARNING"


class BuildingStatus(enum.StrEnum):
    good = "Good"
    warning = "Warning"
    critical = "Critical"


class Severity(enum.StrEnum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class WifiStatus(enum.StrEnum):
    active = "active"
    down = "down"
    congested = "congested"


@dataclass
class User:
    """The signed-in user of one browser session."""

    id: str
    name: str
    email: str
    role: UserRole


class Entity(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Building(Entity):
    id: str
    name: str
    total_consumption: float = Field(default=0.0, ge=0)  # kWh
    occupancy: int = Field(default=0, ge=0, le=100)  # percent
    status: BuildingStatus = BuildingStatus.good


class Sensor(Entity):
    id: str
    name: str
    type: SensorType = SensorType.POWER
    location: str = ""
    value: int | float | str = 0  # PIR sensors report a textual state
    unit: str = ""
    status: SensorStatus = SensorStatus.ONLINE
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    building_id: str | None = None


class Alert(Entity):
    id: str
    title: str
    message: str = ""
    severity: Severity = Severity.low
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    resolved: bool = False


class WifiPoint(Entity):
    id: str
    location: str
    signal_strength: int = -100  # dBm, more negative is worse
    clients: int = Field(default=0, ge=0)
    status: WifiStatus = WifiStatus.active
