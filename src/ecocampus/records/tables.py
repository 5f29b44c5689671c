"""Storage rows for the SQL table backend.

Column names match the hosted tables so rows are interchangeable between
the SQL and REST backends.
"""

from datetime import UTC, datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel


class BuildingRow(SQLModel, table=True):
    __tablename__ = "buildings"

    id: str = Field(primary_key=True)
    name: str = Field(index=True)
    total_consumption: float = 0.0
    occupancy: int = 0
    status: str = "Good"


class SensorRow(SQLModel, table=True):
    __tablename__ = "sensors"

    id: str = Field(primary_key=True)
    name: str = Field(index=True)
    type: str = "POWER"
    location: str = ""
    value: str = "0"  # text column: numeric readings and PIR states alike
    unit: str = ""
    status: str = "ONLINE"
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    building_id: str | None = Field(default=None, foreign_key="buildings.id")

    @field_validator("value", mode="before")
    @classmethod
    def value_as_text(cls, v: object) -> str:
        return "" if v is None else str(v)


class AlertRow(SQLModel, table=True):
    __tablename__ = "alerts"

    id: int | None = Field(default=None, primary_key=True)
    title: str
    message: str = ""
    severity: str = "low"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
    resolved: bool = False


class WifiPointRow(SQLModel, table=True):
    __tablename__ = "wifi_points"

    id: str = Field(primary_key=True)
    location: str
    signal_strength: int = -100
    clients: int = 0
    status: str = "active"


TABLES: dict[str, type[SQLModel]] = {
    "buildings": BuildingRow,
    "sensors": SensorRow,
    "alerts": AlertRow,
    "wifi_points": WifiPointRow,
}
