"""Declarative field descriptors for the management page.

One ``EntityForm`` per manageable entity drives both the table columns and
the add/edit form, so templates never branch on the entity kind.
"""

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic.alias_generators import to_snake

from ecocampus.records.mapper import to_number
from ecocampus.records.models import (
    BuildingStatus,
    Entity,
    SensorStatus,
    SensorType,
    WifiStatus,
)


class EntityKind(enum.StrEnum):
    buildings = "buildings"
    sensors = "sensors"
    wifi = "wifi"


class InputKind(enum.StrEnum):
    text = "text"
    integer = "integer"
    decimal = "decimal"
    reading = "reading"  # numeric, or free text for PIR states
    choice = "choice"
    building = "building"  # optional reference to a building


@dataclass(frozen=True)
class FormField:
    label: str
    key: str  # domain (camelCase) name
    kind: InputKind = InputKind.text
    required: bool = True
    options: tuple[str, ...] = ()
    create_only: bool = False  # client-supplied ids cannot change after creation
    in_table: bool = True

    @property
    def attr(self) -> str:
        return to_snake(self.key)

    @property
    def html_type(self) -> str:
        return "number" if self.kind in (InputKind.integer, InputKind.decimal) else "text"

    def display(self, item: Entity) -> Any:
        value = getattr(item, self.attr)
        return "" if value is None else value

    def parse(self, raw: str | None) -> Any:
        """Convert a submitted form value to its domain value. Raises ValueError."""
        text = (raw or "").strip()
        if self.kind == InputKind.building:
            return text or None
        if not text:
            if self.required:
                raise ValueError(f"{self.label} is required")
            return "" if self.kind == InputKind.text else None
        if self.kind == InputKind.integer:
            try:
                return int(float(text))
            except ValueError:
                raise ValueError(f"{self.label} must be a number") from None
        if self.kind == InputKind.decimal:
            try:
                return float(text)
            except ValueError:
                raise ValueError(f"{self.label} must be a number") from None
        if self.kind == InputKind.reading:
            return to_number(text)
        if self.kind == InputKind.choice and text not in self.options:
            raise ValueError(f"{self.label} must be one of: {', '.join(self.options)}")
        return text


@dataclass(frozen=True)
class EntityForm:
    kind: EntityKind
    label: str
    entity: str  # StoreClient method suffix, e.g. "building" -> create_building
    fields: tuple[FormField, ...]
    defaults: Mapping[str, Any] = field(default_factory=dict)

    @property
    def columns(self) -> list[FormField]:
        return [f for f in self.fields if f.in_table]

    def form_fields(self, editing: bool) -> list[FormField]:
        return [f for f in self.fields if not (editing and f.create_only)]

    def parse(self, values: Mapping[str, str], editing: bool = False) -> dict[str, Any]:
        """Build a domain payload from submitted values. Raises ValueError."""
        payload: dict[str, Any] = {}
        for f in self.form_fields(editing):
            payload[f.key] = f.parse(values.get(f.key))
        return payload

    def initial_values(self, item: Entity | None = None) -> dict[str, Any]:
        if item is None:
            return dict(self.defaults)
        return {f.key: f.display(item) for f in self.fields}


def _values(choices: type[enum.StrEnum]) -> tuple[str, ...]:
    return tuple(c.value for c in choices)


FORMS: dict[EntityKind, EntityForm] = {
    EntityKind.buildings: EntityForm(
        kind=EntityKind.buildings,
        label="Buildings",
        entity="building",
        fields=(
            FormField("Building ID (e.g. B1)", "id", create_only=True),
            FormField("Building Name", "name"),
            FormField("Current Consumption (kWh)", "totalConsumption", InputKind.decimal),
            FormField("Occupancy (%)", "occupancy", InputKind.integer),
            FormField(
                "Status", "status", InputKind.choice, options=_values(BuildingStatus)
            ),
        ),
        defaults={"id": "", "name": "", "totalConsumption": 0, "occupancy": 0, "status": "Good"},
    ),
    EntityKind.sensors: EntityForm(
        kind=EntityKind.sensors,
        label="Sensors",
        entity="sensor",
        fields=(
            FormField("Sensor ID (e.g., S-101)", "id", create_only=True),
            FormField("Sensor Name", "name"),
            FormField("Type", "type", InputKind.choice, options=_values(SensorType)),
            FormField("Current Value", "value", InputKind.reading),
            FormField("Unit", "unit", required=False),
            FormField("Location", "location"),
            FormField("Status", "status", InputKind.choice, options=_values(SensorStatus)),
            FormField("Building", "buildingId", InputKind.building, required=False),
        ),
        defaults={
            "id": "",
            "name": "",
            "type": SensorType.POWER.value,
            "location": "",
            "value": 0,
            "unit": "W",
            "status": SensorStatus.ONLINE.value,
            "buildingId": "",
        },
    ),
    EntityKind.wifi: EntityForm(
        kind=EntityKind.wifi,
        label="WiFi Points",
        entity="wifi_point",
        fields=(
            FormField("Access Point ID (e.g., AP-01)", "id", create_only=True),
            FormField("Location", "location"),
            FormField("Signal Strength (dBm)", "signalStrength", InputKind.integer),
            FormField("Active Clients", "clients", InputKind.integer),
            FormField("Status", "status", InputKind.choice, options=_values(WifiStatus)),
        ),
        defaults={"id": "", "location": "", "signalStrength": -50, "clients": 0, "status": "active"},
    ),
}
