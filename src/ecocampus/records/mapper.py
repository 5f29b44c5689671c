"""Translation between domain entities and storage rows.

Mappers are pure: they never touch the store. ``to_storage`` handles
partial updates, so only the keys present in the input reach the row.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from ecocampus.records.models import Alert, Building, Entity, Sensor, SensorType, WifiPoint

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


def to_number(value: Any) -> Any:
    """Coerce a numeric-looking value (``"450.2"``) to int/float, else return it as-is."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int | float):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            return value
        if number.is_integer() and "." not in text and "e" not in text.lower():
            return int(number)
        return number
    return value


def to_timestamp(value: Any) -> Any:
    """Wrap ISO strings into aware datetimes; naive values are taken as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def to_foreign_key(value: Any) -> str | None:
    """Empty or missing references are stored as null, never as ``""``."""
    if value is None or value == "":
        return None
    return str(value)


class RecordMapper(Generic[E]):
    """Bidirectional field mapping for one entity type."""

    def __init__(
        self,
        entity: type[E],
        columns: Mapping[str, str],
        numeric: frozenset[str] = frozenset(),
        timestamps: frozenset[str] = frozenset(),
        foreign_keys: frozenset[str] = frozenset(),
    ) -> None:
        self.entity = entity
        self.columns = dict(columns)  # domain (camelCase) name -> storage column
        self._fields = {column: name for name, column in self.columns.items()}
        self.numeric = numeric
        self.timestamps = timestamps
        self.foreign_keys = foreign_keys

    def _domain_key(self, key: str) -> str:
        """Accept camelCase names and snake_case attribute names alike."""
        if key in self.columns:
            return key
        if key in self._fields:
            return self._fields[key]
        raise ValueError(f"Unknown {self.entity.__name__} field: {key}")

    def _coerce(self, key: str, value: Any, row: Mapping[str, Any]) -> Any:
        if key in self.foreign_keys:
            return to_foreign_key(value)
        if key in self.timestamps:
            return to_timestamp(value)
        if key in self.numeric:
            return to_number(value)
        if key == "id" and value is not None:
            return str(value)
        return value

    def to_storage(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Translate a (partial) domain dict or entity into a storage row."""
        if isinstance(partial, Entity):
            partial = partial.model_dump(by_alias=True)
        row: dict[str, Any] = {}
        for key, value in partial.items():
            name = self._domain_key(key)
            if name in self.foreign_keys:
                value = to_foreign_key(value)
            if name in self.timestamps and isinstance(value, datetime):
                value = value.isoformat()
            row[self.columns[name]] = value
        return row

    def from_storage(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Translate a (partial) storage row into a domain dict keyed by camelCase names."""
        partial: dict[str, Any] = {}
        for column, value in row.items():
            name = self._fields.get(column)
            if name is None:
                logger.debug("Ignoring unmapped %s column: %s", self.entity.__name__, column)
                continue
            partial[name] = self._coerce(name, value, row)
        return partial

    def to_domain(self, row: Mapping[str, Any]) -> E:
        return self.entity.model_validate(self.from_storage(row))


class SensorMapper(RecordMapper[Sensor]):
    """Sensor values are numeric except for PIR sensors, which hold a textual state.

    The value is only coerced when the row carries the sensor type; a partial
    row without ``type`` keeps the value exactly as stored.
    """

    def _coerce(self, key: str, value: Any, row: Mapping[str, Any]) -> Any:
        if key == "value":
            if "type" not in row:
                return value
            if row.get("type") == SensorType.PIR:
                return "" if value is None else str(value)
            return to_number(value)
        return super()._coerce(key, value, row)


building_mapper = RecordMapper(
    Building,
    {
        "id": "id",
        "name": "name",
        "totalConsumption": "total_consumption",
        "occupancy": "occupancy",
        "status": "status",
    },
    numeric=frozenset({"totalConsumption", "occupancy"}),
)

sensor_mapper = SensorMapper(
    Sensor,
    {
        "id": "id",
        "name": "name",
        "type": "type",
        "location": "location",
        "value": "value",
        "unit": "unit",
        "status": "status",
        "lastUpdated": "last_updated",
        "buildingId": "building_id",
    },
    timestamps=frozenset({"lastUpdated"}),
    foreign_keys=frozenset({"buildingId"}),
)

alert_mapper = RecordMapper(
    Alert,
    {
        "id": "id",
        "title": "title",
        "message": "message",
        "severity": "severity",
        "timestamp": "timestamp",
        "resolved": "resolved",
    },
    timestamps=frozenset({"timestamp"}),
)

wifi_point_mapper = RecordMapper(
    WifiPoint,
    {
        "id": "id",
        "location": "location",
        "signalStrength": "signal_strength",
        "clients": "clients",
        "status": "status",
    },
    numeric=frozenset({"signalStrength", "clients"}),
)
