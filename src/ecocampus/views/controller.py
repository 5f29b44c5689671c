"""Page view controllers.

A controller holds the transient copy of the records one page shows. It
fetches when mounted, optionally re-fetches on a fixed interval until
unmounted, and applies user actions either optimistically (alerts) or
pessimistically (management). Fetches are independent: a slow earlier
fetch may land after a later one and simply overwrite the state.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from dataclasses import dataclass
from typing import Any

from ecocampus.records.models import Alert, Building, Sensor, Severity, WifiPoint
from ecocampus.store.base import StoreError
from ecocampus.store.client import StoreClient
from ecocampus.store.mock import weekly_chart_data
from ecocampus.views.forms import FORMS, EntityForm, EntityKind

logger = logging.getLogger(__name__)

ReportRequester = Callable[[list[Building], list[Alert], list[Sensor]], Awaitable[str]]


class ViewController:
    """Base controller: fetch on mount, poll while mounted, stop on unmount."""

    name = "view"
    interval: float | None = None  # seconds between re-fetches; None disables polling

    def __init__(self, store: StoreClient, interval: float | None = None) -> None:
        self.store = store
        if interval is not None:
            self.interval = interval
        self.loading = True
        self.error: str | None = None
        self.mounted = False
        self.fetch_count = 0
        self._poll_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    async def load(self) -> None:
        """Fetch this view's records from the store. Raises StoreError."""

    async def fetch(self) -> None:
        """Run one fetch. Success or failure alike clears the loading flag."""
        self.fetch_count += 1
        try:
            await self.load()
            self.error = None
        except StoreError as e:
            logger.error("Failed to fetch %s data: %s", self.name, e.message)
            self.error = e.message
        finally:
            self.loading = False

    async def mount(self) -> None:
        """Fetch once, then start the polling loop for live views."""
        self.mounted = True
        if self.interval:
            self._poll_task = asyncio.create_task(self._poll_loop())
        await self.fetch()

    async def unmount(self) -> None:
        """Stop scheduled fetches. Fetches already in flight are left to finish."""
        self.mounted = False
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

    async def settle(self) -> None:
        """Wait for background fetches and mutations started by this controller."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _poll_loop(self) -> None:
        while self.mounted:
            await asyncio.sleep(self.interval or 0)
            if not self.mounted:
                break
            # Each tick fires regardless of whether the previous fetch finished
            self._spawn(self.fetch())


class SensorFeedController(ViewController):
    """Live sensor feed, refreshed every few seconds."""

    name = "sensors"
    interval = 5

    def __init__(self, store: StoreClient, interval: float | None = None) -> None:
        super().__init__(store, interval)
        self.sensors: list[Sensor] = []

    async def load(self) -> None:
        self.sensors = await self.store.list_sensors()


class DashboardController(ViewController):
    """Admin dashboard KPIs and history chart."""

    name = "dashboard"
    interval = 30

    def __init__(self, store: StoreClient, interval: float | None = None) -> None:
        super().__init__(store, interval)
        self.buildings: list[Building] = []
        self.alerts: list[Alert] = []
        self.chart_data: list[dict[str, int | str]] = []

    async def load(self) -> None:
        buildings, alerts = await asyncio.gather(
            self.store.list_buildings(), self.store.list_alerts()
        )
        self.buildings = buildings
        self.alerts = alerts
        # No history table exists; the chart is synthetic
        self.chart_data = weekly_chart_data()

    @property
    def urgent_alert_count(self) -> int:
        urgent = (Severity.high, Severity.critical)
        return sum(1 for a in self.alerts if not a.resolved and a.severity in urgent)

    @property
    def total_consumption(self) -> float:
        return round(sum(b.total_consumption for b in self.buildings), 1)

    @property
    def average_occupancy(self) -> int:
        if not self.buildings:
            return 0
        return int(sum(b.occupancy for b in self.buildings) / len(self.buildings))


@dataclass
class PendingResolution:
    """An alert resolution applied locally but not yet confirmed by the store."""

    request_id: str
    alert_id: str


class AlertsController(ViewController):
    """Alert list with optimistic resolution."""

    name = "alerts"

    def __init__(self, store: StoreClient, interval: float | None = None) -> None:
        super().__init__(store, interval)
        self.alerts: list[Alert] = []
        self.show_all = False
        self.pending: dict[str, PendingResolution] = {}

    async def load(self) -> None:
        self.alerts = await self.store.list_alerts()

    @property
    def visible_alerts(self) -> list[Alert]:
        if self.show_all:
            return self.alerts
        return [a for a in self.alerts if not a.resolved]

    def resolve(self, alert_id: str) -> PendingResolution:
        """Mark an alert resolved locally now and confirm with the store in the background."""
        change = PendingResolution(request_id=uuid.uuid4().hex, alert_id=alert_id)
        self.alerts = [
            a.model_copy(update={"resolved": True}) if a.id == alert_id else a
            for a in self.alerts
        ]
        self.pending[change.request_id] = change
        self._spawn(self._commit(change))
        return change

    async def _commit(self, change: PendingResolution) -> None:
        try:
            await self.store.resolve_alert(change.alert_id)
        except StoreError as e:
            logger.error("Failed to resolve alert %s: %s", change.alert_id, e.message)
            self.pending.pop(change.request_id, None)
            # Discard the speculative state wholesale
            await self.fetch()
            return
        self.pending.pop(change.request_id, None)


def signal_health(strength: int) -> str:
    """Band a dBm reading: closer to zero is better."""
    if strength > -50:
        return "excellent"
    if strength > -70:
        return "good"
    if strength > -80:
        return "fair"
    if strength > -90:
        return "weak"
    return "dead"


class InternetController(ViewController):
    """WiFi access point monitor."""

    name = "wifi"

    def __init__(self, store: StoreClient, interval: float | None = None) -> None:
        super().__init__(store, interval)
        self.points: list[WifiPoint] = []

    async def load(self) -> None:
        self.points = await self.store.list_wifi_points()

    @property
    def total_clients(self) -> int:
        return sum(p.clients for p in self.points)


class ReportController(ViewController):
    """AI insights page: gathers a snapshot and asks for a narrative report."""

    name = "report"

    def __init__(self, store: StoreClient, requester: ReportRequester) -> None:
        super().__init__(store)
        self.requester = requester
        self.loading = False
        self.report: str | None = None

    async def mount(self) -> None:
        # Nothing is fetched until a report is requested
        self.mounted = True

    async def generate(self) -> str:
        self.loading = True
        try:
            buildings, alerts, sensors = await asyncio.gather(
                self.store.list_buildings(),
                self.store.list_alerts(),
                self.store.list_sensors(),
            )
            self.report = await self.requester(buildings, alerts, sensors)
        except StoreError as e:
            logger.error("Failed to fetch data for analysis: %s", e.message)
            self.report = "Failed to fetch data for analysis."
        finally:
            self.loading = False
        return self.report


@dataclass
class Message:
    """Dismissible inline notice on the management page."""

    kind: str  # "success" or "error"
    text: str


class ManagementController(ViewController):
    """CRUD over buildings, sensors and WiFi points with pessimistic saves."""

    name = "management"

    def __init__(self, store: StoreClient, kind: EntityKind = EntityKind.buildings) -> None:
        super().__init__(store)
        self.kind = kind
        self.items: list[Any] = []
        self.buildings: list[Building] = []
        self.saving = False
        self.message: Message | None = None

    @property
    def form(self) -> EntityForm:
        return FORMS[self.kind]

    def _op(self, verb: str) -> Callable[..., Awaitable[Any]]:
        entity = self.form.entity
        name = f"list_{entity}s" if verb == "list" else f"{verb}_{entity}"
        return getattr(self.store, name)

    async def load(self) -> None:
        if self.kind == EntityKind.sensors:
            # Sensors need the building list for the building dropdown
            sensors, buildings = await asyncio.gather(
                self.store.list_sensors(), self.store.list_buildings()
            )
            self.items, self.buildings = sensors, buildings
        else:
            self.items = await self._op("list")()
            if self.kind == EntityKind.buildings:
                self.buildings = self.items

    async def select(self, kind: EntityKind) -> None:
        """Switch tabs and fetch the new tab's records."""
        self.kind = kind
        self.loading = True
        self.items = []
        await self.fetch()

    def find(self, item_id: str) -> Any | None:
        return next((item for item in self.items if item.id == item_id), None)

    async def save(self, values: Mapping[str, str], editing_id: str | None = None) -> bool:
        """Create or update one record, then re-fetch. Return True on success."""
        self.saving = True
        self.message = None
        try:
            payload = self.form.parse(values, editing=editing_id is not None)
            if editing_id is not None:
                await self._op("update")(editing_id, payload)
            else:
                await self._op("create")(payload)
        except ValueError as e:
            self.message = Message("error", f"Error: {e}")
            return False
        except StoreError as e:
            logger.error("Failed to save %s: %s", self.form.entity, e.message)
            self.message = Message("error", f"Error: {e.message or 'Check logs for details'}")
            return False
        finally:
            self.saving = False
        self.message = Message("success", "Saved successfully!")
        await self.fetch()
        return True

    async def delete(self, item_id: str) -> bool:
        self.saving = True
        try:
            await self._op("delete")(item_id)
        except StoreError as e:
            logger.error("Failed to delete %s %s: %s", self.form.entity, item_id, e.message)
            self.message = Message("error", f"Failed to delete: {e.message}")
            return False
        finally:
            self.saving = False
        self.message = Message("success", "Item deleted successfully")
        await self.fetch()
        return True

    def dismiss_message(self) -> None:
        self.message = None
