"""Base interface for table backends."""

from abc import ABC, abstractmethod
from typing import Any


class StoreError(Exception):
    """A remote store operation failed; carries the store's own message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TableBackend(ABC):
    """Abstract base for the select/insert/update/delete operations of a store."""

    @abstractmethod
    async def select(
        self, table: str, order_by: str, descending: bool = False
    ) -> list[dict[str, Any]]:
        """Return every row of ``table`` ordered by ``order_by``."""

    @abstractmethod
    async def insert(self, table: str, row: dict[str, Any]) -> None:
        """Insert one row."""

    @abstractmethod
    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        """Update the columns in ``values`` of the row with id ``row_id``."""

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> None:
        """Delete the row with id ``row_id``."""

    async def close(self) -> None:
        """Release connections held by the backend."""
