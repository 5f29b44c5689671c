"""Hosted table backend via the PostgREST API.

Talks to ``<url>/rest/v1/<table>`` with the project's anon key, the way
the browser client of a hosted database does.
"""

import logging
from typing import Any

import httpx

from ecocampus.store.base import StoreError, TableBackend

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Extract PostgREST's ``message`` from an error response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


class RestTableBackend(TableBackend):
    """Executes table operations over HTTP against a PostgREST endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Prefer": "return=minimal",
            },
            timeout=timeout,
            transport=transport,
        )

    async def select(
        self, table: str, order_by: str, descending: bool = False
    ) -> list[dict[str, Any]]:
        direction = "desc" if descending else "asc"
        resp = await self._request(
            "GET", f"/{table}", params={"select": "*", "order": f"{order_by}.{direction}"}
        )
        return list(resp.json())

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        await self._request("POST", f"/{table}", json=row)

    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        await self._request("PATCH", f"/{table}", params={"id": f"eq.{row_id}"}, json=values)

    async def delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", f"/{table}", params={"id": f"eq.{row_id}"})

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Store request failed: %s %s: %s", method, path, e)
            raise StoreError(str(e) or type(e).__name__) from e
        if resp.is_error:
            message = _error_message(resp)
            logger.warning("Store error: %s %s (HTTP %d) %s", method, path, resp.status_code, message)
            raise StoreError(message, status_code=resp.status_code)
        return resp
