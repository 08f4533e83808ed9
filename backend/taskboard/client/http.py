"""HTTP client for the task board API using httpx."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx

from taskboard.client.models import BoardTask, Identity
from taskboard.core.config import Settings
from taskboard.core.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 3
RETRY_STEP_SECONDS = 1.0
RETRY_CAP_SECONDS = 3.0


def retry_delay(attempt: int) -> float:
    """Backoff before retry number ``attempt`` (0-based): 1s, 2s, 3s, 3s..."""
    return min(RETRY_STEP_SECONDS * (attempt + 1), RETRY_CAP_SECONDS)


class TaskboardClient:
    """Client for the task board REST API.

    Reads are retried on transport failures and 5xx responses; writes are
    sent once and any failure is raised as ``NetworkError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        retries: int = DEFAULT_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.retries = retries
        self._sleep = sleep
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "TaskboardClient":
        return cls(
            settings.api_url,
            timeout=settings.client_timeout,
            retries=settings.client_retries,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "TaskboardClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- low-level ---

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        _, payload = await self._exchange(method, url, **kwargs)
        return payload

    async def _exchange(self, method: str, url: str, **kwargs) -> tuple[int, dict]:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {url} failed: {e!r}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.is_error:
            message = payload.get("message") or response.reason_phrase
            raise NetworkError(message, status_code=response.status_code)
        return response.status_code, payload

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> dict:
        attempt = 0
        while True:
            try:
                return await self._request(method, url, **kwargs)
            except NetworkError as e:
                if not e.retryable or attempt >= self.retries:
                    raise
                delay = retry_delay(attempt)
                logger.debug(
                    "Retrying %s %s in %.1fs (attempt %d/%d): %s",
                    method, url, delay, attempt + 1, self.retries, e.message,
                )
                attempt += 1
                await self._sleep(delay)

    # --- tasks ---

    async def list_tasks(self, owner_email: str) -> list[BoardTask]:
        payload = await self._request_with_retry("GET", f"/api/tasks/{quote(owner_email, safe='@')}")
        tasks = [BoardTask.model_validate(t) for t in payload.get("tasks", [])]
        return sorted(tasks, key=lambda t: t.order)

    async def create_task(self, fields: dict) -> BoardTask:
        payload = await self._request("POST", "/api/tasks", json=fields)
        return BoardTask.model_validate(payload["task"])

    async def update_task(self, task_id: str, fields: dict) -> None:
        await self._request("PUT", f"/api/tasks/{quote(task_id)}", json=fields)

    async def update_orders(self, orders: list[tuple[str, int]]) -> int:
        payload = await self._request(
            "PUT",
            "/api/tasks/update-orders",
            json={"updates": [{"taskId": task_id, "order": order} for task_id, order in orders]},
        )
        return int(payload.get("modifiedCount", 0))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/api/tasks/{quote(task_id)}")

    # --- users ---

    async def register_user(self, identity: Identity) -> bool:
        """Register the identity; True if the server created a new record."""
        status_code, _ = await self._exchange(
            "POST",
            "/api/users",
            json={
                "uid": identity.uid,
                "email": identity.email,
                "displayName": identity.display_name,
            },
        )
        return status_code == httpx.codes.CREATED
