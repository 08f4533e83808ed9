# tests/test_client.py

from __future__ import annotations

import httpx
import pytest

from taskboard.client.http import TaskboardClient, retry_delay
from taskboard.client.models import Identity
from taskboard.core.categories import Category
from taskboard.core.errors import NetworkError

from .fakes import RecordingSleep

OWNER = "owner@example.com"

TASK_JSON = {
    "id": "t1",
    "title": "Write report",
    "description": "",
    "category": "To-Do",
    "userEmail": OWNER,
    "userName": None,
    "userPhoto": None,
    "order": 0,
    "createdAt": "2026-01-01T10:00:00+00:00",
}


def scripted_client(responses: list, sleep: RecordingSleep) -> tuple[TaskboardClient, list]:
    """Client whose transport replays ``responses`` in order.

    Each entry is an httpx.Response or an exception instance to raise.
    """
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    client = TaskboardClient(
        "http://testserver", transport=httpx.MockTransport(handler), sleep=sleep
    )
    return client, seen


def test_retry_delay_grows_then_caps() -> None:
    assert [retry_delay(n) for n in range(5)] == [1.0, 2.0, 3.0, 3.0, 3.0]


async def test_list_retries_server_errors_with_backoff(sleep: RecordingSleep) -> None:
    client, seen = scripted_client(
        [
            httpx.Response(503, json={"success": False, "message": "Internal Server Error"}),
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"success": True, "tasks": [TASK_JSON]}),
        ],
        sleep,
    )

    tasks = await client.list_tasks(OWNER)

    assert [t.id for t in tasks] == ["t1"]
    assert tasks[0].category is Category.TODO
    assert len(seen) == 3
    assert sleep.delays == [1.0, 2.0]
    await client.aclose()


async def test_list_gives_up_after_three_retries(sleep: RecordingSleep) -> None:
    client, seen = scripted_client(
        [
            httpx.Response(500, json={"success": False, "message": "Internal Server Error"})
            for _ in range(4)
        ],
        sleep,
    )

    with pytest.raises(NetworkError) as excinfo:
        await client.list_tasks(OWNER)

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Internal Server Error"
    assert len(seen) == 4
    assert sleep.delays == [1.0, 2.0, 3.0]
    await client.aclose()


async def test_list_does_not_retry_client_errors(sleep: RecordingSleep) -> None:
    client, seen = scripted_client(
        [httpx.Response(404, json={"success": False, "message": "Not Found"})], sleep
    )

    with pytest.raises(NetworkError) as excinfo:
        await client.list_tasks(OWNER)

    assert excinfo.value.status_code == 404
    assert len(seen) == 1
    assert sleep.delays == []
    await client.aclose()


async def test_list_sorts_by_order(sleep: RecordingSleep) -> None:
    later = {**TASK_JSON, "id": "t2", "order": 5}
    client, _ = scripted_client(
        [httpx.Response(200, json={"success": True, "tasks": [later, TASK_JSON]})], sleep
    )

    assert [t.id for t in await client.list_tasks(OWNER)] == ["t1", "t2"]
    await client.aclose()


async def test_writes_are_not_retried(sleep: RecordingSleep) -> None:
    client, seen = scripted_client([httpx.ConnectError("refused")], sleep)

    with pytest.raises(NetworkError) as excinfo:
        await client.update_task("t1", {"order": 1})

    assert excinfo.value.status_code is None
    assert excinfo.value.retryable is True
    assert len(seen) == 1
    assert sleep.delays == []
    await client.aclose()


async def test_non_json_error_body_uses_reason_phrase(sleep: RecordingSleep) -> None:
    client, _ = scripted_client([httpx.Response(502, text="<html>bad gateway</html>")], sleep)

    with pytest.raises(NetworkError) as excinfo:
        await client.delete_task("t1")

    assert excinfo.value.message == "Bad Gateway"
    await client.aclose()


# ---------------------------------------------------------------------------
# Against the in-process app
# ---------------------------------------------------------------------------

async def test_crud_through_client(api: TaskboardClient) -> None:
    created = await api.create_task(
        {"title": "Write report", "category": "To-Do", "userEmail": OWNER, "order": 0}
    )
    await api.update_task(created.id, {"category": "Done"})

    [task] = await api.list_tasks(OWNER)
    assert task.id == created.id
    assert task.category is Category.DONE
    assert task.created_at is not None

    assert await api.update_orders([(created.id, 4), ("missing", 1)]) == 1

    await api.delete_task(created.id)
    with pytest.raises(NetworkError) as excinfo:
        await api.delete_task(created.id)
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Task not found"


async def test_list_for_owner_address_containing_slash(api: TaskboardClient) -> None:
    owner = "ops/team@example.com"
    created = await api.create_task({"title": "Rotate keys", "category": "Done", "userEmail": owner})

    assert [t.id for t in await api.list_tasks(owner)] == [created.id]
    assert await api.list_tasks(OWNER) == []


async def test_register_user_through_client(api: TaskboardClient) -> None:
    identity = Identity.from_provider({"uid": "g-1", "email": "ada@example.com"})

    assert identity.display_name == "Google User"
    assert await api.register_user(identity) is True
    assert await api.register_user(identity) is False


def test_identity_keeps_provider_display_name() -> None:
    identity = Identity.from_provider(
        {
            "uid": "g-2",
            "email": "grace@example.com",
            "displayName": "Grace",
            "photoURL": "https://example.com/g.png",
        }
    )

    assert identity.display_name == "Grace"
    assert identity.photo_url == "https://example.com/g.png"
