"""
Client sync layer: a local, versioned cache of one owner's board.

Every change to the cache, local or fetched, produces a new immutable
``BoardSnapshot`` with a higher generation. Full refetches are numbered; the
most recently started one wins and a superseded fetch that lands late is
dropped. Writes come in two flavours:

- optimistic (default): change the snapshot first, send the request, refetch
  when it settles, undo the local change and notify if it fails;
- pessimistic: send first, refetch only on success, record the error.

Drag-and-drop moves are always optimistic. Their patches go out as independent
per-task requests with no atomicity across the batch; a partial failure is
reported and healed by the refetch, since the server copy is authoritative.
"""
import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from taskboard.client.http import TaskboardClient
from taskboard.client.models import BoardTask, Identity
from taskboard.client.ordering import Move, MoveResult, apply_move, column
from taskboard.core.categories import CATEGORIES, Category
from taskboard.core.errors import NetworkError

logger = logging.getLogger(__name__)

LOCAL_ID_PREFIX = "local-"
DEFAULT_ERROR_TTL = 3.0
EDITABLE_FIELDS = frozenset({"title", "description", "category", "order"})

LOAD_FAILED = "Failed to load tasks"
SAVE_FAILED = "Failed to save task. Please try again."
DELETE_FAILED = "Failed to delete task. Please try again."
REORDER_FAILED = "Failed to update task order"


class SyncState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class BoardSnapshot:
    generation: int
    tasks: tuple[BoardTask, ...]

    def get(self, task_id: str) -> BoardTask | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def column(self, category: Category) -> list[BoardTask]:
        return column(self.tasks, category)

    def columns(self) -> dict[Category, list[BoardTask]]:
        return {category: self.column(category) for category in CATEGORIES}


class TaskBoard:
    def __init__(
        self,
        client: TaskboardClient,
        owner: Identity,
        *,
        optimistic: bool = True,
        renumber_source: bool = False,
        notify: Callable[[str], None] | None = None,
        error_ttl: float = DEFAULT_ERROR_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.owner = owner
        self.optimistic = optimistic
        self.renumber_source = renumber_source
        self.error_ttl = error_ttl
        self._notify = notify
        self._clock = clock

        self.state = SyncState.IDLE
        self._cache: dict[str, BoardTask] = {}
        self._snapshot = BoardSnapshot(generation=0, tasks=())
        self._fetch_seq = 0
        self._applied_seq = 0
        self._error: tuple[str, float] | None = None

    # ---- views ----

    @property
    def snapshot(self) -> BoardSnapshot:
        return self._snapshot

    def columns(self) -> dict[Category, list[BoardTask]]:
        return self._snapshot.columns()

    @property
    def error(self) -> str | None:
        """Last user-facing failure, cleared once ``error_ttl`` has passed."""
        if self._error is None:
            return None
        message, raised_at = self._error
        if self._clock() - raised_at >= self.error_ttl:
            self._error = None
            return None
        return message

    # ---- cache ----

    def _commit(self, tasks: Iterable[BoardTask]) -> None:
        self._cache = {t.id: t for t in tasks}
        self._snapshot = BoardSnapshot(
            generation=self._snapshot.generation + 1,
            tasks=tuple(self._cache.values()),
        )

    def _put(self, task: BoardTask) -> None:
        cache = dict(self._cache)
        cache[task.id] = task
        self._commit(cache.values())

    def _drop(self, task_id: str) -> None:
        self._commit(t for t in self._cache.values() if t.id != task_id)

    def _undo(self, task_id: str, previous: BoardTask | None) -> None:
        if previous is None:
            self._drop(task_id)
        else:
            self._put(previous)

    def _fail(self, message: str, exc: NetworkError) -> None:
        logger.warning("%s (owner=%s): %s", message, self.owner.email, exc.message)
        self._error = (message, self._clock())
        if self._notify is not None:
            self._notify(message)

    # ---- reads ----

    async def refresh(self) -> BoardSnapshot:
        """Refetch the whole board. Raises NetworkError once retries are spent."""
        self._fetch_seq += 1
        seq = self._fetch_seq
        self.state = SyncState.FETCHING

        try:
            tasks = await self.client.list_tasks(self.owner.email)
        except NetworkError as e:
            if seq == self._fetch_seq:
                self.state = SyncState.ERROR
                self._fail(LOAD_FAILED, e)
            raise

        if seq <= self._applied_seq:
            logger.debug("Dropping superseded fetch seq=%d applied=%d", seq, self._applied_seq)
            return self._snapshot

        self._applied_seq = seq
        self._commit(tasks)
        if seq == self._fetch_seq:
            self.state = SyncState.READY
        return self._snapshot

    async def _settle(self) -> None:
        try:
            await self.refresh()
        except NetworkError:
            # Already recorded by refresh(); the board keeps its local view.
            pass

    # ---- writes ----

    async def _write(
        self,
        send: Callable[[], Awaitable[Any]],
        failure: str,
        *,
        task_id: str | None = None,
        local: BoardTask | None = None,
        remove: bool = False,
    ) -> Any:
        """Run one write in the configured flavour.

        ``local`` replaces ``task_id`` in the snapshot (``remove`` drops it)
        before the request goes out. Without either, or when the board is
        pessimistic, the request goes first. Returns what ``send`` returned,
        or None on failure.
        """
        optimistic = self.optimistic and task_id is not None and (local is not None or remove)
        previous = self._cache.get(task_id) if task_id is not None else None
        if optimistic:
            if remove:
                self._drop(task_id)
            else:
                self._put(local)

        try:
            result = await send()
        except NetworkError as e:
            if optimistic:
                self._undo(task_id, previous)
            self._fail(failure, e)
            return None

        await self._settle()
        return result

    async def create_task(
        self,
        title: str,
        description: str = "",
        category: Category = Category.TODO,
    ) -> BoardTask | None:
        """Append a task to the bottom of its column."""
        category = Category(category)
        order = len(self._snapshot.column(category))
        fields = {
            "title": title,
            "description": description,
            "category": category.value,
            "userEmail": self.owner.email,
            "userName": self.owner.display_name,
            "userPhoto": self.owner.photo_url,
            "order": order,
        }
        placeholder = BoardTask(
            id=f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}",
            title=title,
            description=description,
            category=category,
            order=order,
            user_email=self.owner.email,
            user_name=self.owner.display_name,
            user_photo=self.owner.photo_url,
        )
        created = await self._write(
            lambda: self.client.create_task(fields),
            SAVE_FAILED,
            task_id=placeholder.id,
            local=placeholder,
        )
        if created is not None and placeholder.id in self._cache:
            # The refetch failed; swap the placeholder for the server copy.
            cache = {k: v for k, v in self._cache.items() if k != placeholder.id}
            cache[created.id] = created
            self._commit(cache.values())
        return created

    async def update_task(self, task_id: str, **fields: Any) -> bool:
        """Edit title, description, category or order of one task."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "category" in fields:
            fields["category"] = Category(fields["category"])
        wire = {k: (v.value if isinstance(v, Category) else v) for k, v in fields.items()}
        current = self._cache.get(task_id)
        local = current.model_copy(update=fields) if current is not None else None

        async def send() -> bool:
            await self.client.update_task(task_id, wire)
            return True

        return bool(await self._write(send, SAVE_FAILED, task_id=task_id, local=local))

    async def delete_task(self, task_id: str) -> bool:
        async def send() -> bool:
            await self.client.delete_task(task_id)
            return True

        return bool(await self._write(send, DELETE_FAILED, task_id=task_id, remove=True))

    async def move_task(self, move: Move | None) -> MoveResult | None:
        """Apply a finished drag. ``None`` means the card was dropped outside."""
        if move is None:
            return None

        result = apply_move(self._snapshot.tasks, move, renumber_source=self.renumber_source)
        if not result.patches:
            return result

        self._commit(result.tasks)
        logger.debug(
            "Move %s[%d] -> %s[%d] patches=%d",
            move.source_category, move.source_index,
            move.dest_category, move.dest_index, len(result.patches),
        )

        outcomes = await asyncio.gather(
            *(self.client.update_task(p.task_id, p.as_update()) for p in result.patches),
            return_exceptions=True,
        )
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        for failure in failures:
            if not isinstance(failure, NetworkError):
                raise failure
        if failures:
            self._fail(REORDER_FAILED, failures[0])

        await self._settle()
        return result
