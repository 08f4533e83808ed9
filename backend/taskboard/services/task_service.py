"""Task service — per-owner CRUD and bulk reordering."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from taskboard.core.categories import Category, TITLE_MAX_LENGTH, DESCRIPTION_MAX_LENGTH
from taskboard.core.errors import ValidationError, NotFoundError
from taskboard.models.task import Task

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields"

UPDATABLE_FIELDS = ("title", "description", "category", "order")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_title(title: str) -> str:
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def _check_description(description: str | None) -> str:
    description = description or ""
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters"
        )
    return description


def _check_category(category: str) -> str:
    try:
        return Category(category).value
    except ValueError:
        raise ValidationError(
            f"Invalid category. Use: {', '.join(c.value for c in Category)}"
        )


def _check_order(order: int) -> int:
    if order < 0:
        raise ValidationError("Order must be a non-negative integer")
    return order


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

async def list_tasks(db: AsyncSession, owner_email: str) -> list[dict]:
    """List an owner's tasks across all categories, ascending by order."""
    result = await db.execute(
        select(Task)
        .where(Task.user_email == owner_email)
        .order_by(Task.order.asc(), Task.created_at.asc())
    )
    return [_serialize_task(t) for t in result.scalars().all()]


async def create_task(
    db: AsyncSession,
    title: str | None,
    category: str | None,
    owner_email: str | None,
    description: str | None = None,
    owner_name: str | None = None,
    owner_photo: str | None = None,
    order: int | None = None,
) -> dict:
    """Create a task. Title, category and owner email are required."""
    if not title or not category or not owner_email:
        raise ValidationError(MISSING_FIELDS_MESSAGE)

    task = Task(
        title=_check_title(title),
        description=_check_description(description),
        category=_check_category(category),
        user_email=owner_email,
        user_name=owner_name,
        user_photo=owner_photo,
        order=_check_order(order or 0),
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)

    logger.info("Task created id=%s owner=%s category=%s", task.id, owner_email, task.category)
    return _serialize_task(task)


async def update_task(db: AsyncSession, task_id: str, updates: dict) -> None:
    """Apply the supplied fields to a task.

    Raises NotFoundError when the task does not exist or when none of the
    supplied values differs from what is stored.
    """
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")

    changes: dict = {}
    for key, value in updates.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key == "title":
            if not value:
                raise ValidationError("Title cannot be empty")
            value = _check_title(value)
        elif key == "description":
            value = _check_description(value)
        elif key == "category":
            if not value:
                raise ValidationError("Category cannot be empty")
            value = _check_category(value)
        elif key == "order":
            if value is None:
                raise ValidationError("Order cannot be empty")
            value = _check_order(value)
        if getattr(task, key) != value:
            changes[key] = value

    if not changes:
        raise NotFoundError("Task not modified")

    for key, value in changes.items():
        setattr(task, key, value)
    await db.commit()

    logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))


async def update_orders(db: AsyncSession, updates: list[tuple[str, int]]) -> int:
    """Set the order of many tasks in one transaction.

    Unknown ids are skipped. Returns the number of rows whose order changed.
    """
    for _, order in updates:
        _check_order(order)

    modified = 0
    try:
        for task_id, order in updates:
            result = await db.execute(
                update(Task)
                .where(Task.id == task_id, Task.order != order)
                .values(order=order)
            )
            modified += result.rowcount or 0
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    logger.debug("Bulk order update requested=%d modified=%d", len(updates), modified)
    return modified


async def delete_task(db: AsyncSession, task_id: str) -> int:
    """Delete a task. Returns the deleted count (always 1)."""
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")

    await db.delete(task)
    await db.commit()

    logger.info("Task deleted id=%s owner=%s", task_id, task.user_email)
    return 1


# ---------------------------------------------------------------------------
# Serializer
# ---------------------------------------------------------------------------

def _serialize_task(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "category": task.category,
        "userEmail": task.user_email,
        "userName": task.user_name,
        "userPhoto": task.user_photo,
        "order": task.order,
        "createdAt": task.created_at.isoformat() if task.created_at else None,
    }
