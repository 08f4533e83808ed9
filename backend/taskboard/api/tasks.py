"""Task API endpoints — board listing, CRUD and drag-and-drop reordering."""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.database import get_db
from taskboard.core.errors import ValidationError
from taskboard.services.task_service import (
    list_tasks,
    create_task,
    update_task,
    update_orders,
    delete_task,
    MISSING_FIELDS_MESSAGE,
)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

# Required fields are optional here so a missing one is answered with the
# envelope's 400 by the service instead of a schema error.

class CreateTaskRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    user_email: str | None = Field(None, alias="userEmail")
    user_name: str | None = Field(None, alias="userName")
    user_photo: str | None = Field(None, alias="userPhoto")
    order: int | None = None


class UpdateTaskRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    order: int | None = None


class OrderUpdate(BaseModel):
    task_id: str = Field(alias="taskId")
    order: int


class UpdateOrdersRequest(BaseModel):
    updates: list[OrderUpdate] | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

# "/" is legal in an address local part and arrives decoded, hence :path.
@router.get("/{email:path}")
async def api_list_tasks(email: str, db: AsyncSession = Depends(get_db)):
    """List every task on an owner's board, sorted by order."""
    tasks = await list_tasks(db, email)
    return {"success": True, "tasks": tasks}


@router.post("", status_code=status.HTTP_201_CREATED)
async def api_create_task(body: CreateTaskRequest, db: AsyncSession = Depends(get_db)):
    """Create a new task."""
    task = await create_task(
        db,
        title=body.title,
        category=body.category,
        owner_email=body.user_email,
        description=body.description,
        owner_name=body.user_name,
        owner_photo=body.user_photo,
        order=body.order,
    )
    return {"success": True, "task": task}


# Registered before "/{task_id}" so the literal path is never taken for an id.
@router.put("/update-orders")
async def api_update_orders(body: UpdateOrdersRequest, db: AsyncSession = Depends(get_db)):
    """Set the order of several tasks at once."""
    if body.updates is None:
        raise ValidationError(MISSING_FIELDS_MESSAGE)
    modified = await update_orders(db, [(u.task_id, u.order) for u in body.updates])
    return {
        "success": True,
        "message": "Task orders updated successfully",
        "modifiedCount": modified,
    }


@router.put("/{task_id}")
async def api_update_task(
    task_id: str,
    body: UpdateTaskRequest,
    db: AsyncSession = Depends(get_db),
):
    """Update the supplied fields of a task."""
    await update_task(db, task_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "Task updated successfully"}


@router.delete("/{task_id}")
async def api_delete_task(task_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a task."""
    deleted = await delete_task(db, task_id)
    return {"success": True, "message": "Task deleted successfully", "deletedCount": deleted}
