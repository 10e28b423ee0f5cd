"""Task/Kanban API routes."""

from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFound, ValidationFailed, success_response
from ..models.database import get_db
from ..services.column import ColumnService
from ..services.task import TaskService
from ..services.validation import InvalidInput, sanitize_description, sanitize_title
from .auth import get_current_user_id
from .columns import get_column_service


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskSchema(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    status: str
    position: int
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = None


class CreateTaskRequest(BaseModel):
    title: Any = None
    description: Any = None
    status: Optional[str] = None


class UpdateTaskRequest(BaseModel):
    title: Any = None
    description: Any = None
    status: Optional[str] = None
    position: Optional[int] = None


class ReorderTasksRequest(BaseModel):
    task_ids: list[str]
    status: Optional[str] = None


def task_to_schema(task) -> dict:
    """Convert a Task model to its JSON representation."""
    return TaskSchema(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        status=task.status,
        position=task.position,
        created_at=task.created_at.isoformat(),
        updated_at=task.updated_at.isoformat(),
        deleted_at=task.deleted_at.isoformat() if task.deleted_at else None,
    ).model_dump()


def _clean(sanitizer: Callable[[Any], Any], value: Any) -> Any:
    try:
        return sanitizer(value)
    except InvalidInput as e:
        raise ValidationFailed(str(e))


def get_task_service(
    db: AsyncSession = Depends(get_db),
    columns: ColumnService = Depends(get_column_service),
) -> TaskService:
    return TaskService(db, columns=columns)


@router.get("")
async def get_tasks(
    status: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Get the user's live tasks, optionally filtered by status."""
    tasks = await task_service.get_tasks(user_id, status=status)
    return success_response({"tasks": [task_to_schema(t) for t in tasks]})


@router.post("", status_code=201)
async def create_task(
    request: CreateTaskRequest,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Create a new task. Without a status it lands in the first column."""
    task = await task_service.create_task(
        user_id,
        title=_clean(sanitize_title, request.title),
        description=_clean(sanitize_description, request.description),
        status=request.status,
    )
    return success_response({"task": task_to_schema(task)})


@router.post("/reorder")
async def reorder_tasks(
    request: ReorderTasksRequest,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Rewrite task positions (and optionally status) in one transaction."""
    await task_service.reorder_tasks(user_id, request.task_ids, status=request.status)
    return success_response(None)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Get a single task by ID."""
    task = await task_service.get_task_by_id(task_id, user_id)
    if task is None:
        raise NotFound("Task not found")
    return success_response({"task": task_to_schema(task)})


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Update a task."""
    changes = {}
    if request.title is not None:
        changes["title"] = _clean(sanitize_title, request.title)
    if "description" in request.model_fields_set:
        changes["description"] = _clean(sanitize_description, request.description)

    task = await task_service.update_task(
        task_id,
        user_id,
        status=request.status,
        position=request.position,
        **changes,
    )
    return success_response({"task": task_to_schema(task)})


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Soft-delete a task. It can be restored until the purge sweep removes it."""
    deleted_at = await task_service.soft_delete_task(task_id, user_id)
    return success_response({"deleted_at": deleted_at.isoformat()})


@router.post("/{task_id}/restore")
async def restore_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    task_service: TaskService = Depends(get_task_service),
):
    """Undo a soft delete."""
    task = await task_service.restore_task(task_id, user_id)
    return success_response({"task": task_to_schema(task)})
