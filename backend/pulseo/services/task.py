"""Task service for Kanban board operations."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFound, ValidationFailed
from ..models.database import utcnow
from ..models.task import Task
from .column import ColumnService

logger = logging.getLogger(__name__)

_UNSET = object()


class TaskService:
    """Service for managing a user's tasks."""

    def __init__(self, db: AsyncSession, columns: Optional[ColumnService] = None):
        self.db = db
        self.columns = columns or ColumnService(db)

    async def get_tasks(self, user_id: str, status: Optional[str] = None) -> list[Task]:
        """Get live (not soft-deleted) tasks ordered by position."""
        query = select(Task).where(Task.user_id == user_id, Task.deleted_at.is_(None))

        if status:
            query = query.where(Task.status == status)

        query = query.order_by(Task.position, Task.created_at)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_task_by_id(self, task_id: str, user_id: str) -> Optional[Task]:
        """Get a single task by ID, soft-deleted or not."""
        result = await self.db.execute(
            select(Task).where(Task.id == task_id, Task.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def _resolve_status(self, user_id: str, status: Optional[str]) -> str:
        columns = await self.columns.get_all_columns(user_id)
        if not status:
            if not columns:
                raise ValidationFailed("No columns exist")
            return columns[0].status_value
        if not any(c.status_value == status for c in columns):
            raise ValidationFailed("Status does not match any column")
        return status

    async def create_task(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Task:
        """Create a task at the end of its status group."""
        status = await self._resolve_status(user_id, status)

        result = await self.db.execute(
            select(func.max(Task.position)).where(
                Task.user_id == user_id,
                Task.status == status,
                Task.deleted_at.is_(None),
            )
        )
        max_pos = result.scalar()

        task = Task(
            user_id=user_id,
            title=title,
            description=description,
            status=status,
            position=0 if max_pos is None else max_pos + 1,
        )
        self.db.add(task)
        await self.db.flush()
        return task

    async def update_task(
        self,
        task_id: str,
        user_id: str,
        title: Optional[str] = None,
        description=_UNSET,
        status: Optional[str] = None,
        position: Optional[int] = None,
    ) -> Task:
        """Update a live task. ``description`` may be set to None to clear it."""
        task = await self.get_task_by_id(task_id, user_id)
        if task is None or task.deleted_at is not None:
            raise NotFound("Task not found")

        if status is not None:
            if await self.columns.get_column_by_status(status, user_id) is None:
                raise ValidationFailed("Status does not match any column")
            task.status = status

        if title is not None:
            task.title = title
        if description is not _UNSET:
            task.description = description
        if position is not None:
            task.position = position

        task.updated_at = utcnow()
        await self.db.flush()
        return task

    async def soft_delete_task(self, task_id: str, user_id: str) -> datetime:
        """Mark a task deleted. It stays restorable until the purge sweep runs."""
        task = await self.get_task_by_id(task_id, user_id)
        if task is None or task.deleted_at is not None:
            raise NotFound("Task not found")

        task.deleted_at = utcnow()
        await self.db.flush()
        return task.deleted_at

    async def restore_task(self, task_id: str, user_id: str) -> Task:
        task = await self.get_task_by_id(task_id, user_id)
        if task is None or task.deleted_at is None:
            raise NotFound("Task not found or already permanently deleted")

        task.deleted_at = None
        task.updated_at = utcnow()
        await self.db.flush()
        return task

    async def reorder_tasks(
        self, user_id: str, task_ids: list[str], status: Optional[str] = None
    ) -> None:
        """
        Rewrite positions to match ``task_ids``; optionally move them all to
        ``status`` as well. Runs inside the request transaction.
        """
        values = {}
        if status:
            if await self.columns.get_column_by_status(status, user_id) is None:
                raise ValidationFailed("Status does not match any column")
            values["status"] = status

        for index, task_id in enumerate(task_ids):
            await self.db.execute(
                update(Task)
                .where(Task.id == task_id, Task.user_id == user_id)
                .values(position=index, **values)
            )
        await self.db.flush()

    async def purge_deleted_tasks(self, grace_seconds: int) -> int:
        """Permanently delete tasks soft-deleted more than ``grace_seconds`` ago."""
        cutoff = utcnow() - timedelta(seconds=grace_seconds)
        result = await self.db.execute(
            delete(Task).where(Task.deleted_at.is_not(None), Task.deleted_at < cutoff)
        )
        return result.rowcount
