"""Column service for managing per-user Kanban columns."""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ApiError, Conflict, NotFound
from ..models.column import Column
from ..models.task import Task

logger = logging.getLogger(__name__)

MAX_COLUMNS_PER_USER = 10

_UNSET = object()

# Seeded for a user the first time their columns are fetched
DEFAULT_COLUMNS = [
    {"name": "Todo", "status_value": "todo", "color": "#3B82F6", "position": 0},
    {"name": "In Progress", "status_value": "in-progress", "color": "#F59E0B", "position": 1},
    {"name": "Done", "status_value": "done", "color": "#00D67E", "position": 2},
]


class ColumnLimitReached(ApiError):
    def __init__(self, limit: int):
        super().__init__(400, "COLUMN_LIMIT_REACHED", f"Maximum of {limit} columns per user")


class ColumnNotEmpty(ApiError):
    def __init__(self, task_count: int):
        super().__init__(400, "COLUMN_NOT_EMPTY", f"Move or delete {task_count} tasks first")


class ColumnService:
    """Service for managing a user's Kanban columns."""

    def __init__(self, db: AsyncSession, max_columns: int = MAX_COLUMNS_PER_USER):
        self.db = db
        self.max_columns = max_columns

    async def _count_columns(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Column).where(Column.user_id == user_id)
        )
        return result.scalar_one()

    async def seed_default_columns(self, user_id: str) -> bool:
        """Create the default columns if the user has none. Returns True if seeded."""
        if await self._count_columns(user_id) > 0:
            return False

        for col_data in DEFAULT_COLUMNS:
            self.db.add(Column(user_id=user_id, **col_data))
        await self.db.flush()
        logger.info(f"Seeded default columns for user {user_id}")
        return True

    async def get_all_columns(self, user_id: str) -> list[Column]:
        """Get the user's columns ordered by position, seeding defaults first."""
        await self.seed_default_columns(user_id)
        result = await self.db.execute(
            select(Column)
            .where(Column.user_id == user_id)
            .order_by(Column.position)
        )
        return list(result.scalars().all())

    async def get_column_by_id(self, column_id: str, user_id: str) -> Optional[Column]:
        result = await self.db.execute(
            select(Column).where(Column.id == column_id, Column.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_column_by_status(self, status_value: str, user_id: str) -> Optional[Column]:
        result = await self.db.execute(
            select(Column).where(
                Column.status_value == status_value, Column.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def create_column(
        self,
        user_id: str,
        name: str,
        status_value: str,
        color: Optional[str] = None,
    ) -> Column:
        """Create a new column at the end of the user's board."""
        if await self._count_columns(user_id) >= self.max_columns:
            raise ColumnLimitReached(self.max_columns)

        if await self.get_column_by_status(status_value, user_id):
            raise Conflict("STATUS_VALUE_TAKEN", "Status value already exists")

        result = await self.db.execute(
            select(func.max(Column.position)).where(Column.user_id == user_id)
        )
        max_pos = result.scalar()
        position = 0 if max_pos is None else max_pos + 1

        column = Column(
            user_id=user_id,
            name=name,
            status_value=status_value,
            color=color or None,
            position=position,
        )
        self.db.add(column)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("STATUS_VALUE_TAKEN", "Status value already exists")

        return column

    async def update_column(
        self,
        column_id: str,
        user_id: str,
        name: Optional[str] = None,
        status_value: Optional[str] = None,
        color=_UNSET,
        position: Optional[int] = None,
    ) -> Column:
        """
        Update a column.

        Changing ``status_value`` moves every task carrying the old value
        along with it, inside the same transaction.
        """
        column = await self.get_column_by_id(column_id, user_id)
        if column is None:
            raise NotFound("Column not found")

        if status_value is not None and status_value != column.status_value:
            existing = await self.get_column_by_status(status_value, user_id)
            if existing is not None and existing.id != column_id:
                raise Conflict("STATUS_VALUE_TAKEN", "Status value already exists")

            result = await self.db.execute(
                update(Task)
                .where(Task.user_id == user_id, Task.status == column.status_value)
                .values(status=status_value)
            )
            logger.debug(
                f"Moved {result.rowcount} tasks from '{column.status_value}' to '{status_value}'"
            )
            column.status_value = status_value

        if name is not None:
            column.name = name

        if color is not _UNSET:
            column.color = color or None

        if position is not None:
            column.position = position

        await self.db.flush()
        return column

    async def delete_column(self, column_id: str, user_id: str) -> None:
        """Delete a column that no live task refers to."""
        column = await self.get_column_by_id(column_id, user_id)
        if column is None:
            raise NotFound("Column not found")

        result = await self.db.execute(
            select(func.count())
            .select_from(Task)
            .where(
                Task.user_id == user_id,
                Task.status == column.status_value,
                Task.deleted_at.is_(None),
            )
        )
        task_count = result.scalar_one()
        if task_count > 0:
            raise ColumnNotEmpty(task_count)

        await self.db.delete(column)
        await self.db.flush()

    async def reorder_columns(self, user_id: str, column_ids: list[str]) -> None:
        """Reorder columns by providing the new order of IDs."""
        for i, col_id in enumerate(column_ids):
            await self.db.execute(
                update(Column)
                .where(Column.id == col_id, Column.user_id == user_id)
                .values(position=i)
            )
        await self.db.flush()
