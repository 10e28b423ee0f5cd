"""Columns API routes for per-user Kanban columns."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFound, ValidationFailed, success_response
from ..models.database import get_db
from ..services.column import ColumnService
from ..services.validation import InvalidInput, sanitize_column_name, sanitize_status_value
from .auth import get_current_user_id


router = APIRouter(prefix="/api/columns", tags=["columns"])


class ColumnSchema(BaseModel):
    id: str
    user_id: str
    name: str
    status_value: str
    position: int
    color: Optional[str] = None
    created_at: str


class CreateColumnRequest(BaseModel):
    name: Any = None
    status_value: Any = None
    color: Optional[str] = None


class UpdateColumnRequest(BaseModel):
    name: Any = None
    status_value: Any = None
    color: Optional[str] = None
    position: Optional[int] = None


class ReorderColumnsRequest(BaseModel):
    column_ids: list[str]


def column_to_schema(column) -> dict:
    """Convert a Column model to its JSON representation."""
    return ColumnSchema(
        id=column.id,
        user_id=column.user_id,
        name=column.name,
        status_value=column.status_value,
        position=column.position,
        color=column.color,
        created_at=column.created_at.isoformat(),
    ).model_dump()


def get_column_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ColumnService:
    config = request.app.state.config
    return ColumnService(db, max_columns=config.tasks.max_columns_per_user)


def _validated(name: Any, status_value: Any, partial: bool) -> dict:
    values = {}
    try:
        if not partial or name is not None:
            values["name"] = sanitize_column_name(name)
        if not partial or status_value is not None:
            values["status_value"] = sanitize_status_value(status_value)
    except InvalidInput as e:
        raise ValidationFailed(str(e))
    return values


@router.get("")
async def get_columns(
    user_id: str = Depends(get_current_user_id),
    column_service: ColumnService = Depends(get_column_service),
):
    """Get all columns ordered by position, creating the defaults for new users."""
    columns = await column_service.get_all_columns(user_id)
    return success_response({"columns": [column_to_schema(c) for c in columns]})


@router.post("", status_code=201)
async def create_column(
    request: CreateColumnRequest,
    user_id: str = Depends(get_current_user_id),
    column_service: ColumnService = Depends(get_column_service),
):
    """Create a new column."""
    values = _validated(request.name, request.status_value, partial=False)
    column = await column_service.create_column(user_id, color=request.color, **values)
    return success_response({"column": column_to_schema(column)})


@router.post("/reorder")
async def reorder_columns(
    request: ReorderColumnsRequest,
    user_id: str = Depends(get_current_user_id),
    column_service: ColumnService = Depends(get_column_service),
):
    """Reorder columns by providing the new order of IDs."""
    await column_service.reorder_columns(user_id, request.column_ids)
    return success_response(None)


@router.get("/{column_id}")
async def get_column(
    column_id: str,
    user_id: str = Depends(get_current_user_id),
    column_service: ColumnService = Depends(get_column_service),
):
    column = await column_service.get_column_by_id(column_id, user_id)
    if column is None:
        raise NotFound("Column not found")
    return success_response({"column": column_to_schema(column)})


@router.put("/{column_id}")
async def update_column(
    column_id: str,
    request: UpdateColumnRequest,
    user_id: str = Depends(get_current_user_id),
    column_service: ColumnService = Depends(get_column_service),
):
    """Update a column. A new status value is carried over to its tasks."""
    values = _validated(request.name, request.status_value, partial=True)
    # An explicit null clears the color; leaving the field out keeps it
    if "color" in request.model_fields_set:
        values["color"] = request.color
    column = await column_service.update_column(
        column_id,
        user_id,
        position=request.position,
        **values,
    )
    return success_response({"column": column_to_schema(column)})


@router.delete("/{column_id}")
async def delete_column(
    column_id: str,
    user_id: str = Depends(get_current_user_id),
    column_service: ColumnService = Depends(get_column_service),
):
    """Delete a column that has no tasks left in it."""
    await column_service.delete_column(column_id, user_id)
    return success_response(None)
