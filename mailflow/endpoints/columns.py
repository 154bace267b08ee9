from fastapi import APIRouter

from ..models import (
    CreateColumnRequest,
    KanbanColumn,
    ReorderColumnsRequest,
    UpdateColumnRequest,
)
from .common import get_context, unwrap

router = APIRouter(tags=["Kanban columns"])


@router.get("/accounts/{owner_id}/kanban/columns", response_model=list[KanbanColumn])
async def list_columns(owner_id: str):
    context = get_context(owner_id)
    return await context.columns.list_columns(owner_id)


@router.post("/accounts/{owner_id}/kanban/columns", response_model=KanbanColumn)
async def create_column(owner_id: str, request: CreateColumnRequest):
    context = get_context(owner_id)
    return unwrap(await context.columns.create_column(owner_id, request))


# registered before the {column_id} routes so "order" is not taken for an id
@router.put("/accounts/{owner_id}/kanban/columns/order", response_model=list[KanbanColumn])
async def reorder_columns(owner_id: str, request: ReorderColumnsRequest):
    context = get_context(owner_id)
    return unwrap(await context.columns.reorder_columns(owner_id, request.column_ids))


@router.patch(
    "/accounts/{owner_id}/kanban/columns/{column_id}", response_model=KanbanColumn
)
async def update_column(owner_id: str, column_id: str, request: UpdateColumnRequest):
    context = get_context(owner_id)
    return unwrap(await context.columns.update_column(owner_id, column_id, request))


@router.delete("/accounts/{owner_id}/kanban/columns/{column_id}")
async def delete_column(owner_id: str, column_id: str):
    context = get_context(owner_id)
    unwrap(await context.columns.delete_column(owner_id, column_id))
    return {"ok": True}
