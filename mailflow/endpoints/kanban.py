from fastapi import APIRouter

from ..models import MoveRequest, SnoozeRequest, SummarizeRequest
from .common import get_context, unwrap

router = APIRouter(tags=["Kanban"])


@router.get("/accounts/{owner_id}/kanban")
async def get_board(owner_id: str):
    """Cards grouped by status; every status is present, possibly with no cards."""
    context = get_context(owner_id)
    return {"columns": await context.kanban.board(owner_id)}


@router.get("/accounts/{owner_id}/kanban/meta")
async def get_meta(owner_id: str):
    context = get_context(owner_id)
    return {"columns": await context.columns.meta(owner_id)}


@router.post("/accounts/{owner_id}/kanban/move")
async def move(owner_id: str, request: MoveRequest):
    context = get_context(owner_id)
    unwrap(await context.kanban.move(owner_id, request.email_id, request.to_status))
    return {"ok": True}


@router.post("/accounts/{owner_id}/kanban/snooze")
async def snooze(owner_id: str, request: SnoozeRequest):
    context = get_context(owner_id)
    unwrap(await context.kanban.snooze(owner_id, request.email_id, request.until))
    return {"ok": True}


@router.post("/accounts/{owner_id}/kanban/summarize")
async def summarize(owner_id: str, request: SummarizeRequest):
    context = get_context(owner_id)
    summary = unwrap(await context.kanban.summarize(owner_id, request.email_id))
    return {"ok": True, "summary": summary}
