import asyncio
from typing import Optional

from fastapi import APIRouter

from ..models import MailboxStatistics, parse_period
from ..utils import utc_now
from .common import get_context

router = APIRouter(tags=["Statistics"])


@router.get("/accounts/{owner_id}/statistics", response_model=MailboxStatistics)
async def get_statistics(owner_id: str, period: Optional[str] = None):
    """
    Mailbox overview for one owner.

    ``period`` is one of 7d, 30d or 90d and defaults to 30d; it limits the
    trend and activity series, the other figures cover all non-trashed mail.
    """
    context = get_context(owner_id)
    return await asyncio.to_thread(
        context.db.statistics, owner_id, parse_period(period), utc_now()
    )
