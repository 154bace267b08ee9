from typing import Literal, Optional

from pydantic import BaseModel

StatisticsPeriod = Literal["7d", "30d", "90d"]

PERIOD_DAYS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "30d"


class StatusCount(BaseModel):
    status: str
    count: int


class TrendPoint(BaseModel):
    date: str  # YYYY-MM-DD, UTC
    count: int


class TopSender(BaseModel):
    name: str
    email: str
    count: int


class ActivitySlot(BaseModel):
    day_of_week: int  # 0 = Sunday
    hour: int
    count: int


class MailboxStatistics(BaseModel):
    status_counts: list[StatusCount]
    email_trend: list[TrendPoint]
    top_senders: list[TopSender]
    daily_activity: list[ActivitySlot]
    total_emails: int
    unread_count: int
    starred_count: int
    period: StatisticsPeriod


def parse_period(raw: Optional[str]) -> StatisticsPeriod:
    """Anything other than a known period falls back to the default."""
    return raw if raw in PERIOD_DAYS else DEFAULT_PERIOD
