"""Statement builders, one per read the engine performs.

Every builder takes the owner explicitly and always excludes trashed mail, so
an unscoped or trash-leaking query cannot be assembled by accident.
"""

from datetime import datetime

from sqlalchemy import Integer, String, cast, func, or_
from sqlmodel import col, select

from mailflow.models import Email, EmailStatus, KanbanColumnSQL
from mailflow.text_normalizer import relaxed_pattern


def _owned(owner_id: str):
    return select(Email).where(Email.owner_id == owner_id, col(Email.trashed).is_(False))


def local_search_statement(owner_id: str, query: str, cap: int):
    pattern = "(?i)" + relaxed_pattern(query.strip())
    return (
        _owned(owner_id)
        .where(
            or_(
                col(Email.subject).regexp_match(pattern),
                col(Email.sender_name).regexp_match(pattern),
                col(Email.sender_address).regexp_match(pattern),
                func.coalesce(Email.summary, "").regexp_match(pattern),
                col(Email.body_text).regexp_match(pattern),
            )
        )
        .order_by(col(Email.received_at).desc(), col(Email.id))
        .limit(cap)
    )


def emails_by_ids_statement(owner_id: str, ids: list[str]):
    return _owned(owner_id).where(col(Email.id).in_(ids))


def fuzzy_scan_statement(owner_id: str):
    return _owned(owner_id).order_by(col(Email.received_at).desc(), col(Email.id))


def with_embedding_statement(owner_id: str):
    return _owned(owner_id).where(col(Email.embedding).is_not(None))


def without_embedding_statement(owner_id: str, limit: int):
    return (
        _owned(owner_id)
        .where(col(Email.embedding).is_(None))
        .order_by(col(Email.received_at).desc(), col(Email.id))
        .limit(limit)
    )


def count_without_embedding_statement(owner_id: str):
    return (
        select(func.count())
        .select_from(Email)
        .where(
            Email.owner_id == owner_id,
            col(Email.trashed).is_(False),
            col(Email.embedding).is_(None),
        )
    )


def board_statement(owner_id: str):
    return _owned(owner_id).order_by(col(Email.received_at).desc(), col(Email.id))


def snoozed_due_statement(now: datetime):
    # spans every owner; the scheduler is the only caller
    return (
        select(Email)
        .where(
            Email.status == EmailStatus.snoozed,
            col(Email.deferred_until).is_not(None),
            col(Email.deferred_until) <= now,
        )
        .order_by(col(Email.deferred_until))
    )


def columns_statement(owner_id: str):
    return (
        select(KanbanColumnSQL)
        .where(KanbanColumnSQL.owner_id == owner_id)
        .order_by(col(KanbanColumnSQL.order), col(KanbanColumnSQL.id))
    )


def _owned_count(owner_id: str, *clauses):
    return (
        select(func.count())
        .select_from(Email)
        .where(Email.owner_id == owner_id, col(Email.trashed).is_(False), *clauses)
    )


def total_count_statement(owner_id: str):
    return _owned_count(owner_id)


def unread_count_statement(owner_id: str):
    return _owned_count(owner_id, col(Email.is_read).is_(False))


def starred_count_statement(owner_id: str):
    # labels is a JSON array stored as text
    return _owned_count(owner_id, cast(col(Email.labels), String).contains('"STARRED"'))


def status_counts_statement(owner_id: str):
    count = func.count().label("count")
    return (
        select(col(Email.status), count)
        .where(Email.owner_id == owner_id, col(Email.trashed).is_(False))
        .group_by(col(Email.status))
        .order_by(count.desc(), col(Email.status))
    )


def trend_statement(owner_id: str, since: datetime):
    day = func.strftime("%Y-%m-%d", col(Email.received_at)).label("day")
    return (
        select(day, func.count().label("count"))
        .where(
            Email.owner_id == owner_id,
            col(Email.trashed).is_(False),
            col(Email.received_at) >= since,
        )
        .group_by(day)
        .order_by(day)
    )


def top_senders_statement(owner_id: str, limit: int):
    count = func.count().label("count")
    return (
        select(col(Email.sender_name), col(Email.sender_address), count)
        .where(Email.owner_id == owner_id, col(Email.trashed).is_(False))
        .group_by(col(Email.sender_name), col(Email.sender_address))
        .order_by(count.desc(), col(Email.sender_address))
        .limit(limit)
    )


def activity_statement(owner_id: str, since: datetime):
    # %w counts from Sunday = 0
    weekday = cast(func.strftime("%w", col(Email.received_at)), Integer).label("weekday")
    hour = cast(func.strftime("%H", col(Email.received_at)), Integer).label("hour")
    return (
        select(weekday, hour, func.count().label("count"))
        .where(
            Email.owner_id == owner_id,
            col(Email.trashed).is_(False),
            col(Email.received_at) >= since,
        )
        .group_by(weekday, hour)
        .order_by(weekday, hour)
    )
