import time
from datetime import datetime, timedelta
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, List, Optional, ParamSpec, TypeVar

from loguru import logger
from result import Err, Ok, Result
from sqlalchemy import update
from sqlmodel import Session, SQLModel, col, create_engine, select

from mailflow.database import queries
from mailflow.database.suggestions import SuggestionIndex
from mailflow.errors import EmbeddingDimensionMismatch, EmailNotFound, EngineError
from mailflow.models import (
    PERIOD_DAYS,
    ActivitySlot,
    Email,
    EmailStatus,
    KanbanColumnSQL,
    MailboxStatistics,
    StatusCount,
    Suggestion,
    TopSender,
    TrendPoint,
)
from mailflow.settings import Settings
from mailflow.utils import return_error_and_log

KanbanColumnSQL  # for create all

P = ParamSpec("P")
R = TypeVar("R")
TABLE_TYPE = TypeVar("TABLE_TYPE", bound=SQLModel)

# fields the provider owns; everything else on an Email is local workflow state
PROVIDER_FIELDS = (
    "thread_id",
    "mailbox",
    "subject",
    "preview",
    "body_text",
    "sender_name",
    "sender_address",
    "received_at",
    "is_read",
    "labels",
)


def timed_db_call(fn: Callable[P, R]) -> Callable[P, R]:
    @wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        result = fn(*args, **kwargs)
        elapsed_ms = (time.perf_counter() - start) * 1000

        args_rendered = [type(arg).__name__ for arg in args[1:]]
        kwargs_rendered = {k: type(v).__name__ for k, v in kwargs.items()}
        logger.debug(
            f"{fn.__qualname__}(args={args_rendered}, kwargs={kwargs_rendered}) took {elapsed_ms:.2f}ms"
        )
        return result

    return wrapper


class MailDB:
    """SQLite store shared by every owner; all email rows are keyed by (owner_id, id)."""

    def __init__(self, base_dir: str, settings: Settings):
        self.settings: Settings = settings

        self.path = Path(base_dir)
        self.path.mkdir(parents=True, exist_ok=True)

        self.db_path = self.path / "mail.db"
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        SQLModel.metadata.create_all(self.engine)

        self._suggestion_indexes: Dict[str, SuggestionIndex] = {}

    @timed_db_call
    def query_first_item(
        self, table: type[TABLE_TYPE], *where_clauses
    ) -> Optional[TABLE_TYPE]:
        with Session(self.engine, expire_on_commit=False) as session:
            statement = select(table)
            for clause in where_clauses:
                statement = statement.where(clause)

            return session.exec(statement=statement).first()

    @timed_db_call
    def add_values(self, values: list[TABLE_TYPE]) -> None:
        with Session(self.engine, expire_on_commit=False) as session:
            session.add_all(values)
            session.commit()

    @timed_db_call
    def merge_value(self, value: TABLE_TYPE) -> TABLE_TYPE:
        with Session(self.engine, expire_on_commit=False) as session:
            merged = session.merge(value)
            session.commit()
            return merged

    @timed_db_call
    def delete_value(self, value: TABLE_TYPE) -> None:
        with Session(self.engine, expire_on_commit=False) as session:
            session.delete(session.merge(value))
            session.commit()

    @timed_db_call
    def upsert_emails(self, owner_id: str, emails: List[Email]) -> int:
        """
        Insert or refresh emails by id.

        Provider fields are overwritten; status, deferred_until and embedding of
        an existing row are kept, and its summary is only replaced by a non-empty
        one. Returns the number of newly inserted rows.
        """
        inserted = 0
        stored: List[Email] = []
        with Session(self.engine, expire_on_commit=False) as session:
            for incoming in {email.id: email for email in emails}.values():
                existing = session.get(Email, {"owner_id": owner_id, "id": incoming.id})
                if existing is None:
                    record = incoming.detached_copy()
                    record.owner_id = owner_id
                    record.status = EmailStatus.inbox
                    record.deferred_until = None
                    record.trashed = record.is_trash()
                    session.add(record)
                    stored.append(record)
                    inserted += 1
                    continue

                for field in PROVIDER_FIELDS:
                    setattr(existing, field, getattr(incoming, field))
                existing.trashed = existing.is_trash()
                if incoming.summary:
                    existing.summary = incoming.summary
                session.add(existing)
                stored.append(existing)
            session.commit()

        index = self._suggestion_index(owner_id)
        if index.last_update:
            index.update(stored)
        return inserted

    @timed_db_call
    def get_email(self, owner_id: str, email_id: str) -> Optional[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            return session.get(Email, {"owner_id": owner_id, "id": email_id})

    @timed_db_call
    def get_emails(self, owner_id: str, email_ids: List[str]) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            statement = queries.emails_by_ids_statement(owner_id, email_ids)
            return list(session.exec(statement).all())

    @timed_db_call
    def search_local(self, owner_id: str, query: str, cap: int) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            statement = queries.local_search_statement(owner_id, query, cap)
            return list(session.exec(statement).all())

    @timed_db_call
    def list_for_fuzzy_scan(self, owner_id: str) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            return list(session.exec(queries.fuzzy_scan_statement(owner_id)).all())

    @timed_db_call
    def list_with_embeddings(self, owner_id: str) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            return list(session.exec(queries.with_embedding_statement(owner_id)).all())

    @timed_db_call
    def list_without_embedding(self, owner_id: str, limit: int) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            statement = queries.without_embedding_statement(owner_id, limit)
            return list(session.exec(statement).all())

    @timed_db_call
    def count_without_embedding(self, owner_id: str) -> int:
        with Session(self.engine, expire_on_commit=False) as session:
            statement = queries.count_without_embedding_statement(owner_id)
            return session.exec(statement).one()

    @timed_db_call
    def list_board(self, owner_id: str) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            return list(session.exec(queries.board_statement(owner_id)).all())

    @timed_db_call
    def list_snoozed_due(self, now: datetime) -> List[Email]:
        with Session(self.engine, expire_on_commit=False) as session:
            return list(session.exec(queries.snoozed_due_statement(now)).all())

    @timed_db_call
    def set_status(
        self,
        owner_id: str,
        email_id: str,
        status: EmailStatus,
        deferred_until: Optional[datetime],
    ) -> bool:
        """Write status and deferred_until together in one UPDATE; False if no row matched."""
        if (status == EmailStatus.snoozed) != (deferred_until is not None):
            raise ValueError(
                f"deferred_until must be set exactly when status is snoozed, got {status} / {deferred_until}"
            )

        statement = (
            update(Email)
            .where(col(Email.owner_id) == owner_id, col(Email.id) == email_id)
            .values(status=status, deferred_until=deferred_until)
        )
        with self.engine.begin() as connection:
            return connection.execute(statement).rowcount > 0

    @timed_db_call
    def wake_snoozed(self, owner_id: str, email_id: str, now: datetime) -> bool:
        """Move a due snooze back to the inbox; False if it was moved or re-snoozed meanwhile."""
        statement = (
            update(Email)
            .where(
                col(Email.owner_id) == owner_id,
                col(Email.id) == email_id,
                col(Email.status) == EmailStatus.snoozed,
                col(Email.deferred_until) <= now,
            )
            .values(status=EmailStatus.inbox, deferred_until=None)
        )
        with self.engine.begin() as connection:
            return connection.execute(statement).rowcount > 0

    @timed_db_call
    def set_summary(self, owner_id: str, email_id: str, summary: str) -> bool:
        statement = (
            update(Email)
            .where(col(Email.owner_id) == owner_id, col(Email.id) == email_id)
            .values(summary=summary)
        )
        with self.engine.begin() as connection:
            return connection.execute(statement).rowcount > 0

    @timed_db_call
    def set_embedding(
        self, owner_id: str, email_id: str, vector: List[float]
    ) -> Result[None, EngineError]:
        with Session(self.engine, expire_on_commit=False) as session:
            reference = session.exec(
                select(Email.embedding)
                .where(
                    Email.owner_id == owner_id,
                    col(Email.id) != email_id,
                    col(Email.embedding).is_not(None),
                )
                .limit(1)
            ).first()
        if reference is not None and len(reference) != len(vector):
            return return_error_and_log(
                EmbeddingDimensionMismatch(
                    f"Embedding for {email_id} has {len(vector)} dimensions, stored vectors have {len(reference)}"
                )
            )

        statement = (
            update(Email)
            .where(col(Email.owner_id) == owner_id, col(Email.id) == email_id)
            .values(embedding=vector)
        )
        with self.engine.begin() as connection:
            if connection.execute(statement).rowcount == 0:
                return Err(EmailNotFound(f"Email {email_id} not found"))
        return Ok(None)

    @timed_db_call
    def statistics(
        self, owner_id: str, period: str, now: datetime, top_senders: int = 10
    ) -> MailboxStatistics:
        """Aggregates over the owner's non-trashed mail; trend and activity cover ``period``."""
        since = now - timedelta(days=PERIOD_DAYS[period])
        with Session(self.engine, expire_on_commit=False) as session:
            status_counts = [
                StatusCount(status=status or EmailStatus.inbox, count=count)
                for status, count in session.exec(queries.status_counts_statement(owner_id))
            ]
            trend = [
                TrendPoint(date=day, count=count)
                for day, count in session.exec(queries.trend_statement(owner_id, since))
            ]
            senders = [
                TopSender(name=name, email=address, count=count)
                for name, address, count in session.exec(
                    queries.top_senders_statement(owner_id, top_senders)
                )
            ]
            activity = [
                ActivitySlot(day_of_week=weekday, hour=hour, count=count)
                for weekday, hour, count in session.exec(
                    queries.activity_statement(owner_id, since)
                )
            ]
            return MailboxStatistics(
                status_counts=status_counts,
                email_trend=trend,
                top_senders=senders,
                daily_activity=activity,
                total_emails=session.exec(queries.total_count_statement(owner_id)).one(),
                unread_count=session.exec(queries.unread_count_statement(owner_id)).one(),
                starred_count=session.exec(queries.starred_count_statement(owner_id)).one(),
                period=period,
            )

    @timed_db_call
    def list_columns(self, owner_id: str) -> List[KanbanColumnSQL]:
        with Session(self.engine, expire_on_commit=False) as session:
            return list(session.exec(queries.columns_statement(owner_id)).all())

    def _suggestion_index(self, owner_id: str) -> SuggestionIndex:
        index = self._suggestion_indexes.get(owner_id)
        if index is None:
            index = SuggestionIndex()
            self._suggestion_indexes[owner_id] = index
        return index

    @timed_db_call
    def _refresh_suggestions(self, owner_id: str) -> None:
        index = self._suggestion_index(owner_id)
        index.clear()
        index.update(self.list_for_fuzzy_scan(owner_id))

    def suggestions(
        self, owner_id: str, query: str, force_update: bool = False
    ) -> List[Suggestion]:
        index = self._suggestion_index(owner_id)
        if force_update or index.last_update == 0:
            self._refresh_suggestions(owner_id)
        return index.search(query)
