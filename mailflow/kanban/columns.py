import asyncio
import re
import threading
from typing import Optional
from uuid import uuid4

from loguru import logger
from result import Ok, Result

from mailflow.database import MailDB
from mailflow.errors import (
    ColumnNotDeletable,
    ColumnNotFound,
    EngineError,
    InvalidInput,
)
from mailflow.models import (
    ColumnMeta,
    CreateColumnRequest,
    EmailStatus,
    KanbanColumn,
    KanbanColumnSQL,
    UpdateColumnRequest,
)
from mailflow.utils import LogLevel, return_error_and_log

# (status, default label, provider label it mirrors)
DEFAULT_COLUMNS: list[tuple[EmailStatus, str, Optional[str]]] = [
    (EmailStatus.inbox, "Inbox", "INBOX"),
    (EmailStatus.todo, "To Do", "STARRED"),
    (EmailStatus.in_progress, "In Progress", "IMPORTANT"),
    (EmailStatus.done, "Done", None),
    (EmailStatus.snoozed, "Snoozed", None),
]

CANONICAL_LABELS: dict[str, EmailStatus] = {
    "inbox": EmailStatus.inbox,
    "to do": EmailStatus.todo,
    "todo": EmailStatus.todo,
    "in progress": EmailStatus.in_progress,
    "in_progress": EmailStatus.in_progress,
    "done": EmailStatus.done,
    "snoozed": EmailStatus.snoozed,
}

_NOT_KEY_CHAR = re.compile(r"[^a-z0-9_]")


def canonical_status(label: str) -> Optional[EmailStatus]:
    return CANONICAL_LABELS.get(label.strip().lower())


def custom_key(label: str) -> str:
    slug = _NOT_KEY_CHAR.sub("", label.strip().lower().replace(" ", "_"))
    return f"custom_{slug}"


class KanbanColumns:
    """Per-owner board layout. The five status columns are seeded once and cannot be deleted."""

    def __init__(self, db: MailDB, labels: list[str]):
        self.db = db
        self.labels = labels
        self._seed_lock = threading.Lock()

    def _default_columns(self, owner_id: str) -> list[KanbanColumnSQL]:
        external = {status: label for status, _, label in DEFAULT_COLUMNS}
        ordered: list[tuple[EmailStatus, str]] = []
        for label in self.labels:
            status = canonical_status(label)
            if status is None:
                logger.warning(f"ignoring kanban label {label!r}, it maps to no status")
                continue
            if status not in [s for s, _ in ordered]:
                ordered.append((status, label))
        for status, label, _ in DEFAULT_COLUMNS:
            if status not in [s for s, _ in ordered]:
                ordered.append((status, label))

        return [
            KanbanColumnSQL(
                id=uuid4().hex,
                owner_id=owner_id,
                key=status.value,
                label=label,
                order=order,
                external_label=external[status],
                is_default=True,
            )
            for order, (status, label) in enumerate(ordered)
        ]

    def _load(self, owner_id: str) -> list[KanbanColumnSQL]:
        columns = self.db.list_columns(owner_id)
        if columns:
            return columns
        with self._seed_lock:
            columns = self.db.list_columns(owner_id)
            if not columns:
                logger.info(f"seeding default kanban columns for {owner_id}")
                self.db.add_values(self._default_columns(owner_id))
                columns = self.db.list_columns(owner_id)
        return columns

    def _get(self, owner_id: str, column_id: str) -> Optional[KanbanColumnSQL]:
        self._load(owner_id)
        return self.db.query_first_item(
            KanbanColumnSQL,
            KanbanColumnSQL.owner_id == owner_id,
            KanbanColumnSQL.id == column_id,
        )

    async def list_columns(self, owner_id: str) -> list[KanbanColumn]:
        columns = await asyncio.to_thread(self._load, owner_id)
        return [KanbanColumn.from_sql_model(c) for c in columns]

    async def meta(self, owner_id: str) -> list[ColumnMeta]:
        return [
            ColumnMeta(key=c.key, label=c.label) for c in await self.list_columns(owner_id)
        ]

    async def create_column(
        self, owner_id: str, request: CreateColumnRequest
    ) -> Result[KanbanColumn, EngineError]:
        if not request.label.strip():
            return return_error_and_log(
                InvalidInput("Column label must not be empty"), LogLevel.info
            )

        columns = await asyncio.to_thread(self._load, owner_id)
        taken = {c.key for c in columns}
        key = base = custom_key(request.label)
        suffix = 2
        while key in taken:
            key = f"{base}_{suffix}"
            suffix += 1

        column = KanbanColumnSQL(
            id=uuid4().hex,
            owner_id=owner_id,
            key=key,
            label=request.label.strip(),
            order=max((c.order for c in columns), default=-1) + 1,
            external_label=request.external_label,
            color=request.color,
            is_default=False,
        )
        await asyncio.to_thread(self.db.add_values, [column])
        return Ok(KanbanColumn.from_sql_model(column))

    async def update_column(
        self, owner_id: str, column_id: str, request: UpdateColumnRequest
    ) -> Result[KanbanColumn, EngineError]:
        changes = request.model_dump(exclude_none=True)
        if not changes:
            return return_error_and_log(InvalidInput("No updates provided"), LogLevel.info)

        column = await asyncio.to_thread(self._get, owner_id, column_id)
        if column is None:
            return return_error_and_log(
                ColumnNotFound(f"Column {column_id} not found"), LogLevel.info
            )

        for field, value in changes.items():
            setattr(column, field, value)
        column = await asyncio.to_thread(self.db.merge_value, column)
        return Ok(KanbanColumn.from_sql_model(column))

    async def delete_column(
        self, owner_id: str, column_id: str
    ) -> Result[None, EngineError]:
        column = await asyncio.to_thread(self._get, owner_id, column_id)
        if column is None:
            return return_error_and_log(
                ColumnNotFound(f"Column {column_id} not found"), LogLevel.info
            )
        if column.is_default:
            return return_error_and_log(
                ColumnNotDeletable(f"Column {column.label} is a default column"),
                LogLevel.info,
            )
        await asyncio.to_thread(self.db.delete_value, column)
        return Ok(None)

    async def reorder_columns(
        self, owner_id: str, column_ids: list[str]
    ) -> Result[list[KanbanColumn], EngineError]:
        """Columns are renumbered in the given order; unlisted ones keep their relative order after them."""
        columns = {c.id: c for c in await asyncio.to_thread(self._load, owner_id)}
        unknown = [i for i in column_ids if i not in columns]
        if unknown:
            return return_error_and_log(
                ColumnNotFound(f"Unknown column ids: {', '.join(unknown)}"), LogLevel.info
            )

        listed = list(dict.fromkeys(column_ids))
        rest = [
            c.id
            for c in sorted(columns.values(), key=lambda c: c.order)
            if c.id not in listed
        ]
        for order, column_id in enumerate(listed + rest):
            column = columns[column_id]
            if column.order != order:
                column.order = order
                await asyncio.to_thread(self.db.merge_value, column)

        return Ok(await self.list_columns(owner_id))
