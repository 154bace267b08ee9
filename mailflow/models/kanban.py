from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class KanbanColumnSQL(SQLModel, table=True):
    id: str = Field(primary_key=True)
    owner_id: str = Field(index=True)
    key: str = Field(index=True)
    label: str
    order: int = Field(index=True)
    external_label: Optional[str] = None
    color: Optional[str] = None
    is_default: bool = False


class KanbanColumn(BaseModel):
    id: str
    key: str
    label: str
    order: int
    external_label: Optional[str] = None
    color: Optional[str] = None
    is_default: bool

    @classmethod
    def from_sql_model(cls, column: KanbanColumnSQL) -> "KanbanColumn":
        return cls(
            id=column.id,
            key=column.key,
            label=column.label,
            order=column.order,
            external_label=column.external_label,
            color=column.color,
            is_default=column.is_default,
        )


class ColumnMeta(BaseModel):
    key: str
    label: str


class Card(BaseModel):
    id: str
    sender: str
    subject: str
    summary: Optional[str] = None
    snoozed_until: Optional[datetime] = None


class MoveRequest(BaseModel):
    email_id: str
    to_status: str


class SnoozeRequest(BaseModel):
    email_id: str
    until: str


class SummarizeRequest(BaseModel):
    email_id: str


class CreateColumnRequest(BaseModel):
    label: str
    external_label: Optional[str] = None
    color: Optional[str] = None


class UpdateColumnRequest(BaseModel):
    label: Optional[str] = None
    external_label: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None


class ReorderColumnsRequest(BaseModel):
    column_ids: list[str]
