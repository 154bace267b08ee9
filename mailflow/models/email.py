from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from .status import EmailStatus
from .types import UTCDateTime

TRASH_LABEL = "TRASH"


class Email(SQLModel, table=True):
    # provider ids are only unique within one mailbox
    owner_id: str = Field(primary_key=True)
    id: str = Field(primary_key=True)
    thread_id: Optional[str] = None
    mailbox: str = "INBOX"
    subject: str = ""
    preview: str = ""
    body_text: str = ""
    sender_name: str = ""
    sender_address: str = ""
    received_at: datetime = Field(
        sa_column=Column(UTCDateTime, index=True, nullable=False)
    )
    is_read: bool = False
    labels: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    trashed: bool = Field(default=False, index=True)
    # workflow fields, owned locally and preserved across re-ingestion
    status: str = Field(default=EmailStatus.inbox, index=True)
    deferred_until: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime, index=True)
    )
    summary: Optional[str] = None
    embedding: Optional[list[float]] = Field(
        default=None, sa_column=Column(JSON(none_as_null=True))
    )

    @property
    def sender(self) -> str:
        return self.sender_name or self.sender_address

    def is_trash(self) -> bool:
        return TRASH_LABEL in (self.labels or []) or self.mailbox.upper() == TRASH_LABEL

    def detached_copy(self) -> "Email":
        return Email.model_validate(self.model_dump())


class EmailView(BaseModel):
    """Email as returned to clients, without the embedding vector."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    thread_id: Optional[str] = None
    mailbox: str
    subject: str
    preview: str
    body_text: str = ""
    sender_name: str
    sender_address: str
    received_at: datetime
    is_read: bool
    labels: list[str]
    status: EmailStatus
    deferred_until: Optional[datetime] = None
    summary: Optional[str] = None

    @classmethod
    def from_email(cls, email: Email, include_body: bool = True) -> "EmailView":
        view = cls.model_validate(email)
        if not include_body:
            view.body_text = ""
        return view
