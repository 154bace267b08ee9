import asyncio
import re
from datetime import datetime
from typing import Optional, Union

from loguru import logger
from result import Ok, Result

from mailflow.database import MailDB
from mailflow.errors import (
    EmailNotFound,
    EngineError,
    InvalidInput,
    InvalidTimestamp,
    InvalidTransition,
)
from mailflow.llms.summary import Summarizer
from mailflow.models import Card, Email, EmailStatus
from mailflow.utils import LogLevel, return_error_and_log, utc_now

# date T time with seconds and an explicit offset
_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})", re.IGNORECASE
)


def parse_status(token: str) -> Optional[EmailStatus]:
    try:
        return EmailStatus(token)
    except ValueError:
        return None


def parse_deadline(until: Union[str, datetime]) -> Optional[datetime]:
    """Aware datetime for an RFC3339 string or datetime; None when unparseable or naive."""
    if isinstance(until, str):
        until = until.strip()
        if not _RFC3339.fullmatch(until):
            return None
        try:
            until = datetime.fromisoformat(until.upper())
        except ValueError:
            return None
    if until.tzinfo is None or until.tzinfo.utcoffset(until) is None:
        return None
    return until


class KanbanStateMachine:
    """
    Status transitions for a single email.

    Every state can be reached from every other one; the only rule is that
    ``deferred_until`` is set exactly while the email is snoozed. Each
    transition is one UPDATE of status and deferred_until together, so
    concurrent writers are last-write-wins and never leave a half state.
    """

    def __init__(self, db: MailDB, summarizer: Summarizer):
        self.db = db
        self.summarizer = summarizer

    async def _get(self, owner_id: str, email_id: str) -> Optional[Email]:
        return await asyncio.to_thread(self.db.get_email, owner_id, email_id)

    async def move(
        self, owner_id: str, email_id: str, to_status: str
    ) -> Result[Email, EngineError]:
        status = parse_status(to_status)
        if status is None:
            return return_error_and_log(
                InvalidTransition(f"Unknown status {to_status!r}"), LogLevel.info
            )

        email = await self._get(owner_id, email_id)
        if email is None:
            return return_error_and_log(
                EmailNotFound(f"Email {email_id} not found"), LogLevel.info
            )

        deferred_until = None
        if status == EmailStatus.snoozed:
            deferred_until = email.deferred_until
            if deferred_until is None:
                return return_error_and_log(
                    InvalidTransition("Snoozing needs a wake-up time, use snooze instead"),
                    LogLevel.info,
                )

        updated = await asyncio.to_thread(
            self.db.set_status, owner_id, email_id, status, deferred_until
        )
        if not updated:
            return return_error_and_log(
                EmailNotFound(f"Email {email_id} not found"), LogLevel.info
            )

        logger.info(f"{owner_id}/{email_id}: {email.status} -> {status}")
        email.status = status
        email.deferred_until = deferred_until
        return Ok(email)

    async def snooze(
        self, owner_id: str, email_id: str, until: Union[str, datetime]
    ) -> Result[Email, EngineError]:
        deadline = parse_deadline(until)
        if deadline is None:
            return return_error_and_log(
                InvalidTimestamp(f"{until!s} is not an RFC3339 timestamp with timezone"),
                LogLevel.info,
            )
        if deadline <= utc_now():
            return return_error_and_log(
                InvalidTimestamp(f"{until!s} is not in the future"), LogLevel.info
            )

        email = await self._get(owner_id, email_id)
        if email is None:
            return return_error_and_log(
                EmailNotFound(f"Email {email_id} not found"), LogLevel.info
            )

        updated = await asyncio.to_thread(
            self.db.set_status, owner_id, email_id, EmailStatus.snoozed, deadline
        )
        if not updated:
            return return_error_and_log(
                EmailNotFound(f"Email {email_id} not found"), LogLevel.info
            )

        logger.info(f"{owner_id}/{email_id}: snoozed until {deadline.isoformat()}")
        email.status = EmailStatus.snoozed
        email.deferred_until = deadline
        return Ok(email)

    async def wake(
        self, owner_id: str, email_id: str, now: datetime
    ) -> Result[bool, EngineError]:
        """
        Return a due snooze to the inbox.

        Only applies while the email is still snoozed with a deadline at or
        before ``now``; a newer snooze or move made in the meantime is kept and
        ``Ok(False)`` is returned.
        """
        woken = await asyncio.to_thread(self.db.wake_snoozed, owner_id, email_id, now)
        if woken:
            logger.info(f"{owner_id}/{email_id}: snooze expired -> {EmailStatus.inbox}")
        else:
            logger.debug(f"{owner_id}/{email_id}: no longer due, left as is")
        return Ok(woken)

    async def summarize(
        self, owner_id: str, email_id: str
    ) -> Result[str, EngineError]:
        email = await self._get(owner_id, email_id)
        if email is None:
            return return_error_and_log(
                EmailNotFound(f"Email {email_id} not found"), LogLevel.info
            )

        text = email.body_text.strip() or email.preview.strip()
        if not text:
            return return_error_and_log(
                InvalidInput(f"Email {email_id} has no text to summarize"), LogLevel.info
            )

        summary = await asyncio.to_thread(self.summarizer, text)
        await asyncio.to_thread(self.db.set_summary, owner_id, email_id, summary)
        return Ok(summary)

    async def board(self, owner_id: str) -> dict[str, list[Card]]:
        emails = await asyncio.to_thread(self.db.list_board, owner_id)
        columns: dict[str, list[Card]] = {status.value: [] for status in EmailStatus}
        for email in emails:
            columns.setdefault(email.status, []).append(
                Card(
                    id=email.id,
                    sender=email.sender,
                    subject=email.subject,
                    summary=email.summary,
                    snoozed_until=email.deferred_until,
                )
            )
        return columns
