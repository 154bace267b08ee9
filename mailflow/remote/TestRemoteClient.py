import asyncio
from typing import Iterable, Optional

from loguru import logger

from mailflow.accounts.accounts_loading import AccountSettings
from mailflow.errors import UpstreamError
from mailflow.models import Email, RemotePage, RemoteStub
from mailflow.remote.RemoteClientInterface import RemoteClientInterface
from mailflow.settings import RemoteSettings, Settings


class TestRemoteClient(RemoteClientInterface):
    """
    In-memory provider used by the test backend.

    Matching is a plain case-insensitive substring test. Failures and latency
    can be injected through ``search_error``, ``failing_ids`` and ``delay``, and
    ``max_in_flight`` records the highest number of concurrent fetches seen.
    """

    __test__ = False

    def __init__(
        self,
        account: AccountSettings,
        settings: Settings,
    ):
        self.account = account
        self.settings: RemoteSettings = settings.remote_settings

        self.messages: dict[str, Email] = {}
        self.search_error: Optional[Exception] = None
        self.failing_ids: set[str] = set()
        self.delay: float = 0.0
        self.approx_total: Optional[int] = None

        self.search_calls = 0
        self.fetch_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    def add_messages(self, messages: Iterable[Email]) -> None:
        for message in messages:
            self.messages[message.id] = message

    def _matches(self, message: Email, needle: str) -> bool:
        haystack = " ".join(
            (
                message.subject,
                message.body_text,
                message.sender_name,
                message.sender_address,
            )
        )
        return needle in haystack.lower()

    async def search(self, query: str, page_token: Optional[str] = None) -> RemotePage:
        self.search_calls += 1
        if self.search_error is not None:
            raise self.search_error

        needle = query.strip().lower()
        hits = sorted(
            (
                m
                for m in self.messages.values()
                if not m.is_trash() and self._matches(m, needle)
            ),
            key=lambda m: (-m.received_at.timestamp(), m.id),
        )

        start = int(page_token) if page_token else 0
        end = start + self.settings.page_size
        page = hits[start:end]
        return RemotePage(
            stubs=[RemoteStub(id=m.id, thread_id=m.thread_id) for m in page],
            next_page_token=str(end) if end < len(hits) else None,
            approx_total=self.approx_total
            if self.approx_total is not None
            else len(hits),
        )

    async def fetch_email(self, email_id: str) -> Email:
        self.fetch_calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if email_id in self.failing_ids:
                raise UpstreamError(f"TestClient: injected failure for {email_id}")
            message = self.messages.get(email_id)
            if message is None:
                raise UpstreamError(f"TestClient: unknown message {email_id}")
            logger.debug(f"TestClient: fetched {email_id}")
            return message.detached_copy()
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        pass
