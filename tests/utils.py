import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mailflow.api import Application, create_app
from mailflow.database import MailDB
from mailflow.embeddings import LocalHashingEmbeddingProvider
from mailflow.models import Email
from mailflow.remote import TestRemoteClient
from mailflow.search import HybridSearchEngine
from mailflow.settings import RemoteSettings, SearchSettings, Settings
from mailflow.testing import TEST_ACCOUNT

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
OWNER = TEST_ACCOUNT.name


def make_settings(db_path: str, load_test_data: bool = True) -> Settings:
    return Settings(
        TEST_BACKEND="True",
        TEST_DB_PATH=db_path,
        LOAD_TEST_DATA=load_test_data,
        LOG_LEVEL="DEBUG",
        llm_provider="extractive",
        embedding_provider="local",
        snooze_check_interval=3600,
        remote_settings=RemoteSettings(retry_delay=0.01),
        search_settings=SearchSettings(),
    )


def make_email(
    email_id: str,
    subject: str = "",
    minutes: int = 0,
    body_text: str = "",
    sender_name: str = "Test Sender",
    sender_address: str = "sender@example.com",
    labels: Optional[list[str]] = None,
    summary: Optional[str] = None,
) -> Email:
    """Email received ``minutes`` after BASE_TIME."""
    return Email(
        id=email_id,
        owner_id=OWNER,
        subject=subject,
        body_text=body_text,
        preview=body_text[:80],
        sender_name=sender_name,
        sender_address=sender_address,
        received_at=BASE_TIME + timedelta(minutes=minutes),
        labels=labels if labels is not None else ["INBOX"],
        summary=summary,
    )


def get_test_client(test_app) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=test_app.app), base_url="http://test"
    )


def remote_client(test_app: Application) -> TestRemoteClient:
    return test_app.context.remote_clients[OWNER]


def save_emails(db: MailDB, emails: list[Email]) -> None:
    db.upsert_emails(OWNER, emails)


@pytest.fixture(scope="function")
def temp_test_dir(tmp_path_factory) -> str:
    d = tmp_path_factory.mktemp("test_db")
    os.environ["TEST_DB_PATH"] = str(d)
    return str(d)


@pytest_asyncio.fixture(scope="function")
async def test_app(temp_test_dir: str) -> Application:
    app = create_app(settings=make_settings(temp_test_dir, load_test_data=True))

    # Start the snooze scheduler
    async with app.app.router.lifespan_context(app.app):
        yield app


@pytest_asyncio.fixture(scope="function")
async def empty_app(temp_test_dir: str) -> Application:
    app = create_app(settings=make_settings(temp_test_dir, load_test_data=False))

    async with app.app.router.lifespan_context(app.app):
        yield app


class EngineParts:
    def __init__(self, db_path: str):
        self.settings = make_settings(db_path, load_test_data=False)
        self.db = MailDB(base_dir=db_path, settings=self.settings)
        self.client = TestRemoteClient(account=TEST_ACCOUNT, settings=self.settings)
        self.embedding_provider = LocalHashingEmbeddingProvider()
        self.engine = HybridSearchEngine(
            db=self.db,
            remote_clients={OWNER: self.client},
            embedding_provider=self.embedding_provider,
            settings=self.settings.search_settings,
        )


@pytest.fixture(scope="function")
def parts(temp_test_dir: str) -> EngineParts:
    return EngineParts(temp_test_dir)


@pytest_asyncio.fixture(scope="function")
async def search_parts(parts: EngineParts) -> EngineParts:
    yield parts
    # let detached index syncs finish before the loop closes
    await parts.engine.wait_for_background()
