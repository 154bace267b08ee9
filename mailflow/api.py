import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from loguru import logger

from .accounts.accounts_loading import load_accounts
from .app_context import AppContext, Application
from .background_tasks import SnoozeScheduler
from .database import MailDB
from .embeddings import create_embedding_provider
from .endpoints import accounts, columns, kanban, search, statistics
from .kanban import KanbanColumns, KanbanStateMachine
from .llms.summary import create_summarizer
from .remote import TestRemoteClient, create_remote_client
from .search import HybridSearchEngine
from .settings import Settings
from .testing import TEST_ACCOUNT, load_test_messages


def create_app(settings: Optional[Settings] = None) -> Application:
    # Override settings if a test configuration is provided.
    if settings is None:
        settings = Settings()
    settings: Settings

    logger.remove()
    logger.add(sys.stdout, level=settings.LOG_LEVEL)
    if settings.log_path is not None:
        logger.add(settings.log_path, level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context: AppContext = Application.get_current_context()
        context.scheduler_task = asyncio.create_task(context.scheduler.run())
        yield

        context.scheduler.stop()
        await context.scheduler_task
        await context.search_engine.wait_for_background()
        for client in context.remote_clients.values():
            await client.aclose()
        await context.embedding_provider.aclose()

    app = FastAPI(lifespan=lifespan, title="Mailflow Search and Workflow API")

    app.include_router(accounts.router)
    app.include_router(search.router)
    app.include_router(kanban.router)
    app.include_router(columns.router)
    app.include_router(statistics.router)

    # Initialize our app context.
    if settings.TEST_BACKEND == "True":
        state_accounts = {TEST_ACCOUNT.name: TEST_ACCOUNT}
        db = MailDB(base_dir=settings.TEST_DB_PATH, settings=settings)
    elif settings.TEST_BACKEND == "False":
        state_accounts = load_accounts(settings.ACCOUNTS_PATH)
        db = MailDB(base_dir=settings.DEFAULT_DB_DIR, settings=settings)
    else:
        raise ValueError("TEST_BACKEND must be 'True' or 'False'")

    remote_clients = {
        account_id: create_remote_client(account, settings)
        for account_id, account in state_accounts.items()
    }

    if settings.TEST_BACKEND == "True" and settings.LOAD_TEST_DATA:
        messages = load_test_messages(settings.PATH_TO_TEST_DATA)
        client: TestRemoteClient = remote_clients[TEST_ACCOUNT.name]
        client.add_messages(messages)
        db.upsert_emails(TEST_ACCOUNT.name, messages)
        logger.info(f"loaded {len(messages)} test messages")

    embedding_provider = create_embedding_provider(settings)
    search_engine = HybridSearchEngine(
        db=db,
        remote_clients=remote_clients,
        embedding_provider=embedding_provider,
        settings=settings.search_settings,
    )
    kanban_machine = KanbanStateMachine(db=db, summarizer=create_summarizer(settings))
    scheduler = SnoozeScheduler(
        db=db, kanban=kanban_machine, interval=settings.snooze_check_interval
    )

    return Application(
        app=app,
        context=AppContext(
            accounts=state_accounts,
            db=db,
            remote_clients=remote_clients,
            embedding_provider=embedding_provider,
            search_engine=search_engine,
            kanban=kanban_machine,
            columns=KanbanColumns(db=db, labels=settings.kanban_columns),
            scheduler=scheduler,
            settings=settings,
        ),
        settings=settings,
    )
