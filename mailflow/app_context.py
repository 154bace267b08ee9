import asyncio
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI

from mailflow.accounts.accounts_loading import AccountSettings
from mailflow.background_tasks import SnoozeScheduler
from mailflow.database import MailDB
from mailflow.embeddings import EmbeddingProvider
from mailflow.kanban import KanbanColumns, KanbanStateMachine
from mailflow.remote import RemoteClientInterface
from mailflow.search import HybridSearchEngine
from mailflow.settings import Settings


@dataclass
class AppContext:
    accounts: dict[str, AccountSettings]
    db: MailDB
    remote_clients: dict[str, RemoteClientInterface]
    embedding_provider: EmbeddingProvider
    search_engine: HybridSearchEngine
    kanban: KanbanStateMachine
    columns: KanbanColumns
    scheduler: SnoozeScheduler
    settings: Settings
    scheduler_task: Optional[asyncio.Task] = None


class Application:
    current: Optional["Application"] = None

    def __new__(cls, *args, **kwargs):
        cls.current = super().__new__(cls)
        return cls.current

    def __init__(self, app: FastAPI, context: AppContext, settings: Settings):
        self.app: FastAPI = app
        self.context: AppContext = context
        self.settings: Settings = settings

    @classmethod
    def get_current_context(cls) -> AppContext:
        if cls.current is None:
            raise ValueError("Application not instantiated")

        return cls.current.context
