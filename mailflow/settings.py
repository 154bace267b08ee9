from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings

DEFAULT_TEST_DATA = str(Path(__file__).resolve().parent.parent / "test_data" / "emails.json")


class RemoteSettings(BaseModel):
    max_retries: int = 3
    retry_delay: float = 1.0  # delay in seconds
    page_size: int = 25
    request_timeout: float = 30.0


class SearchSettings(BaseModel):
    enrich_concurrency: int = 10
    local_result_cap: int = 50
    fuzzy_threshold: int = 3
    fuzzy_min_query_length: int = 3
    request_timeout: float = 20.0
    index_sync_timeout: float = 60.0
    semantic_default_limit: int = 10
    semantic_max_limit: int = 50
    embedding_default_batch: int = 50
    embedding_max_batch: int = 100


class Settings(BaseSettings):
    TEST_BACKEND: str = "False"
    PATH_TO_TEST_DATA: str = DEFAULT_TEST_DATA
    LOG_LEVEL: str = "DEBUG"
    log_path: Optional[str] = None
    TEST_DB_PATH: str = "test_db"
    DEFAULT_DB_DIR: str = "db"
    ACCOUNTS_PATH: str = "secrets/accounts.yaml"
    LOAD_TEST_DATA: bool = True
    llm_provider: Literal["ollama", "gemini", "extractive"] = "ollama"
    embedding_provider: Literal["openai", "gemini", "local"] = "openai"
    embedding_api_key: Optional[str] = None
    embedding_model: Optional[str] = None
    embedding_dimension: Optional[int] = None
    snooze_check_interval: float = 60.0  # seconds
    kanban_columns: list[str] = ["Inbox", "To Do", "In Progress", "Done", "Snoozed"]
    remote_settings: RemoteSettings = RemoteSettings()
    search_settings: SearchSettings = SearchSettings()


class LLMSettings(BaseSettings):
    summary_model: str = "llama3.2"
    gemini_model: str = "gemini-2.0-flash"
