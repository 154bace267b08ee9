from abc import ABC, abstractmethod
from typing import Optional

from mailflow.accounts.accounts_loading import AccountSettings
from mailflow.models import Email, RemotePage
from mailflow.settings import Settings


class RemoteClientInterface(ABC):
    """Keyword search and message lookup against the owner's mail provider.

    Implementations raise ``UpstreamError`` for anything the provider does not
    answer successfully.
    """

    @abstractmethod
    def __init__(
        self,
        account: AccountSettings,
        settings: Settings,
    ):
        super().__init__()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    @abstractmethod
    async def search(self, query: str, page_token: Optional[str] = None) -> RemotePage:
        """One page of lightweight hits; ``approx_total`` is only an estimate."""
        pass

    @abstractmethod
    async def fetch_email(self, email_id: str) -> Email:
        pass

    @abstractmethod
    async def aclose(self) -> None:
        pass
