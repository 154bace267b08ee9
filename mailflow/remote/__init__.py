from mailflow.accounts.accounts_loading import AccountSettings
from mailflow.settings import Settings

from .GmailRemoteClient import GmailRemoteClient
from .RemoteClientInterface import RemoteClientInterface
from .TestRemoteClient import TestRemoteClient


def create_remote_client(
    account: AccountSettings, settings: Settings
) -> RemoteClientInterface:
    if settings.TEST_BACKEND == "True":
        return TestRemoteClient(account=account, settings=settings)
    return GmailRemoteClient(account=account, settings=settings)


__all__ = [
    "GmailRemoteClient",
    "RemoteClientInterface",
    "TestRemoteClient",
    "create_remote_client",
]
