import asyncio
from typing import Optional

import httpx
from loguru import logger

from mailflow.accounts.accounts_loading import AccountSettings
from mailflow.errors import UpstreamError
from mailflow.models import Email, RemotePage, RemoteStub
from mailflow.remote.RemoteClientInterface import RemoteClientInterface
from mailflow.settings import RemoteSettings, Settings

from .parse_messages import parse_gmail_message

GMAIL_API = "https://gmail.googleapis.com/gmail/v1/users/me"
RETRY_STATUS = {429, 500, 502, 503, 504}


class GmailRemoteClient(RemoteClientInterface):
    def __init__(
        self,
        account: AccountSettings,
        settings: Settings,
    ):
        self.account = account
        self.settings: RemoteSettings = settings.remote_settings
        self.client = httpx.AsyncClient(
            base_url=account.api_base or GMAIL_API,
            headers={"Authorization": f"Bearer {account.access_token}"},
            timeout=self.settings.request_timeout,
        )

    async def _retry(self, method: str, url: str, **kwargs) -> dict:
        attempts = self.settings.max_retries
        last_error = "no attempt made"
        while attempts > 0:
            try:
                response = await self.client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            else:
                if response.status_code < 300:
                    return response.json()
                if response.status_code not in RETRY_STATUS:
                    raise UpstreamError(
                        f"Gmail {method} {url} returned {response.status_code}: {response.text[:200]}"
                    )
                last_error = f"status {response.status_code}"

            attempts -= 1
            logger.warning(
                f"Gmail {method} {url} failed ({last_error}), {attempts} attempts left"
            )
            if attempts > 0:
                await asyncio.sleep(self.settings.retry_delay)

        raise UpstreamError(f"Gmail {method} {url} failed after retries: {last_error}")

    async def search(self, query: str, page_token: Optional[str] = None) -> RemotePage:
        params = {"q": query, "maxResults": self.settings.page_size}
        if page_token:
            params["pageToken"] = page_token

        data = await self._retry("GET", "/messages", params=params)
        stubs = [
            RemoteStub(id=message["id"], thread_id=message.get("threadId"))
            for message in data.get("messages", [])
        ]
        return RemotePage(
            stubs=stubs,
            next_page_token=data.get("nextPageToken") or None,
            approx_total=int(data.get("resultSizeEstimate", len(stubs))),
        )

    async def fetch_email(self, email_id: str) -> Email:
        data = await self._retry(
            "GET", f"/messages/{email_id}", params={"format": "full"}
        )
        return parse_gmail_message(data, owner_id=self.account.name)

    async def aclose(self) -> None:
        await self.client.aclose()
