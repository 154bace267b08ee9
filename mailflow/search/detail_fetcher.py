import asyncio
from typing import Sequence

from loguru import logger

from mailflow.models import Email, RemoteStub
from mailflow.remote import RemoteClientInterface


class ConcurrentDetailFetcher:
    """Turns remote stubs into full emails with at most ``concurrency`` calls in flight."""

    def __init__(self, concurrency: int = 10):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency

    async def enrich(
        self, client: RemoteClientInterface, stubs: Sequence[RemoteStub]
    ) -> list[Email]:
        semaphore = asyncio.Semaphore(self.concurrency)
        fetched: list[Email] = []

        async def fetch_one(stub: RemoteStub) -> None:
            try:
                fetched.append(await client.fetch_email(stub.id))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"dropping {stub.id} from results, fetch failed: {e}")
            finally:
                semaphore.release()

        # the slot is taken before the task exists, so stub N+1 waits here
        async with asyncio.TaskGroup() as group:
            for stub in stubs:
                await semaphore.acquire()
                group.create_task(fetch_one(stub))

        return fetched
