import asyncio
from typing import Mapping, Optional

from loguru import logger
from result import Err, Ok, Result, is_err

from mailflow.database import MailDB
from mailflow.embeddings import EmbeddingProvider, cosine_similarity
from mailflow.errors import (
    EmbeddingDimensionMismatch,
    EngineError,
    InvalidQuery,
    ProviderUnavailable,
    UpstreamError,
)
from mailflow.models import (
    Email,
    EmbeddingBackfill,
    RemotePage,
    SearchPage,
    SearchResult,
    SearchSource,
    Suggestion,
)
from mailflow.remote import RemoteClientInterface
from mailflow.settings import SearchSettings
from mailflow.text_normalizer import contextual_snippet
from mailflow.utils import LogLevel, return_error_and_log

from .detail_fetcher import ConcurrentDetailFetcher
from .local_search import LocalIndexSearch

EXACT_MATCH_SCORE = 1.0


def _ranking_key(result: SearchResult) -> tuple[float, str]:
    return (-result.email.received_at.timestamp(), result.email.id)


def _clamp(value: Optional[int], default: int, maximum: int) -> int:
    if value is None or value <= 0:
        return default
    return min(value, maximum)


def embedding_text(email: Email) -> str:
    return f"{email.subject} {email.body_text or email.preview}".strip()


class HybridSearchEngine:
    """
    Answers search requests from the remote provider, the local store and, as a
    last resort, a fuzzy scan of the local store. Also hosts semantic search and
    the embedding backfill, which share the store and the embedding provider.
    """

    def __init__(
        self,
        db: MailDB,
        remote_clients: Mapping[str, RemoteClientInterface],
        embedding_provider: EmbeddingProvider,
        settings: SearchSettings,
    ):
        self.db = db
        self.remote_clients = remote_clients
        self.embedding_provider = embedding_provider
        self.settings = settings
        self.local = LocalIndexSearch(db, settings)
        self.fetcher = ConcurrentDetailFetcher(settings.enrich_concurrency)
        self._background_tasks: set[asyncio.Task] = set()

    async def hybrid_search(
        self, owner_id: str, query: str, page_token: Optional[str] = None
    ) -> Result[SearchPage, EngineError]:
        if not query or not query.strip():
            return return_error_and_log(
                InvalidQuery("Search query must not be empty"), LogLevel.info
            )

        client = self.remote_clients.get(owner_id)
        if client is None:
            return return_error_and_log(
                ProviderUnavailable(f"No mail provider configured for {owner_id}")
            )

        try:
            async with asyncio.timeout(self.settings.request_timeout):
                return await self._hybrid_search(client, owner_id, query, page_token)
        except TimeoutError:
            return return_error_and_log(
                UpstreamError(
                    f"Search for {owner_id} timed out after {self.settings.request_timeout}s"
                )
            )

    async def _hybrid_search(
        self,
        client: RemoteClientInterface,
        owner_id: str,
        query: str,
        page_token: Optional[str],
    ) -> Result[SearchPage, EngineError]:
        remote_outcome, local_emails = await asyncio.gather(
            self._remote_search(client, query, page_token),
            self._local_search(owner_id, query),
        )
        if is_err(remote_outcome):
            return return_error_and_log(remote_outcome.err_value)
        page, remote_emails = remote_outcome.ok_value
        # indexed as fetched, before the display fields below are changed
        to_index = [email.detached_copy() for email in remote_emails]

        stored = await self._stored_twins(owner_id, [e.id for e in remote_emails])
        merged: dict[str, SearchResult] = {}
        for email in remote_emails:
            email.owner_id = owner_id
            twin = stored.get(email.id)
            if twin is not None:
                email.status = twin.status
                email.deferred_until = twin.deferred_until
                email.summary = email.summary or twin.summary
            snippet = contextual_snippet(email.body_text, query)
            if snippet:
                email.preview = snippet
            merged[email.id] = SearchResult(
                email=email, score=EXACT_MATCH_SCORE, source=SearchSource.remote
            )

        for email in local_emails:
            if email.id not in merged:
                merged[email.id] = SearchResult(
                    email=email, score=EXACT_MATCH_SCORE, source=SearchSource.local
                )

        if not merged and len(query.strip()) > self.settings.fuzzy_min_query_length:
            logger.debug(f"no structured hits for {query!r}, trying fuzzy scan")
            for email, distance in await self.local.fuzzy_scan(owner_id, query):
                score = max(0.0, 1.0 - distance / len(query.strip()))
                merged[email.id] = SearchResult(
                    email=email, score=score, source=SearchSource.fuzzy
                )

        results = sorted(merged.values(), key=_ranking_key)

        if to_index:
            self._spawn_index_sync(owner_id, to_index)

        return Ok(
            SearchPage(
                results=results,
                next_page_token=page.next_page_token,
                total_estimate=max(page.approx_total, len(results)),
            )
        )

    async def _remote_search(
        self, client: RemoteClientInterface, query: str, page_token: Optional[str]
    ) -> Result[tuple[RemotePage, list[Email]], EngineError]:
        try:
            page = await client.search(query, page_token)
        except EngineError as e:
            return Err(e)
        emails = await self.fetcher.enrich(client, page.stubs)
        logger.debug(f"remote search: {len(page.stubs)} stubs, {len(emails)} enriched")
        return Ok((page, emails))

    async def _local_search(self, owner_id: str, query: str) -> list[Email]:
        try:
            return await self.local.search(owner_id, query)
        except Exception:
            logger.exception(f"local search for {owner_id} failed, using remote results only")
            return []

    async def _stored_twins(self, owner_id: str, ids: list[str]) -> dict[str, Email]:
        """Stored rows for the remote hits; the capped local search may have missed them."""
        if not ids:
            return {}
        try:
            rows = await asyncio.to_thread(self.db.get_emails, owner_id, ids)
        except Exception:
            logger.exception(f"loading stored state for {owner_id} failed, showing remote state")
            return {}
        return {email.id: email for email in rows}

    def _spawn_index_sync(self, owner_id: str, emails: list[Email]) -> None:
        # not awaited by the request, so a client disconnect does not cancel it
        task = asyncio.create_task(self._sync_index(owner_id, emails))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _sync_index(self, owner_id: str, emails: list[Email]) -> None:
        try:
            async with asyncio.timeout(self.settings.index_sync_timeout):
                inserted = await asyncio.to_thread(self.db.upsert_emails, owner_id, emails)
            logger.debug(
                f"indexed {len(emails)} remote results for {owner_id} ({inserted} new)"
            )
        except TimeoutError:
            logger.warning(f"index sync for {owner_id} timed out")
        except Exception:
            logger.exception(f"index sync for {owner_id} failed")

    async def wait_for_background(self) -> None:
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def semantic_search(
        self, owner_id: str, query_text: str, limit: Optional[int] = None
    ) -> Result[list[SearchResult], EngineError]:
        if not query_text or not query_text.strip():
            return return_error_and_log(
                InvalidQuery("Query cannot be empty"), LogLevel.info
            )
        limit = _clamp(
            limit, self.settings.semantic_default_limit, self.settings.semantic_max_limit
        )

        try:
            query_vector = await self.embedding_provider.embed(query_text)
        except EngineError as e:
            return return_error_and_log(e)

        emails = await asyncio.to_thread(self.db.list_with_embeddings, owner_id)
        scored: list[SearchResult] = []
        for email in emails:
            if len(email.embedding) != len(query_vector):
                return return_error_and_log(
                    EmbeddingDimensionMismatch(
                        f"Email {email.id} has a {len(email.embedding)}-dimensional embedding, "
                        f"the query has {len(query_vector)}"
                    )
                )
            scored.append(
                SearchResult(
                    email=email,
                    score=cosine_similarity(query_vector, email.embedding),
                    source=SearchSource.semantic,
                )
            )

        scored.sort(key=lambda r: (-r.score, r.email.id))
        return Ok(scored[:limit])

    async def generate_embeddings(
        self, owner_id: str, limit: Optional[int] = None
    ) -> Result[EmbeddingBackfill, EngineError]:
        """Embed up to ``limit`` emails that have no vector yet; item failures are only counted."""
        provider = self.embedding_provider
        if provider.requires_api_key and not provider.api_key:
            return return_error_and_log(
                ProviderUnavailable(f"{provider.name} API key not configured")
            )
        limit = _clamp(
            limit, self.settings.embedding_default_batch, self.settings.embedding_max_batch
        )

        emails = await asyncio.to_thread(self.db.list_without_embedding, owner_id, limit)
        results = await provider.batch_embed([embedding_text(e) for e in emails])

        processed = failed = 0
        for email, result in zip(emails, results):
            if is_err(result):
                logger.warning(f"embedding {email.id} failed: {result.err_value}")
                failed += 1
                continue
            stored = await asyncio.to_thread(
                self.db.set_embedding, owner_id, email.id, result.ok_value
            )
            if is_err(stored):
                failed += 1
            else:
                processed += 1

        remaining = await asyncio.to_thread(self.db.count_without_embedding, owner_id)
        logger.info(
            f"embedding backfill for {owner_id}: {processed} processed, {failed} failed, {remaining} remaining"
        )
        return Ok(EmbeddingBackfill(processed=processed, failed=failed, remaining=remaining))

    async def suggestions(self, owner_id: str, query: str) -> list[Suggestion]:
        if not query or not query.strip():
            return []
        return await asyncio.to_thread(self.db.suggestions, owner_id, query)
