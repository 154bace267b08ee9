from typing import Optional

from fastapi import APIRouter, Query

from ..models import (
    EmailView,
    EmbeddingBackfill,
    GenerateEmbeddingsRequest,
    ScoredEmail,
    SearchResponse,
    SemanticSearchRequest,
    SemanticSearchResponse,
    SuggestionsResponse,
)
from .common import get_context, unwrap

router = APIRouter(tags=["Search"])


@router.get("/accounts/{owner_id}/search", response_model=SearchResponse)
async def hybrid_search(
    owner_id: str,
    q: str = Query(default=""),
    page_token: Optional[str] = None,
):
    """
    Searches the provider and the local index at once.

    Results are deduplicated by id, newest first. When neither source finds
    anything and the query is longer than three characters a fuzzy match over
    subjects and summaries is tried.
    """
    context = get_context(owner_id)
    page = unwrap(await context.search_engine.hybrid_search(owner_id, q, page_token))
    return SearchResponse.from_page(page)


@router.post("/accounts/{owner_id}/search/semantic", response_model=SemanticSearchResponse)
async def semantic_search(owner_id: str, request: SemanticSearchRequest):
    context = get_context(owner_id)
    results = unwrap(
        await context.search_engine.semantic_search(
            owner_id, request.query, request.limit
        )
    )
    return SemanticSearchResponse(
        results=[
            ScoredEmail(
                email=EmailView.from_email(r.email, include_body=False), score=r.score
            )
            for r in results
        ],
        query=request.query,
        total=len(results),
    )


@router.get("/accounts/{owner_id}/search/suggestions", response_model=SuggestionsResponse)
async def search_suggestions(owner_id: str, q: str = Query(default="")):
    context = get_context(owner_id)
    return SuggestionsResponse(
        suggestions=await context.search_engine.suggestions(owner_id, q)
    )


@router.post(
    "/accounts/{owner_id}/search/generate-embeddings", response_model=EmbeddingBackfill
)
async def generate_embeddings(
    owner_id: str, request: Optional[GenerateEmbeddingsRequest] = None
):
    """Embeds emails that have no vector yet, at most ``limit`` (default 50, max 100) per call."""
    context = get_context(owner_id)
    limit = request.limit if request is not None else None
    return unwrap(await context.search_engine.generate_embeddings(owner_id, limit))
