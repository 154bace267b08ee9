from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from .email import Email, EmailView


class SearchSource(StrEnum):
    remote = "remote"
    local = "local"
    fuzzy = "fuzzy"
    semantic = "semantic"


class RemoteStub(BaseModel):
    """Lightweight provider hit; needs enrichment before it can be shown."""

    id: str
    thread_id: Optional[str] = None


class RemotePage(BaseModel):
    stubs: list[RemoteStub]
    next_page_token: Optional[str] = None
    approx_total: int = 0


class SearchResult(BaseModel):
    email: Email
    score: float
    source: SearchSource


class SearchPage(BaseModel):
    results: list[SearchResult]
    next_page_token: Optional[str] = None
    total_estimate: int


class SearchHit(BaseModel):
    email: EmailView
    score: float
    source: SearchSource


class SearchResponse(BaseModel):
    emails: list[SearchHit]
    next_page_token: Optional[str] = None
    total_estimate: int

    @classmethod
    def from_page(cls, page: SearchPage) -> "SearchResponse":
        return cls(
            emails=[
                SearchHit(
                    email=EmailView.from_email(r.email, include_body=False),
                    score=r.score,
                    source=r.source,
                )
                for r in page.results
            ],
            next_page_token=page.next_page_token,
            total_estimate=page.total_estimate,
        )


class SemanticSearchRequest(BaseModel):
    query: str
    limit: Optional[int] = None


class ScoredEmail(BaseModel):
    email: EmailView
    score: float


class SemanticSearchResponse(BaseModel):
    results: list[ScoredEmail]
    query: str
    total: int


class GenerateEmbeddingsRequest(BaseModel):
    limit: Optional[int] = None


class EmbeddingBackfill(BaseModel):
    processed: int
    failed: int
    remaining: int


class Suggestion(BaseModel):
    text: str
    type: str  # "sender" | "keyword"


class SuggestionsResponse(BaseModel):
    suggestions: list[Suggestion]
