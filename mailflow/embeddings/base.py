import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import httpx
from result import Err, Ok, Result

from mailflow.errors import (
    EmbeddingDimensionMismatch,
    EngineError,
    InvalidInput,
    ProviderUnavailable,
    UpstreamError,
)

HTTP_TIMEOUT = 30.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 when there is no signal to compare."""
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


class EmbeddingProvider(ABC):
    """
    Turns text into a fixed-length vector.

    ``embed`` raises ``EngineError`` subclasses; ``batch_embed`` never raises for a
    single bad item and instead returns one ``Result`` per input.
    """

    name: str = "base"
    max_input_chars: int = 8000
    requires_api_key: bool = True

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        dimension: int,
    ):
        self.api_key = api_key
        self.model = model
        self._dimension = dimension
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=HTTP_TIMEOUT)
        return self._client

    def dimension(self) -> int:
        return self._dimension

    def _require_key(self) -> None:
        if self.requires_api_key and not self.api_key:
            raise ProviderUnavailable(f"{self.name} API key not configured")

    def _prepare(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            raise InvalidInput("Cannot embed empty text")
        return text[: self.max_input_chars]

    def _check_dimension(self, vector: list[float]) -> list[float]:
        if len(vector) != self._dimension:
            raise EmbeddingDimensionMismatch(
                f"{self.name} returned {len(vector)} dimensions, expected {self._dimension}"
            )
        return vector

    async def _post(self, url: str, **kwargs) -> dict:
        try:
            response = await self.client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{self.name} request failed: {e}") from e
        if response.status_code != 200:
            raise UpstreamError(
                f"{self.name} API error (status {response.status_code}): {response.text[:200]}"
            )
        return response.json()

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        pass

    async def batch_embed(
        self, texts: Sequence[str]
    ) -> list[Result[list[float], EngineError]]:
        results: list[Result[list[float], EngineError]] = []
        for text in texts:
            try:
                results.append(Ok(await self.embed(text)))
            except EngineError as e:
                results.append(Err(e))
        return results

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
