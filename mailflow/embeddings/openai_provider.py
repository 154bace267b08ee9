from typing import Optional, Sequence

from result import Err, Ok, Result

from mailflow.errors import EngineError, UpstreamError

from .base import EmbeddingProvider

OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"
DEFAULT_MODEL = "text-embedding-ada-002"


class OpenAIEmbeddingProvider(EmbeddingProvider):
    name = "openai"
    max_input_chars = 8000

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        dimension: Optional[int] = None,
    ):
        super().__init__(api_key, model or DEFAULT_MODEL, dimension or 1536)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def embed(self, text: str) -> list[float]:
        self._require_key()
        text = self._prepare(text)

        data = await self._post(
            OPENAI_EMBEDDINGS_URL,
            headers=self._headers(),
            json={"model": self.model, "input": text},
        )
        items = data.get("data") or []
        if not items:
            raise UpstreamError("openai returned no embedding")
        return self._check_dimension(items[0]["embedding"])

    async def batch_embed(
        self, texts: Sequence[str]
    ) -> list[Result[list[float], EngineError]]:
        """One native batch request; blank inputs fail individually without being sent."""
        results: list[Optional[Result[list[float], EngineError]]] = [None] * len(texts)
        to_send: list[tuple[int, str]] = []
        for position, text in enumerate(texts):
            try:
                to_send.append((position, self._prepare(text)))
            except EngineError as e:
                results[position] = Err(e)

        if to_send:
            try:
                self._require_key()
                data = await self._post(
                    OPENAI_EMBEDDINGS_URL,
                    headers=self._headers(),
                    json={"model": self.model, "input": [t for _, t in to_send]},
                )
            except EngineError as e:
                for position, _ in to_send:
                    results[position] = Err(e)
            else:
                by_index = {
                    item["index"]: item["embedding"] for item in data.get("data", [])
                }
                for batch_index, (position, _) in enumerate(to_send):
                    vector = by_index.get(batch_index)
                    if vector is None:
                        results[position] = Err(
                            UpstreamError(
                                f"openai returned no embedding for item {batch_index}"
                            )
                        )
                        continue
                    try:
                        results[position] = Ok(self._check_dimension(vector))
                    except EngineError as e:
                        results[position] = Err(e)

        return [r for r in results if r is not None]
