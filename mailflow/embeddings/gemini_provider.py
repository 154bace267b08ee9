from typing import Optional

from mailflow.errors import UpstreamError

from .base import EmbeddingProvider

GEMINI_EMBED_URL = "https://generativelanguage.googleapis.com/v1/models/{model}:embedContent"
DEFAULT_MODEL = "text-embedding-004"


def gemini_model(model: Optional[str]) -> str:
    # OpenAI's default model name is a common leftover in shared configs
    if not model or model == "text-embedding-ada-002":
        return DEFAULT_MODEL
    return model


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Gemini has no batch endpoint here, so ``batch_embed`` is the sequential default."""

    name = "gemini"
    max_input_chars = 10000

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        dimension: Optional[int] = None,
    ):
        super().__init__(api_key, gemini_model(model), dimension or 768)

    async def embed(self, text: str) -> list[float]:
        self._require_key()
        text = self._prepare(text)

        data = await self._post(
            GEMINI_EMBED_URL.format(model=self.model),
            params={"key": self.api_key},
            json={"content": {"parts": [{"text": text}]}},
        )
        values = (data.get("embedding") or {}).get("values")
        if not values:
            raise UpstreamError("gemini returned no embedding")
        return self._check_dimension(values)
