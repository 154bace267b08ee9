from mailflow.settings import Settings

from .base import EmbeddingProvider, cosine_similarity
from .gemini_provider import GeminiEmbeddingProvider
from .local_provider import LocalHashingEmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider

PROVIDERS: dict[str, type[EmbeddingProvider]] = {
    "openai": OpenAIEmbeddingProvider,
    "gemini": GeminiEmbeddingProvider,
    "local": LocalHashingEmbeddingProvider,
}


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    provider_cls = PROVIDERS[settings.embedding_provider]
    return provider_cls(
        api_key=settings.embedding_api_key,
        model=settings.embedding_model,
        dimension=settings.embedding_dimension,
    )


__all__ = [
    "EmbeddingProvider",
    "GeminiEmbeddingProvider",
    "LocalHashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "cosine_similarity",
    "create_embedding_provider",
]
