import hashlib
import math
import re
from typing import Optional

from mailflow.text_normalizer import fold_accents

from .base import EmbeddingProvider

_TOKEN = re.compile(r"\w+")


class LocalHashingEmbeddingProvider(EmbeddingProvider):
    """
    Offline bag-of-words embedding using the hashing trick.

    Accent-folded tokens are hashed into ``dimension`` signed buckets and the
    result is L2-normalised. Needs no credentials, which makes it the provider
    of choice for the test backend.
    """

    name = "local"
    max_input_chars = 20000
    requires_api_key = False

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
    ):
        super().__init__(api_key, model or "hashing", dimension or 256)

    def _vectorize(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for token in _TOKEN.findall(fold_accents(text.lower())):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]

    async def embed(self, text: str) -> list[float]:
        return self._check_dimension(self._vectorize(self._prepare(text)))
