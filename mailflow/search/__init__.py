from .detail_fetcher import ConcurrentDetailFetcher
from .hybrid import HybridSearchEngine
from .local_search import LocalIndexSearch

__all__ = ["ConcurrentDetailFetcher", "HybridSearchEngine", "LocalIndexSearch"]
