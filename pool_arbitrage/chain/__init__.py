"""
Chain access layer: batched pool state retrieval, token metadata caching and
the indexed subgraph feed.
"""

from .pool_fetcher import FetchResult, PoolStateFetcher, chunk_addresses
from .subgraph import SubgraphPoolSource
from .token_cache import TokenMetadataCache
from .transport import Web3Transport

__all__ = [
    "FetchResult",
    "PoolStateFetcher",
    "SubgraphPoolSource",
    "TokenMetadataCache",
    "Web3Transport",
    "chunk_addresses",
]
