"""
DEX pool arbitrage scanner.

Fetches Uniswap V2 style pool state in bounded concurrent batches, models the
pools as an exchange-rate graph and detects profitable token loops as
negative cycles in log-space.
"""

from pool_arbitrage.version import __version__

PROJECT_NAME = "pool-arbitrage"
VERSION = __version__

from pool_arbitrage.chain.pool_fetcher import FetchResult, PoolStateFetcher
from pool_arbitrage.chain.token_cache import TokenMetadataCache
from pool_arbitrage.diagnostics import Diagnostics, RecordIssue
from pool_arbitrage.graph.detector import ArbitrageDetector, find_arbitrage
from pool_arbitrage.graph.network_builder import NetworkBuilder, construct_network
from pool_arbitrage.models import ArbitrageCycle, DirectedEdge, Network, Pool, Token
from pool_arbitrage.pipeline import ScanResult, run_scan

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbitrageCycle",
    "ArbitrageDetector",
    "Diagnostics",
    "DirectedEdge",
    "FetchResult",
    "Network",
    "NetworkBuilder",
    "Pool",
    "PoolStateFetcher",
    "RecordIssue",
    "ScanResult",
    "Token",
    "TokenMetadataCache",
    "construct_network",
    "find_arbitrage",
    "run_scan",
]
