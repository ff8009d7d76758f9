"""
End-to-end scan: pool retrieval, graph construction, cycle detection.

Every run builds its own token cache and diagnostics collector, so runs are
independent of each other. Pool and network data are rebuilt in full on each
run.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .chain.pool_fetcher import FetchResult, PoolStateFetcher
from .chain.subgraph import SubgraphPoolSource
from .chain.token_cache import TokenMetadataCache
from .chain.transport import Web3Transport
from .config_loader import (
    ScannerConfig,
    get_default_config,
    resolve_rpc_url,
    resolve_subgraph_api_key,
)
from .diagnostics import Diagnostics
from .executor import execute_arbitrage
from .graph.detector import ArbitrageDetector
from .graph.network_builder import NetworkBuilder
from .interfaces import ChainTransport
from .models import ArbitrageCycle, Network, Pool
from .utils import get_logger

logger = get_logger(__name__)


@dataclass
class ScanResult:
    """Outcome of one scan run."""

    pools: List[Pool] = field(default_factory=list)
    network: Optional[Network] = None
    cycles: List[ArbitrageCycle] = field(default_factory=list)
    selected: List[ArbitrageCycle] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    partial: bool = False


async def fetch_onchain_pools(
    config: ScannerConfig,
    transport: ChainTransport,
    diagnostics: Diagnostics,
) -> FetchResult:
    """Discover pools from the factory and fetch their state."""
    cache = TokenMetadataCache(transport)
    fetcher = PoolStateFetcher(
        transport,
        cache,
        batch_size=config.fetch.batch_size,
        max_concurrency=config.fetch.max_concurrency,
        scale_reserves=config.fetch.scale_reserves,
        fail_fast=config.fetch.fail_fast,
        diagnostics=diagnostics,
    )
    addresses = await fetcher.discover_pool_addresses(
        config.rpc.factory_address,
        limit=config.fetch.max_pools,
        page_size=config.fetch.page_size,
    )
    result = await fetcher.fetch_pool_states(addresses)
    logger.info(
        "Token cache: %d tokens (%d hits, %d misses)",
        len(cache),
        cache.hits,
        cache.misses,
    )
    return result


async def run_scan(
    config: Optional[ScannerConfig] = None,
    transport: Optional[ChainTransport] = None,
    subgraph_source: Optional[SubgraphPoolSource] = None,
) -> ScanResult:
    """
    Run one full scan and hand the cycles to the consumer stub.

    Args:
        config: Scanner configuration (defaults if omitted)
        transport: Chain transport; built from config.rpc when omitted
        subgraph_source: Subgraph source; built from config.subgraph when
            omitted and config.source is "subgraph"

    Raises:
        EmptyNetworkError: If no usable pool survives filtering
        TransportError: If discovery fails, or a chunk fails with fail_fast
    """
    config = config or get_default_config()
    diagnostics = Diagnostics()
    result = ScanResult(diagnostics=diagnostics)

    logger.info("Step 1: Fetching pools (source: %s)...", config.source)
    if config.source == "subgraph":
        source = subgraph_source or SubgraphPoolSource(
            endpoint=config.subgraph.endpoint,
            api_key=resolve_subgraph_api_key(config.subgraph),
            first=config.subgraph.first,
            timeout=config.subgraph.timeout,
        )
        result.pools = await source.fetch_pools(diagnostics=diagnostics)
    else:
        if transport is None:
            transport = Web3Transport(
                resolve_rpc_url(config.rpc),
                multicall_address=config.rpc.multicall_address,
                request_timeout=config.rpc.request_timeout,
            )
        fetched = await fetch_onchain_pools(config, transport, diagnostics)
        result.pools = fetched.pools
        result.partial = fetched.partial

    logger.info("Step 2: Building exchange-rate network from %d pools...", len(result.pools))
    builder = NetworkBuilder(
        fee=config.graph.fee,
        min_liquidity_usd=config.graph.min_liquidity_usd,
        diagnostics=diagnostics,
    )
    result.network = builder.build(result.pools)

    logger.info("Step 3: Searching for negative cycles...")
    detector = ArbitrageDetector(
        min_profit=config.detection.min_profit,
        min_cycle_hops=config.detection.min_cycle_hops,
        max_cycle_hops=config.detection.max_cycle_hops,
        diagnostics=diagnostics,
    )
    result.cycles = detector.detect(result.network)

    result.selected = execute_arbitrage(
        result.cycles, min_profit_pct=config.detection.consumer_min_profit_pct
    )
    logger.info(
        "Scan complete: %d cycles, %d selected (dropped: %s)",
        len(result.cycles),
        len(result.selected),
        diagnostics.summary(),
    )
    return result
