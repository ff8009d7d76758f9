"""
Batched, bounded-concurrency retrieval of Uniswap V2 pool state.

Pool addresses are split into chunks of at most ``batch_size``. Each chunk is
fetched with a single Multicall2 ``aggregate`` holding three reads per pool
(token0, token1, getReserves). Chunks run in waves of at most
``max_concurrency`` tasks guarded by a semaphore, and every task of a wave is
awaited before the next wave is launched. This caps in-flight requests at
``max_concurrency``; a wave cannot start early when permits free up mid-wave.

A transport failure aborts only its own chunk. A payload that fails to decode
skips only its own pool. Both are recorded in the run diagnostics.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from .. import diagnostics as diag
from ..diagnostics import Diagnostics
from ..exceptions import DecodeError, ParseError, TransportError
from ..interfaces import ChainTransport
from ..models import Pool, Token
from ..utils import canonical_address, chunked, get_logger, is_null_address
from .abi import (
    ALL_PAIRS,
    FACTORY_ABI,
    GET_RESERVES,
    TOKEN0,
    TOKEN1,
    build_all_pairs_calls,
    build_pool_state_calls,
    decode_address,
    decode_result,
)
from .token_cache import TokenMetadataCache

logger = get_logger(__name__)

ADDR_BATCH = 30
MAX_CONCURRENCY = 3
DISCOVERY_PAGE_SIZE = 100
CALLS_PER_POOL = 3

STAGE_DISCOVERY = "discovery"
STAGE_FETCH = "fetch"


@dataclass
class FetchResult:
    """Pools fetched in one run plus what was dropped along the way."""

    pools: List[Pool] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    chunks_total: int = 0
    chunks_failed: int = 0

    @property
    def partial(self) -> bool:
        return self.chunks_failed > 0


def chunk_addresses(addresses: Sequence[str], batch_size: int) -> List[List[str]]:
    """Partition addresses into consecutive chunks of at most batch_size."""
    return list(chunked(addresses, batch_size))


def scale_reserve(raw: int, decimals: str, record_id: str = "") -> str:
    """
    Render a raw integer reserve in human units using the token decimals.

    Raises:
        ParseError: If the decimals text is not a small non-negative integer
    """
    try:
        places = int(str(decimals).strip())
    except (TypeError, ValueError) as e:
        raise ParseError(
            f"Malformed decimals {decimals!r}", record_id=record_id, field="decimals"
        ) from e
    if places < 0 or places > 255:
        raise ParseError(
            f"Decimals out of range: {places}", record_id=record_id, field="decimals"
        )
    return format(Decimal(raw).scaleb(-places), "f")


class PoolStateFetcher:
    """
    Fetches pool token pairs and reserves through an aggregated-call transport.

    Args:
        transport: Chain transport (call_function + aggregate)
        cache: Run-scoped token metadata cache
        batch_size: Max pools per aggregated call (default 30)
        max_concurrency: Max chunk requests in flight (default 3)
        scale_reserves: Render reserves in human units using token decimals
        fail_fast: Raise the first chunk transport error once its wave drains
        diagnostics: Collector for dropped records (a new one if omitted)
    """

    def __init__(
        self,
        transport: ChainTransport,
        cache: TokenMetadataCache,
        batch_size: int = ADDR_BATCH,
        max_concurrency: int = MAX_CONCURRENCY,
        scale_reserves: bool = True,
        fail_fast: bool = False,
        diagnostics: Optional[Diagnostics] = None,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")

        self.transport = transport
        self.cache = cache
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.scale_reserves = scale_reserves
        self.fail_fast = fail_fast
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

        self._in_flight = 0
        self.peak_in_flight = 0

    async def discover_pool_addresses(
        self,
        factory_address: str,
        limit: Optional[int] = None,
        page_size: int = DISCOVERY_PAGE_SIZE,
    ) -> List[str]:
        """
        Enumerate pair addresses from a Uniswap V2 factory.

        Reads allPairsLength() once, then resolves allPairs(i) for every index
        below that count (capped by ``limit``) in paged aggregated calls.

        Raises:
            TransportError: If the length query or a page request fails
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")

        total = await self.transport.call_function(
            factory_address, FACTORY_ABI, "allPairsLength"
        )
        total = int(total)
        count = total if limit is None else max(0, min(total, limit))
        logger.info(
            "Factory %s reports %d pairs, resolving %d", factory_address, total, count
        )

        addresses: List[str] = []
        for start in range(0, count, page_size):
            size = min(page_size, count - start)
            results = await self.transport.aggregate(
                build_all_pairs_calls(factory_address, start, size)
            )
            for offset in range(size):
                index = start + offset
                raw = results[offset] if offset < len(results) else b""
                try:
                    addresses.append(
                        decode_address(ALL_PAIRS, raw, record_id=f"allPairs({index})")
                    )
                except DecodeError as e:
                    self.diagnostics.record_error(
                        diag.DECODE, f"allPairs({index})", e, stage=STAGE_DISCOVERY
                    )

        logger.info("Resolved %d pool addresses", len(addresses))
        return addresses

    async def fetch_pool_states(self, pool_addresses: Sequence[str]) -> FetchResult:
        """
        Fetch token pairs and reserves for every pool address.

        Returns:
            FetchResult with the pools that decoded cleanly. Pool order is not
            guaranteed to follow the input order.

        Raises:
            TransportError: Only when ``fail_fast`` is set and a chunk failed
        """
        chunks = chunk_addresses(pool_addresses, self.batch_size)
        result = FetchResult(diagnostics=self.diagnostics, chunks_total=len(chunks))
        semaphore = asyncio.Semaphore(self.max_concurrency)
        waves = list(chunked(chunks, self.max_concurrency))

        logger.info(
            "Fetching %d pools in %d chunks (%d waves, batch=%d, concurrency=%d)",
            len(pool_addresses),
            len(chunks),
            len(waves),
            self.batch_size,
            self.max_concurrency,
        )

        chunk_offset = 0
        for wave in waves:
            tasks = [
                asyncio.create_task(
                    self._fetch_chunk(chunk_offset + i, chunk, semaphore)
                )
                for i, chunk in enumerate(wave)
            ]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

            first_error: Optional[TransportError] = None
            for i, outcome in enumerate(outcomes):
                if isinstance(outcome, TransportError):
                    result.chunks_failed += 1
                    self.diagnostics.record_error(
                        diag.TRANSPORT,
                        f"chunk {chunk_offset + i}",
                        outcome,
                        stage=STAGE_FETCH,
                    )
                    logger.warning("Chunk %d failed: %s", chunk_offset + i, outcome)
                    first_error = first_error or outcome
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    result.pools.extend(outcome)

            if first_error is not None and self.fail_fast:
                raise first_error
            chunk_offset += len(wave)

        logger.info(
            "Fetched %d pools (%d/%d chunks failed; %s)",
            len(result.pools),
            result.chunks_failed,
            result.chunks_total,
            self.diagnostics.summary(),
        )
        return result

    async def _fetch_chunk(
        self, chunk_index: int, chunk: List[str], semaphore: asyncio.Semaphore
    ) -> List[Pool]:
        async with semaphore:
            calls = []
            for pool_address in chunk:
                calls.extend(build_pool_state_calls(pool_address))

            self._in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
            try:
                results = await self.transport.aggregate(calls)
            finally:
                self._in_flight -= 1

        logger.debug(
            "Chunk %d returned %d results for %d pools",
            chunk_index,
            len(results),
            len(chunk),
        )

        pools: List[Pool] = []
        for position, pool_address in enumerate(chunk):
            base = position * CALLS_PER_POOL
            raw = [
                results[base + k] if base + k < len(results) else b""
                for k in range(CALLS_PER_POOL)
            ]
            pool = await self._assemble_pool(pool_address, raw)
            if pool is not None:
                pools.append(pool)
        return pools

    async def _assemble_pool(self, pool_address: str, raw: List[bytes]) -> Optional[Pool]:
        pool_id = canonical_address(pool_address)
        try:
            token0_addr = decode_address(TOKEN0, raw[0], record_id=pool_id)
            token1_addr = decode_address(TOKEN1, raw[1], record_id=pool_id)
            reserve0, reserve1, _ = decode_result(GET_RESERVES, raw[2], record_id=pool_id)
        except DecodeError as e:
            self.diagnostics.record_error(diag.DECODE, pool_id, e, stage=STAGE_FETCH)
            return None

        if is_null_address(token0_addr) or is_null_address(token1_addr):
            self.diagnostics.record(
                diag.INVALID_POOL, pool_id, "token is the null address", stage=STAGE_FETCH
            )
            return None

        try:
            token0 = await self.cache.get_or_fetch(token0_addr)
            token1 = await self.cache.get_or_fetch(token1_addr)
        except TransportError as e:
            self.diagnostics.record_error(diag.TRANSPORT, pool_id, e, stage=STAGE_FETCH)
            return None
        except DecodeError as e:
            self.diagnostics.record_error(diag.DECODE, pool_id, e, stage=STAGE_FETCH)
            return None

        try:
            rendered0 = self._render_reserve(reserve0, token0, pool_id)
            rendered1 = self._render_reserve(reserve1, token1, pool_id)
        except ParseError as e:
            self.diagnostics.record_error(diag.PARSE, pool_id, e, stage=STAGE_FETCH)
            return None

        return Pool(
            address=pool_id,
            token0=token0,
            token1=token1,
            reserve0=rendered0,
            reserve1=rendered1,
        )

    def _render_reserve(self, raw: int, token: Token, pool_id: str) -> str:
        if not self.scale_reserves:
            return str(raw)
        return scale_reserve(raw, token.decimals, record_id=pool_id)
