"""
Run-scoped token metadata cache.

One cache object is built per scan and injected into the fetcher. Misses for
the same new address from concurrent chunk tasks are not serialized: both
tasks may query the token contract, and whichever insert lands first becomes
the cached value. Metadata is idempotent so either result is equivalent.
"""

import asyncio
from typing import Dict, Optional

from ..exceptions import DecodeError, PoolArbitrageError, TransportError
from ..interfaces import ChainTransport
from ..models import Token
from ..utils import canonical_address, get_logger
from .abi import ERC20_METADATA_ABI

logger = get_logger(__name__)


class TokenMetadataCache:
    """Maps token address -> Token, fetching name/symbol/decimals on miss."""

    def __init__(self, transport: ChainTransport):
        self.transport = transport
        self._tokens: Dict[str, Token] = {}
        self.hits = 0
        self.misses = 0

    def get(self, address: str) -> Optional[Token]:
        return self._tokens.get(canonical_address(address))

    def __contains__(self, address: str) -> bool:
        return self.get(address) is not None

    def __len__(self) -> int:
        return len(self._tokens)

    async def get_or_fetch(self, address: str) -> Token:
        """
        Return cached metadata for a token, fetching it on first use.

        Raises:
            TransportError: If a metadata call fails at the RPC level
            DecodeError: If a metadata call returns unusable data
        """
        key = canonical_address(address)
        cached = self._tokens.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        token = await self._fetch(key)
        return self._tokens.setdefault(key, token)

    async def _fetch(self, address: str) -> Token:
        results = await asyncio.gather(
            self.transport.call_function(address, ERC20_METADATA_ABI, "name"),
            self.transport.call_function(address, ERC20_METADATA_ABI, "symbol"),
            self.transport.call_function(address, ERC20_METADATA_ABI, "decimals"),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, PoolArbitrageError):
                raise result
            if isinstance(result, Exception):
                raise TransportError(
                    f"Metadata lookup for {address} failed: {result}"
                ) from result

        name, symbol, decimals = results
        if isinstance(decimals, bool) or not isinstance(decimals, int):
            raise DecodeError(
                f"decimals() of {address} returned {decimals!r}", record_id=address
            )

        token = Token(
            address=address,
            symbol=str(symbol),
            name=str(name),
            decimals=str(decimals),
        )
        logger.debug("Fetched token %s (%s, %s decimals)", address, symbol, decimals)
        return token
