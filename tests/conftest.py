"""Shared fixtures: an in-memory chain that answers through the transport protocol."""

import asyncio
from collections import Counter
from typing import Dict, List, Set, Tuple

import pytest
from eth_abi import decode, encode

from pool_arbitrage.chain.abi import ALL_PAIRS, GET_RESERVES, TOKEN0, TOKEN1
from pool_arbitrage.exceptions import DecodeError, TransportError
from pool_arbitrage.graph.network_builder import make_edge
from pool_arbitrage.models import Network, Pool, Token


def addr(n: int) -> str:
    """Deterministic lowercase test address."""
    return "0x" + format(n, "040x")


class FakeChain:
    """
    In-memory Uniswap V2 deployment.

    Answers call_function for ERC20 metadata and allPairsLength, and
    aggregate for token0/token1/getReserves/allPairs call data. Failure
    injection is per address.
    """

    def __init__(self):
        self.pools: Dict[str, Tuple[str, str, int, int]] = {}
        self.tokens: Dict[str, Tuple[str, str, int]] = {}
        self.factory_pairs: List[str] = []

        self.function_calls = Counter()
        self.aggregate_sizes: List[int] = []
        self.events: List[Tuple[str, str]] = []

        self.failing_targets: Set[str] = set()
        self.failing_tokens: Set[str] = set()
        self.garbage_pools: Set[str] = set()
        self.delays: Dict[str, float] = {}

        self.in_flight = 0
        self.peak_in_flight = 0

    def add_token(self, address: str, symbol: str, decimals: int = 18) -> str:
        self.tokens[address] = (f"{symbol} Token", symbol, decimals)
        return address

    def add_pool(self, address: str, token0: str, token1: str, reserve0: int, reserve1: int) -> str:
        self.pools[address] = (token0, token1, reserve0, reserve1)
        self.factory_pairs.append(address)
        return address

    def metadata_calls(self, address: str) -> int:
        return sum(
            count
            for (target, fn_name), count in self.function_calls.items()
            if target == address and fn_name in ("name", "symbol", "decimals")
        )

    async def call_function(self, address, abi, fn_name, *args):
        address = address.lower()
        self.function_calls[(address, fn_name)] += 1
        await asyncio.sleep(0)

        if fn_name == "allPairsLength":
            return len(self.factory_pairs)
        if address in self.failing_tokens:
            raise TransportError(f"{fn_name}() on {address} timed out", endpoint="fake")
        if address not in self.tokens:
            raise DecodeError(f"{fn_name}() on {address} returned no data", record_id=address)

        name, symbol, decimals = self.tokens[address]
        return {"name": name, "symbol": symbol, "decimals": decimals}[fn_name]

    async def aggregate(self, calls):
        calls = list(calls)
        self.aggregate_sizes.append(len(calls))
        targets = [target.lower() for target, _ in calls]
        label = targets[0] if targets else ""

        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        self.events.append(("start", label))
        try:
            await asyncio.sleep(max([self.delays.get(t, 0.0) for t in targets] or [0.0]))
            if any(target in self.failing_targets for target in targets):
                raise TransportError("simulated RPC outage", endpoint="fake")
            return [self._answer(target, bytes(data)) for target, data in calls]
        finally:
            self.in_flight -= 1
            self.events.append(("end", label))

    def _answer(self, target: str, data: bytes) -> bytes:
        selector = data[:4]
        if selector == ALL_PAIRS.selector:
            (index,) = decode(["uint256"], data[4:])
            return encode(["address"], [self.factory_pairs[index]])

        if target not in self.pools:
            return b""
        token0, token1, reserve0, reserve1 = self.pools[target]
        if selector == TOKEN0.selector:
            if target in self.garbage_pools:
                return b"\x00\x01\x02"
            return encode(["address"], [token0])
        if selector == TOKEN1.selector:
            return encode(["address"], [token1])
        if selector == GET_RESERVES.selector:
            return encode(["uint112", "uint112", "uint32"], [reserve0, reserve1, 1700000000])
        return b""


def make_network(rates):
    """Network from {(from, to): rate}, one edge per entry."""
    edges = [
        make_edge(src, dst, rate, f"{src}{dst}") for (src, dst), rate in rates.items()
    ]
    tokens = sorted({e.from_token for e in edges} | {e.to_token for e in edges})
    return Network(tokens=tokens, edges=edges)


def make_pool(address, token0, token1, reserve0, reserve1, liquidity_usd=None):
    return Pool(
        address=address,
        token0=Token(address=token0, symbol=token0[-4:]),
        token1=Token(address=token1, symbol=token1[-4:]),
        reserve0=reserve0,
        reserve1=reserve1,
        liquidity_usd=liquidity_usd,
    )


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def triangle_chain():
    """Three tokens, three pools, rates A->B=2, B->C=2, C->A=0.3 before fees."""
    chain = FakeChain()
    a = chain.add_token(addr(0xA), "AAA")
    b = chain.add_token(addr(0xB), "BBB")
    c = chain.add_token(addr(0xC), "CCC", decimals=6)
    unit = 10**18
    chain.add_pool(addr(0x101), a, b, 1 * unit, 2 * unit)
    chain.add_pool(addr(0x102), b, c, 1 * unit, 2 * 10**6)
    chain.add_pool(addr(0x103), c, a, 10 * 10**6, 3 * unit)
    return chain


@pytest.fixture
def triangle_network():
    return make_network({("A", "B"): 2.0, ("B", "C"): 2.0, ("C", "A"): 0.3})
