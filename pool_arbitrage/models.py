"""
Core data types for pool scanning and cycle detection.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Token:
    """
    ERC20 token metadata.

    Attributes:
        address: Canonical lowercase hex address (identity)
        symbol: Token symbol (e.g., "WETH")
        name: Token name
        decimals: Decimal precision as text (e.g., "18")
    """

    address: str
    symbol: str = field(default="", compare=False)
    name: str = field(default="", compare=False)
    decimals: str = field(default="18", compare=False)


@dataclass(frozen=True)
class Pool:
    """
    Liquidity pool snapshot.

    Attributes:
        address: Pool contract address (id)
        token0: First token in canonical on-chain ordering
        token1: Second token
        reserve0: Decimal-scaled reserve of token0, as text
        reserve1: Decimal-scaled reserve of token1, as text
        liquidity_usd: Optional USD liquidity, as text (indexed feeds only)
    """

    address: str
    token0: Token
    token1: Token
    reserve0: str
    reserve1: str
    liquidity_usd: Optional[str] = None


@dataclass(frozen=True)
class DirectedEdge:
    """One swap direction through one pool, weight = -ln(rate)."""

    from_token: str
    to_token: str
    rate: float
    weight: float
    pool_id: str


@dataclass(frozen=True)
class Network:
    """
    Exchange-rate graph.

    Attributes:
        tokens: Sorted, deduplicated token ids (union of edge endpoints)
        edges: Directed edges; parallel edges from distinct pools are kept
    """

    tokens: List[str] = field(default_factory=list)
    edges: List[DirectedEdge] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.edges


@dataclass(frozen=True)
class ArbitrageCycle:
    """
    A profitable closed token loop.

    Attributes:
        start_token: First (and last) token of the loop
        path: Closed path of token ids, path[0] == path[-1]
        product: Product of edge rates along the path
        profit_pct: (product - 1) * 100
    """

    start_token: str
    path: List[str]
    product: float
    profit_pct: float

    @property
    def hops(self) -> int:
        return len(self.path) - 1
