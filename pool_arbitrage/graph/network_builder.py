"""
Exchange-rate graph construction from pool snapshots.

Each valid pool yields one edge per swap direction. Rates use the reserve
mid-price with a flat swap fee, and edge weights are -ln(rate) so that a
profitable loop (rate product > 1) is a negative cycle.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from .. import diagnostics as diag
from ..diagnostics import Diagnostics
from ..exceptions import EmptyNetworkError, ParseError
from ..models import DirectedEdge, Network, Pool
from ..utils import get_logger, is_finite_positive, is_null_address, parse_positive_decimal

logger = get_logger(__name__)

DEFAULT_FEE = 0.003
DEFAULT_MIN_LIQUIDITY_USD = 10000.0

STAGE_BUILD = "build"


def make_edge(from_token: str, to_token: str, rate: float, pool_id: str) -> DirectedEdge:
    """Build a directed edge, weight = -ln(rate)."""
    return DirectedEdge(
        from_token=from_token,
        to_token=to_token,
        rate=rate,
        weight=-math.log(rate),
        pool_id=pool_id,
    )


def pool_rates(reserve0: Decimal, reserve1: Decimal, fee: float) -> Tuple[float, float]:
    """
    Fee-adjusted rates (token0 -> token1, token1 -> token0).

    No decimal correction is applied: reserves must already be in
    comparable human units.
    """
    price = float(reserve1 / reserve0)
    multiplier = 1.0 - fee
    rate_0to1 = multiplier * price
    rate_1to0 = multiplier / price if price != 0 else math.inf
    return rate_0to1, rate_1to0


class NetworkBuilder:
    """
    Turns pool records into a Network.

    Args:
        fee: Swap fee as a fraction (default 0.003 = 0.30%)
        min_liquidity_usd: Drop pools whose reported USD liquidity is below
            this value; None disables the filter. Pools with no reported
            liquidity are never dropped by it.
        diagnostics: Collector for rejected pools and directions
    """

    def __init__(
        self,
        fee: float = DEFAULT_FEE,
        min_liquidity_usd: Optional[float] = DEFAULT_MIN_LIQUIDITY_USD,
        diagnostics: Optional[Diagnostics] = None,
    ):
        if not 0 <= fee < 1:
            raise ValueError(f"fee must be in [0, 1), got {fee}")
        self.fee = fee
        self.min_liquidity_usd = min_liquidity_usd
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def _check_liquidity(self, pool: Pool) -> bool:
        if self.min_liquidity_usd is None or pool.liquidity_usd is None:
            return True
        try:
            liquidity = Decimal(str(pool.liquidity_usd).strip())
        except (InvalidOperation, ValueError) as e:
            raise ParseError(
                f"Malformed USD liquidity {pool.liquidity_usd!r}",
                record_id=pool.address,
                field="liquidity_usd",
            ) from e
        if not liquidity.is_finite():
            raise ParseError(
                f"Non-finite USD liquidity {pool.liquidity_usd!r}",
                record_id=pool.address,
                field="liquidity_usd",
            )
        return liquidity >= Decimal(str(self.min_liquidity_usd))

    def _parse_reserves(self, pool: Pool) -> Tuple[Decimal, Decimal]:
        reserve0 = parse_positive_decimal(pool.reserve0)
        if reserve0 is None:
            raise ParseError(
                f"reserve0 {pool.reserve0!r} is not a positive number",
                record_id=pool.address,
                field="reserve0",
            )
        reserve1 = parse_positive_decimal(pool.reserve1)
        if reserve1 is None:
            raise ParseError(
                f"reserve1 {pool.reserve1!r} is not a positive number",
                record_id=pool.address,
                field="reserve1",
            )
        return reserve0, reserve1

    def edges_for_pool(self, pool: Pool) -> List[DirectedEdge]:
        """
        Derive the directed edges of a single pool.

        Rejected pools and directions are recorded in diagnostics and
        produce no edges.
        """
        token0, token1 = pool.token0.address, pool.token1.address
        if is_null_address(token0) or is_null_address(token1):
            self.diagnostics.record(
                diag.INVALID_POOL, pool.address, "token is the null address", STAGE_BUILD
            )
            return []

        try:
            reserve0, reserve1 = self._parse_reserves(pool)
            if not self._check_liquidity(pool):
                self.diagnostics.record(
                    diag.LOW_LIQUIDITY,
                    pool.address,
                    f"liquidity ${pool.liquidity_usd} below ${self.min_liquidity_usd}",
                    STAGE_BUILD,
                )
                return []
        except ParseError as e:
            self.diagnostics.record_error(diag.PARSE, pool.address, e, STAGE_BUILD)
            return []

        try:
            rate_0to1, rate_1to0 = pool_rates(reserve0, reserve1, self.fee)
        except ArithmeticError as e:
            self.diagnostics.record(
                diag.INVALID_RATE, pool.address, f"price overflow: {e!r}", STAGE_BUILD
            )
            return []

        edges = []
        for src, dst, rate in ((token0, token1, rate_0to1), (token1, token0, rate_1to0)):
            if not is_finite_positive(rate):
                self.diagnostics.record(
                    diag.INVALID_RATE,
                    pool.address,
                    f"rate {src} -> {dst} is {rate}",
                    STAGE_BUILD,
                )
                continue
            edges.append(make_edge(src, dst, rate, pool.address))
        return edges

    def build(self, pools: Iterable[Pool]) -> Network:
        """
        Build the exchange-rate network.

        Raises:
            EmptyNetworkError: If no edge survives filtering
        """
        edges: List[DirectedEdge] = []
        tokens = set()
        pool_count = 0

        for pool in pools:
            pool_count += 1
            for edge in self.edges_for_pool(pool):
                edges.append(edge)
                tokens.add(edge.from_token)
                tokens.add(edge.to_token)

        if not edges:
            raise EmptyNetworkError(
                f"No usable edges from {pool_count} pools",
                details={"pools": pool_count, "dropped": self.diagnostics.by_kind()},
            )

        network = Network(tokens=sorted(tokens), edges=edges)
        logger.info(
            "Network built with %d tokens and %d edges from %d pools",
            len(network.tokens),
            len(network.edges),
            pool_count,
        )
        return network


def construct_network(
    pools: Iterable[Pool],
    fee: float = DEFAULT_FEE,
    min_liquidity_usd: Optional[float] = DEFAULT_MIN_LIQUIDITY_USD,
    diagnostics: Optional[Diagnostics] = None,
) -> Network:
    """Build a Network from pools with the given fee and liquidity floor."""
    return NetworkBuilder(fee, min_liquidity_usd, diagnostics).build(pools)
