"""
Downstream consumer stub: ranks detected cycles for execution.

No transaction is built or submitted. Cycles are sanity-filtered on profit,
ranked best first and logged.
"""

from typing import List, Sequence

from .models import ArbitrageCycle
from .utils import format_profit, get_logger

logger = get_logger(__name__)

DEFAULT_SANITY_PROFIT_PCT = 0.5


def rank_cycles(cycles: Sequence[ArbitrageCycle]) -> List[ArbitrageCycle]:
    """Sort cycles by profit, best first; ties keep detection order."""
    return sorted(cycles, key=lambda c: c.profit_pct, reverse=True)


def execute_arbitrage(
    cycles: Sequence[ArbitrageCycle],
    min_profit_pct: float = DEFAULT_SANITY_PROFIT_PCT,
    max_cycles: int = 10,
) -> List[ArbitrageCycle]:
    """
    Select the cycles that would be handed to execution.

    Args:
        cycles: Detected cycles
        min_profit_pct: Keep only cycles whose profit_pct exceeds this
        max_cycles: Number of top cycles to log

    Returns:
        Cycles above the sanity threshold, ranked by profit
    """
    logger.info("Executing arbitrage for %d cycles", len(cycles))
    selected = rank_cycles([c for c in cycles if c.profit_pct > min_profit_pct])

    for rank, cycle in enumerate(selected[:max_cycles], 1):
        logger.info(
            "#%d %s via %s (x%.6f)",
            rank,
            format_profit(cycle.profit_pct / 100.0),
            " -> ".join(cycle.path),
            cycle.product,
        )
    if len(selected) > max_cycles:
        logger.info("... and %d more cycles", len(selected) - max_cycles)

    return selected
