"""
Negative-cycle arbitrage detection on the exchange-rate network.

A single Bellman-Ford pass runs with every distance starting at zero, which
is the same as relaxing from an implicit zero-weight super-source connected
to every token. One pass therefore finds negative cycles reachable from any
token instead of repeating the search once per source.

All arithmetic is double precision. Near-threshold cycles are approximate and
may be included or excluded differently for equivalent, reordered input.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from .. import diagnostics as diag
from ..diagnostics import Diagnostics
from ..exceptions import EmptyNetworkError, GraphInconsistencyError
from ..models import ArbitrageCycle, DirectedEdge, Network
from ..utils import get_logger

logger = get_logger(__name__)

MIN_CYCLE_HOPS = 3
MAX_CYCLE_HOPS = 10

STAGE_DETECT = "detect"


@dataclass(frozen=True)
class IndexedGraph:
    """
    Dense integer view of a Network, valid for one detection run.

    Attributes:
        tokens: Token id for each index
        index: Token id -> index
        edges: Network edges, in network order
        sources: Source index of each edge
        targets: Target index of each edge
        adjacency: Source index -> outgoing edge indices, in edge order
    """

    tokens: List[str]
    index: Dict[str, int]
    edges: List[DirectedEdge]
    sources: List[int]
    targets: List[int]
    adjacency: List[List[int]]

    @property
    def size(self) -> int:
        return len(self.tokens)


def index_network(network: Network) -> IndexedGraph:
    """
    Map each token to 0..n-1 and build the adjacency list.

    Raises:
        GraphInconsistencyError: If an edge endpoint is not in the token set
    """
    tokens = list(network.tokens)
    index = {token: i for i, token in enumerate(tokens)}
    if len(index) != len(tokens):
        raise GraphInconsistencyError("Network token list contains duplicates")

    sources: List[int] = []
    targets: List[int] = []
    adjacency: List[List[int]] = [[] for _ in tokens]
    for edge_index, edge in enumerate(network.edges):
        if edge.from_token not in index or edge.to_token not in index:
            raise GraphInconsistencyError(
                f"Edge {edge.from_token} -> {edge.to_token} references an unknown token",
                from_token=edge.from_token,
                to_token=edge.to_token,
            )
        u, v = index[edge.from_token], index[edge.to_token]
        sources.append(u)
        targets.append(v)
        adjacency[u].append(edge_index)

    return IndexedGraph(
        tokens=tokens,
        index=index,
        edges=list(network.edges),
        sources=sources,
        targets=targets,
        adjacency=adjacency,
    )


def relax(graph: IndexedGraph) -> Tuple[List[float], List[int]]:
    """
    Run up to n-1 Bellman-Ford rounds from the implicit super-source.

    Returns:
        (dist, pred) where pred[v] is -1 for nodes never improved
    """
    n = graph.size
    dist = [0.0] * n
    pred = [-1] * n

    for _ in range(max(n - 1, 0)):
        updated = False
        for edge_index, edge in enumerate(graph.edges):
            u, v = graph.sources[edge_index], graph.targets[edge_index]
            candidate = dist[u] + edge.weight
            if candidate < dist[v]:
                dist[v] = candidate
                pred[v] = u
                updated = True
        if not updated:
            break

    return dist, pred


def reconstruct_cycle(pred: List[int], node: int) -> Optional[List[int]]:
    """
    Recover the closed cycle that ``node`` lies on or downstream of.

    Walks predecessors n times to land inside the cycle, then collects nodes
    until the landing node recurs. Returns a closed forward path
    (first == last), or None if the predecessor chain is broken.
    """
    n = len(pred)
    current = node
    for _ in range(n):
        current = pred[current]
        if current < 0:
            return None

    start = current
    cycle = [start]
    current = pred[start]
    while current != start:
        if current < 0 or len(cycle) > n:
            return None
        cycle.append(current)
        current = pred[current]
    cycle.append(start)
    cycle.reverse()
    return cycle


def cycle_key(cycle: List[int]) -> Tuple[int, ...]:
    """Rotation-independent identity of a closed cycle."""
    body = cycle[:-1]
    pivot = body.index(min(body))
    return tuple(body[pivot:] + body[:pivot])


def cycle_product(graph: IndexedGraph, cycle: List[int]) -> float:
    """
    Multiply edge rates along consecutive hops of a closed cycle.

    For each hop the first outgoing edge whose target matches is used; when
    several pools connect the same pair only that one is considered.

    Raises:
        GraphInconsistencyError: If a hop has no matching edge
    """
    product = 1.0
    for u, v in zip(cycle, cycle[1:]):
        match = None
        for edge_index in graph.adjacency[u]:
            if graph.targets[edge_index] == v:
                match = graph.edges[edge_index]
                break
        if match is None:
            raise GraphInconsistencyError(
                f"No edge {graph.tokens[u]} -> {graph.tokens[v]}",
                from_token=graph.tokens[u],
                to_token=graph.tokens[v],
            )
        product *= match.rate
    return product


class ArbitrageDetector:
    """
    Finds profitable token loops as negative cycles in log-space.

    Args:
        min_profit: Minimum profit as a fraction (0.01 = 1%)
        min_cycle_hops: Shortest accepted loop, in hops
        max_cycle_hops: Longest accepted loop, in hops
        diagnostics: Collector for discarded cycles
    """

    def __init__(
        self,
        min_profit: float = 0.0,
        min_cycle_hops: int = MIN_CYCLE_HOPS,
        max_cycle_hops: int = MAX_CYCLE_HOPS,
        diagnostics: Optional[Diagnostics] = None,
    ):
        if not MIN_CYCLE_HOPS <= min_cycle_hops <= max_cycle_hops <= MAX_CYCLE_HOPS:
            raise ValueError(
                f"Invalid cycle hop bounds [{min_cycle_hops}, {max_cycle_hops}]"
            )
        self.min_profit = min_profit
        self.min_cycle_hops = min_cycle_hops
        self.max_cycle_hops = max_cycle_hops
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def detect(self, network: Network) -> List[ArbitrageCycle]:
        """
        Detect arbitrage cycles in a network.

        Returns:
            Unordered list of cycles above the profit threshold. Overlapping
            cycles found from different nodes are not merged.

        Raises:
            EmptyNetworkError: If the network has no edges
        """
        if network.is_empty:
            raise EmptyNetworkError("Cannot detect cycles in an empty network")

        graph = index_network(network)
        dist, pred = relax(graph)

        results: List[ArbitrageCycle] = []
        on_reported: Set[int] = set()
        examined: Set[Tuple[int, ...]] = set()

        for edge_index, edge in enumerate(graph.edges):
            u, v = graph.sources[edge_index], graph.targets[edge_index]
            if not dist[u] + edge.weight < dist[v]:
                continue
            if v in on_reported:
                continue

            cycle = reconstruct_cycle(pred, v)
            if cycle is None:
                self.diagnostics.record(
                    diag.INVALID_CYCLE,
                    graph.tokens[v],
                    "broken predecessor chain",
                    STAGE_DETECT,
                )
                continue

            key = cycle_key(cycle)
            if key in examined:
                continue
            examined.add(key)

            path = [graph.tokens[i] for i in cycle]
            hops = len(cycle) - 1
            if hops < self.min_cycle_hops or hops > self.max_cycle_hops:
                self.diagnostics.record(
                    diag.INVALID_CYCLE,
                    " -> ".join(path),
                    f"{hops} hops outside [{self.min_cycle_hops}, {self.max_cycle_hops}]",
                    STAGE_DETECT,
                )
                continue

            try:
                product = cycle_product(graph, cycle)
            except GraphInconsistencyError as e:
                self.diagnostics.record_error(
                    diag.GRAPH_INCONSISTENCY, " -> ".join(path), e, STAGE_DETECT
                )
                continue

            profit_pct = (product - 1.0) * 100.0
            if not (
                math.isfinite(product)
                and product > 1.0
                and profit_pct > self.min_profit * 100.0
            ):
                logger.debug(
                    "Cycle %s below threshold (product %.8f)", " -> ".join(path), product
                )
                continue

            results.append(
                ArbitrageCycle(
                    start_token=path[0],
                    path=path,
                    product=product,
                    profit_pct=profit_pct,
                )
            )
            on_reported.update(cycle)

        logger.info(
            "Found %d arbitrage cycles across %d tokens", len(results), graph.size
        )
        return results


def find_arbitrage(
    network: Network,
    min_profit: float = 0.0,
    diagnostics: Optional[Diagnostics] = None,
) -> List[ArbitrageCycle]:
    """Detect arbitrage cycles with the default hop bounds."""
    return ArbitrageDetector(min_profit=min_profit, diagnostics=diagnostics).detect(
        network
    )
