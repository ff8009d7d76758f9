"""Cross-check cycle detection against networkx on randomized pool sets."""

import itertools
import random

import networkx as nx
import pytest

from conftest import make_pool
from pool_arbitrage.graph.detector import find_arbitrage
from pool_arbitrage.graph.network_builder import NetworkBuilder

TOKENS = [f"0x{i:040x}" for i in range(1, 8)]


def random_pools(seed):
    """Pools priced off a shared valuation, each skewed by up to 2%."""
    rng = random.Random(seed)
    value = {t: rng.uniform(1, 10) for t in TOKENS}
    pairs = rng.sample(list(itertools.combinations(TOKENS, 2)), 10)
    pools = []
    for i, (token0, token1) in enumerate(pairs):
        depth = rng.uniform(1e3, 1e6)
        skew = 1 + rng.uniform(-0.02, 0.02)
        pools.append(
            make_pool(
                f"0x{0x1000 + i:040x}",
                token0,
                token1,
                repr(depth / value[token0]),
                repr(depth / value[token1] * skew),
            )
        )
    return pools


def to_digraph(network):
    graph = nx.DiGraph()
    graph.add_nodes_from(network.tokens)
    for edge in network.edges:
        graph.add_edge(edge.from_token, edge.to_token, weight=edge.weight)
    return graph


@pytest.mark.parametrize("seed", range(25))
def test_detection_agrees_with_networkx(seed):
    network = NetworkBuilder(min_liquidity_usd=None).build(random_pools(seed))
    graph = to_digraph(network)

    cycles = find_arbitrage(network)

    # two-hop loops through one pool always lose the fee twice, so any
    # negative cycle here has at least three hops
    assert bool(cycles) == nx.negative_edge_cycle(graph, weight="weight")
    for cycle in cycles:
        hops = list(zip(cycle.path, cycle.path[1:]))
        assert all(graph.has_edge(u, v) for u, v in hops)
        assert sum(graph[u][v]["weight"] for u, v in hops) < 0
