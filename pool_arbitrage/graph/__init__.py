"""
Exchange-rate graph construction and negative-cycle detection.
"""

from .detector import ArbitrageDetector, find_arbitrage, index_network
from .network_builder import NetworkBuilder, construct_network

__all__ = [
    "ArbitrageDetector",
    "NetworkBuilder",
    "construct_network",
    "find_arbitrage",
    "index_network",
]
