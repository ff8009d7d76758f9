"""
Configuration loading and normalization for the pool arbitrage scanner.

Loads a YAML file, applies defaults and returns frozen configuration objects.
Secrets (RPC URL, subgraph API key) may come from environment variables,
optionally populated from a .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .chain.abi import MULTICALL2, UNISWAP_V2_FACTORY
from .chain.pool_fetcher import ADDR_BATCH, DISCOVERY_PAGE_SIZE, MAX_CONCURRENCY
from .chain.subgraph import UNISWAP_V2_SUBGRAPH
from .exceptions import ConfigurationError
from .executor import DEFAULT_SANITY_PROFIT_PCT
from .graph.detector import MAX_CYCLE_HOPS, MIN_CYCLE_HOPS
from .graph.network_builder import DEFAULT_FEE, DEFAULT_MIN_LIQUIDITY_USD
from .utils import basis_points_to_decimal

SOURCES = ("onchain", "subgraph")


@dataclass(frozen=True)
class RpcConfig:
    """Normalized RPC endpoint configuration."""

    url: Optional[str] = None
    url_env: str = "RPC_URL"
    factory_address: str = UNISWAP_V2_FACTORY
    multicall_address: str = MULTICALL2
    request_timeout: float = 30.0


@dataclass(frozen=True)
class FetchConfig:
    """Normalized pool fetching configuration."""

    batch_size: int = ADDR_BATCH
    max_concurrency: int = MAX_CONCURRENCY
    page_size: int = DISCOVERY_PAGE_SIZE
    max_pools: Optional[int] = None
    fail_fast: bool = False
    scale_reserves: bool = True


@dataclass(frozen=True)
class GraphConfig:
    """Normalized graph construction configuration."""

    fee: float = DEFAULT_FEE
    min_liquidity_usd: Optional[float] = DEFAULT_MIN_LIQUIDITY_USD


@dataclass(frozen=True)
class DetectionConfig:
    """Normalized cycle detection configuration."""

    min_profit: float = 0.0
    min_cycle_hops: int = MIN_CYCLE_HOPS
    max_cycle_hops: int = MAX_CYCLE_HOPS
    consumer_min_profit_pct: float = DEFAULT_SANITY_PROFIT_PCT


@dataclass(frozen=True)
class SubgraphConfig:
    """Normalized subgraph feed configuration."""

    endpoint: str = UNISWAP_V2_SUBGRAPH
    api_key_env: str = "GRAPH_API_KEY"
    first: int = 100
    timeout: float = 30.0


@dataclass(frozen=True)
class ScannerConfig:
    """Immutable runtime configuration object."""

    source: str = "onchain"
    rpc: RpcConfig = field(default_factory=RpcConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    subgraph: SubgraphConfig = field(default_factory=SubgraphConfig)


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

    return config_dict


def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_dict.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return section


def _positive_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"'{key}' must be a positive integer, got {value!r}")
    return value


def _optional_float(section: Dict[str, Any], key: str, default: Optional[float]):
    value = section.get(key, default)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")


def _required_float(section: Dict[str, Any], key: str, default: float) -> float:
    value = _optional_float(section, key, default)
    if value is None:
        raise ConfigurationError(f"'{key}' must be a number, got None")
    return value


def _bool(section: Dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be true or false, got {value!r}")
    return value


def _normalize_rpc_config(config_dict: Dict[str, Any]) -> RpcConfig:
    """Normalize RPC configuration with defaults."""
    rpc = _section(config_dict, "rpc")
    return RpcConfig(
        url=rpc.get("url"),
        url_env=rpc.get("url_env", "RPC_URL"),
        factory_address=rpc.get("factory_address", UNISWAP_V2_FACTORY),
        multicall_address=rpc.get("multicall_address", MULTICALL2),
        request_timeout=_optional_float(rpc, "request_timeout", 30.0),
    )


def _normalize_fetch_config(config_dict: Dict[str, Any]) -> FetchConfig:
    """Normalize fetch configuration with defaults."""
    fetch = _section(config_dict, "fetch")
    max_pools = fetch.get("max_pools")
    if max_pools is not None:
        max_pools = _positive_int(fetch, "max_pools", 1)
    return FetchConfig(
        batch_size=_positive_int(fetch, "batch_size", ADDR_BATCH),
        max_concurrency=_positive_int(fetch, "max_concurrency", MAX_CONCURRENCY),
        page_size=_positive_int(fetch, "page_size", DISCOVERY_PAGE_SIZE),
        max_pools=max_pools,
        fail_fast=_bool(fetch, "fail_fast", False),
        scale_reserves=_bool(fetch, "scale_reserves", True),
    )


def _normalize_graph_config(config_dict: Dict[str, Any]) -> GraphConfig:
    """Normalize graph configuration; fee may be given as fee or fee_bps."""
    graph = _section(config_dict, "graph")
    if "fee_bps" in graph:
        fee_bps = _optional_float(graph, "fee_bps", None)
        fee = None if fee_bps is None else basis_points_to_decimal(fee_bps)
    else:
        fee = _optional_float(graph, "fee", DEFAULT_FEE)
    if fee is None or not 0 <= fee < 1:
        raise ConfigurationError(f"Swap fee must be in [0, 1), got {fee!r}")
    return GraphConfig(
        fee=fee,
        min_liquidity_usd=_optional_float(
            graph, "min_liquidity_usd", DEFAULT_MIN_LIQUIDITY_USD
        ),
    )


def _normalize_detection_config(config_dict: Dict[str, Any]) -> DetectionConfig:
    """Normalize detection configuration with defaults."""
    detection = _section(config_dict, "detection")
    min_hops = _positive_int(detection, "min_cycle_hops", MIN_CYCLE_HOPS)
    max_hops = _positive_int(detection, "max_cycle_hops", MAX_CYCLE_HOPS)
    if min_hops < MIN_CYCLE_HOPS or max_hops > MAX_CYCLE_HOPS or max_hops < min_hops:
        raise ConfigurationError(
            f"Invalid cycle hop bounds [{min_hops}, {max_hops}] "
            f"(must lie within [{MIN_CYCLE_HOPS}, {MAX_CYCLE_HOPS}])"
        )
    min_profit = _optional_float(detection, "min_profit", 0.0)
    if min_profit is None or min_profit < 0:
        raise ConfigurationError(f"min_profit must be >= 0, got {min_profit!r}")
    return DetectionConfig(
        min_profit=min_profit,
        min_cycle_hops=min_hops,
        max_cycle_hops=max_hops,
        consumer_min_profit_pct=_required_float(
            detection, "consumer_min_profit_pct", DEFAULT_SANITY_PROFIT_PCT
        ),
    )


def _normalize_subgraph_config(config_dict: Dict[str, Any]) -> SubgraphConfig:
    """Normalize subgraph configuration with defaults."""
    subgraph = _section(config_dict, "subgraph")
    return SubgraphConfig(
        endpoint=subgraph.get("endpoint", UNISWAP_V2_SUBGRAPH),
        api_key_env=subgraph.get("api_key_env", "GRAPH_API_KEY"),
        first=_positive_int(subgraph, "first", 100),
        timeout=_optional_float(subgraph, "timeout", 30.0),
    )


def config_from_dict(config_dict: Dict[str, Any]) -> ScannerConfig:
    """
    Normalize a raw configuration mapping.

    Raises:
        ConfigurationError: If any value is missing or invalid
    """
    source = config_dict.get("source", "onchain")
    if source not in SOURCES:
        raise ConfigurationError(
            f"Unknown pool source '{source}' (must be one of {', '.join(SOURCES)})"
        )

    return ScannerConfig(
        source=source,
        rpc=_normalize_rpc_config(config_dict),
        fetch=_normalize_fetch_config(config_dict),
        graph=_normalize_graph_config(config_dict),
        detection=_normalize_detection_config(config_dict),
        subgraph=_normalize_subgraph_config(config_dict),
    )


def load_config(config_path: Union[str, Path]) -> ScannerConfig:
    """
    Load and normalize a scanner configuration file.

    Raises:
        ConfigurationError: If the configuration cannot be loaded or is invalid
    """
    return config_from_dict(load_yaml_config(config_path))


def resolve_rpc_url(config: RpcConfig) -> str:
    """
    Resolve the RPC URL from the environment or the config file.

    Raises:
        ConfigurationError: If neither source provides a URL
    """
    load_dotenv()
    rpc_url = os.getenv(config.url_env) or config.url
    if not rpc_url:
        raise ConfigurationError(
            f"RPC URL environment variable {config.url_env} not set and no rpc.url in config"
        )
    return rpc_url


def resolve_subgraph_api_key(config: SubgraphConfig) -> Optional[str]:
    """API key for the subgraph gateway, if one is configured."""
    load_dotenv()
    return os.getenv(config.api_key_env) or None


def get_default_config() -> ScannerConfig:
    """Get a default configuration for testing or fallback purposes."""
    return ScannerConfig()
