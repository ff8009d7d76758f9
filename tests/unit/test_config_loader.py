"""Tests for the config_loader module."""

import dataclasses

import pytest
import yaml

from pool_arbitrage.chain.abi import MULTICALL2, UNISWAP_V2_FACTORY
from pool_arbitrage.config_loader import (
    DetectionConfig,
    FetchConfig,
    RpcConfig,
    ScannerConfig,
    SubgraphConfig,
    config_from_dict,
    get_default_config,
    load_config,
    load_yaml_config,
    resolve_rpc_url,
    resolve_subgraph_api_key,
)
from pool_arbitrage.exceptions import ConfigurationError


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="scanner.yaml"):
        path = tmp_path / name
        if isinstance(data, str):
            path.write_text(data)
        else:
            path.write_text(yaml.dump(data))
        return path

    return _write


def test_load_yaml_config_valid(write_config):
    """Test loading a valid YAML configuration."""
    data = {"source": "onchain", "fetch": {"batch_size": 20}}
    assert load_yaml_config(write_config(data)) == data


def test_load_yaml_config_file_not_found():
    """Test loading config from non-existent file."""
    with pytest.raises(ConfigurationError, match="Configuration file not found"):
        load_yaml_config("/non/existent/file.yaml")


def test_load_yaml_config_empty_file(write_config):
    """Test loading config from empty file."""
    with pytest.raises(ConfigurationError, match="Empty configuration file"):
        load_yaml_config(write_config(""))


def test_load_yaml_config_invalid_yaml(write_config):
    """Test loading config with invalid YAML."""
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_yaml_config(write_config("fetch: [unclosed"))


def test_load_yaml_config_non_mapping(write_config):
    with pytest.raises(ConfigurationError, match="must be a mapping"):
        load_yaml_config(write_config("- a\n- b\n"))


def test_default_config():
    """Test default configuration values."""
    config = get_default_config()
    assert isinstance(config, ScannerConfig)
    assert config.source == "onchain"
    assert config.rpc.factory_address == UNISWAP_V2_FACTORY
    assert config.rpc.multicall_address == MULTICALL2
    assert config.fetch.batch_size == 30
    assert config.fetch.max_concurrency == 3
    assert config.fetch.fail_fast is False
    assert config.graph.fee == 0.003
    assert config.graph.min_liquidity_usd == 10000.0
    assert config.detection.min_cycle_hops == 3
    assert config.detection.max_cycle_hops == 10


def test_config_from_empty_dict_matches_defaults():
    assert config_from_dict({}) == get_default_config()


def test_load_config_full(write_config):
    path = write_config(
        {
            "source": "subgraph",
            "rpc": {"url": "https://rpc.example", "request_timeout": 10},
            "fetch": {
                "batch_size": 25,
                "max_concurrency": 5,
                "page_size": 50,
                "max_pools": 500,
                "fail_fast": True,
                "scale_reserves": False,
            },
            "graph": {"fee_bps": 25, "min_liquidity_usd": None},
            "detection": {"min_profit": 0.01, "max_cycle_hops": 6},
            "subgraph": {"first": 250, "api_key_env": "MY_KEY"},
        }
    )

    config = load_config(path)

    assert config.source == "subgraph"
    assert config.rpc == RpcConfig(url="https://rpc.example", request_timeout=10.0)
    assert config.fetch == FetchConfig(
        batch_size=25,
        max_concurrency=5,
        page_size=50,
        max_pools=500,
        fail_fast=True,
        scale_reserves=False,
    )
    assert config.graph.fee == pytest.approx(0.0025)
    assert config.graph.min_liquidity_usd is None
    assert config.detection == DetectionConfig(min_profit=0.01, max_cycle_hops=6)
    assert config.subgraph.first == 250
    assert config.subgraph.api_key_env == "MY_KEY"


def test_config_is_frozen():
    config = get_default_config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.source = "subgraph"


@pytest.mark.parametrize(
    "data,message",
    [
        ({"source": "cex"}, "Unknown pool source"),
        ({"fetch": {"batch_size": 0}}, "batch_size"),
        ({"fetch": {"max_concurrency": -1}}, "max_concurrency"),
        ({"fetch": {"batch_size": "thirty"}}, "batch_size"),
        ({"fetch": {"max_pools": 0}}, "max_pools"),
        ({"fetch": [1, 2]}, "must be a mapping"),
        ({"graph": {"fee": 1.0}}, "Swap fee"),
        ({"graph": {"fee": "cheap"}}, "must be a number"),
        ({"graph": {"fee_bps": None}}, "Swap fee"),
        ({"detection": {"min_cycle_hops": 1}}, "hop bounds"),
        ({"detection": {"min_cycle_hops": 2}}, "hop bounds"),
        ({"detection": {"max_cycle_hops": 11}}, "hop bounds"),
        ({"detection": {"min_cycle_hops": 5, "max_cycle_hops": 4}}, "hop bounds"),
        ({"detection": {"min_profit": -0.1}}, "min_profit"),
        ({"detection": {"consumer_min_profit_pct": None}}, "consumer_min_profit_pct"),
        ({"detection": {"consumer_min_profit_pct": "high"}}, "consumer_min_profit_pct"),
        ({"fetch": {"fail_fast": "false"}}, "fail_fast"),
        ({"fetch": {"fail_fast": 1}}, "fail_fast"),
        ({"fetch": {"scale_reserves": "yes"}}, "scale_reserves"),
        ({"fetch": {"scale_reserves": None}}, "scale_reserves"),
    ],
)
def test_invalid_values(data, message):
    with pytest.raises(ConfigurationError, match=message):
        config_from_dict(data)


def test_boolean_flags_from_yaml(write_config):
    path = write_config("fetch:\n  fail_fast: false\n  scale_reserves: no\n")
    config = load_config(path)
    assert config.fetch.fail_fast is False
    assert config.fetch.scale_reserves is False


def test_quoted_boolean_rejected(write_config):
    path = write_config('fetch:\n  fail_fast: "false"\n')
    with pytest.raises(ConfigurationError, match="fail_fast"):
        load_config(path)


def test_consumer_threshold_accepts_numbers():
    config = config_from_dict({"detection": {"consumer_min_profit_pct": 2}})
    assert config.detection.consumer_min_profit_pct == 2.0
    assert isinstance(config.detection.consumer_min_profit_pct, float)


class TestSecrets:
    def test_rpc_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCANNER_RPC", "https://env.example")
        config = RpcConfig(url="https://file.example", url_env="SCANNER_RPC")
        assert resolve_rpc_url(config) == "https://env.example"

    def test_rpc_url_from_config(self, monkeypatch):
        monkeypatch.delenv("SCANNER_RPC_UNSET", raising=False)
        config = RpcConfig(url="https://file.example", url_env="SCANNER_RPC_UNSET")
        assert resolve_rpc_url(config) == "https://file.example"

    def test_rpc_url_missing(self, monkeypatch):
        monkeypatch.delenv("SCANNER_RPC_UNSET", raising=False)
        with pytest.raises(ConfigurationError, match="SCANNER_RPC_UNSET"):
            resolve_rpc_url(RpcConfig(url_env="SCANNER_RPC_UNSET"))

    def test_subgraph_api_key(self, monkeypatch):
        monkeypatch.setenv("SCANNER_GRAPH_KEY", "secret")
        assert resolve_subgraph_api_key(SubgraphConfig(api_key_env="SCANNER_GRAPH_KEY")) == "secret"
        monkeypatch.delenv("SCANNER_GRAPH_KEY")
        assert resolve_subgraph_api_key(SubgraphConfig(api_key_env="SCANNER_GRAPH_KEY")) is None
