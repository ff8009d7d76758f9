#!/usr/bin/env python3
"""
Pool arbitrage scanner CLI.

Runs one scan (pool retrieval, network construction, cycle detection) and
prints the detected loops in a console-friendly format.

Usage:
    python3 run_scanner.py
    python3 run_scanner.py --config configs/scanner.yaml
    python3 run_scanner.py --config configs/scanner.yaml --source subgraph
"""

import argparse
import asyncio
import dataclasses
import sys
from typing import Dict, List, Optional

import logging_config
from pool_arbitrage.config_loader import get_default_config, load_config
from pool_arbitrage.exceptions import (
    ConfigurationError,
    EmptyNetworkError,
    TransportError,
)
from pool_arbitrage.pipeline import ScanResult, run_scan
from pool_arbitrage.utils import format_profit


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="DEX pool arbitrage scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan with defaults (RPC_URL from the environment or .env)
  python3 run_scanner.py

  # Use custom config
  python3 run_scanner.py --config configs/scanner.yaml

  # Quick scan of the first 300 factory pairs
  python3 run_scanner.py --max-pools 300
        """,
    )

    parser.add_argument("--config", help="Path to config YAML file")
    parser.add_argument(
        "--source",
        choices=["onchain", "subgraph"],
        help="Pool source (overrides config setting)",
    )
    parser.add_argument(
        "--max-pools",
        type=int,
        help="Only resolve the first N factory pairs (overrides config setting)",
    )
    parser.add_argument(
        "--top", type=int, default=10, help="Number of cycles to print (default: 10)"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    return parser.parse_args(argv)


def token_symbols(result: ScanResult) -> Dict[str, str]:
    symbols = {}
    for pool in result.pools:
        for token in (pool.token0, pool.token1):
            symbols[token.address] = token.symbol or token.address[:10]
    return symbols


def print_summary(result: ScanResult, top: int = 10) -> None:
    """Print the scan outcome."""
    symbols = token_symbols(result)
    network = result.network

    print()
    print("=" * 60)
    print(f"Pools: {len(result.pools)}" + ("  (partial)" if result.partial else ""))
    if network is not None:
        print(f"Network: {len(network.tokens)} tokens, {len(network.edges)} edges")
    print(f"Dropped: {result.diagnostics.summary()}")
    print(f"Cycles: {len(result.cycles)} found, {len(result.selected)} selected")
    print("=" * 60)

    cycles = sorted(result.cycles, key=lambda c: c.profit_pct, reverse=True)
    for rank, cycle in enumerate(cycles[:top], 1):
        route = " -> ".join(symbols.get(t, t[:10]) for t in cycle.path)
        print(f"{rank:>3}. {format_profit(cycle.profit_pct / 100.0):>9}  {route}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    if args.debug:
        logging_config.setup_debug()
    else:
        logging_config.setup()

    # Load config
    try:
        config = load_config(args.config) if args.config else get_default_config()
    except ConfigurationError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1

    if args.source:
        config = dataclasses.replace(config, source=args.source)
    if args.max_pools is not None:
        if args.max_pools <= 0:
            print("❌ --max-pools must be positive", file=sys.stderr)
            return 1
        config = dataclasses.replace(
            config, fetch=dataclasses.replace(config.fetch, max_pools=args.max_pools)
        )

    # Run scanner
    try:
        result = asyncio.run(run_scan(config))
    except KeyboardInterrupt:
        print("\n\n⏸ Stopped by user")
        return 0
    except ConfigurationError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1
    except EmptyNetworkError as e:
        print(f"❌ No usable pools: {e}", file=sys.stderr)
        return 1
    except TransportError as e:
        print(f"❌ Transport failed: {e}", file=sys.stderr)
        return 1

    print_summary(result, top=args.top)
    return 0


if __name__ == "__main__":
    sys.exit(main())
