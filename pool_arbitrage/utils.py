"""
Common utilities and helper functions for the pool arbitrage scanner.

Logging setup, address normalization, batching and small numeric helpers
shared by the fetch and graph layers.
"""

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, List, Optional, Sequence, TypeVar, Union

from web3 import Web3

T = TypeVar("T")

NULL_ADDRESS = "0x0000000000000000000000000000000000000000"


# Logging utilities
def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a logger with consistent formatting.

    Args:
        name: Logger name (typically __name__)
        level: Logging level

    Returns:
        Configured logger with structured output
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


# Address utilities
def canonical_address(address: Union[str, bytes]) -> str:
    """
    Normalize an address to its canonical lowercase 0x-prefixed form.

    Raises:
        ValueError: If the value is not a 20-byte address
    """
    if isinstance(address, (bytes, bytearray)):
        address = "0x" + bytes(address).hex()
    if not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address).lower()


def is_null_address(address: str) -> bool:
    """Check whether an address is the zero address."""
    return address.lower() == NULL_ADDRESS


# Batching utilities
def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


# Numeric utilities
def parse_positive_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse numeric text into a positive, finite Decimal.

    Returns:
        The parsed value, or None if it is malformed, non-finite or not > 0
    """
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not parsed.is_finite() or parsed <= 0:
        return None
    return parsed


def is_finite_positive(value: float) -> bool:
    """Check that a float is finite and strictly positive."""
    return math.isfinite(value) and value > 0


def basis_points_to_decimal(bps: float) -> float:
    """Convert basis points to decimal (100 bps = 0.01)."""
    return bps / 10000.0


def format_profit(decimal_profit):
    """Format a decimal profit value as a percentage string.

    Examples:
        >>> format_profit(0.0123)
        '+1.23%'
        >>> format_profit(-0.0456)
        '-4.56%'
    """
    percentage = decimal_profit * 100

    if percentage >= 0:
        return f"+{percentage:.2f}%"
    else:
        return f"{percentage:.2f}%"
