"""
Exception hierarchy for the pool arbitrage scanner.

Transport failures abort the owning batch, decode and parse failures skip a
single record, and an empty network is the one terminal error of a run.
"""

from typing import Any, Dict, Optional


class PoolArbitrageError(Exception):
    """Base exception for all pool arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(PoolArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class TransportError(PoolArbitrageError):
    """Raised when an RPC or indexer request fails."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class DecodeError(PoolArbitrageError):
    """Raised when a call return payload cannot be decoded."""

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.record_id = record_id


class ParseError(PoolArbitrageError):
    """Raised when a numeric field (reserve, liquidity, decimals) is malformed."""

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.record_id = record_id
        self.field = field


class GraphInconsistencyError(PoolArbitrageError):
    """Raised when a reconstructed cycle has a hop with no matching edge."""

    def __init__(
        self,
        message: str,
        from_token: Optional[str] = None,
        to_token: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.from_token = from_token
        self.to_token = to_token


class EmptyNetworkError(PoolArbitrageError):
    """Raised when no usable edge survives filtering, so detection cannot run."""

    pass
