"""
Dependency injection interfaces for the chain access layer.

The fetch layer only needs two call shapes from a blockchain endpoint, so it
depends on this protocol rather than on a concrete web3 provider. Tests plug
in an in-memory transport.
"""

from typing import Any, Dict, List, Protocol, Sequence, Tuple, runtime_checkable

# (target address, ABI-encoded call data)
RawCall = Tuple[str, bytes]


@runtime_checkable
class ChainTransport(Protocol):
    """Protocol for read-only contract access."""

    async def call_function(
        self, address: str, abi: List[Dict[str, Any]], fn_name: str, *args: Any
    ) -> Any:
        """Invoke a read-only contract function and return the decoded result."""
        ...

    async def aggregate(self, calls: Sequence[RawCall]) -> List[bytes]:
        """Submit a batch of raw calls, return raw results in call order."""
        ...
