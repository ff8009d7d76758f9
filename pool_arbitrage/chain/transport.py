"""
web3-backed implementation of the chain transport.

Read-only calls go through ``AsyncWeb3`` contract objects; batches go through
a Multicall2 ``aggregate`` call so up to one chunk of pool reads costs a
single round trip.
"""

from typing import Any, Dict, List, Optional, Sequence

from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput

from ..exceptions import DecodeError, TransportError
from ..interfaces import RawCall
from ..utils import get_logger
from .abi import MULTICALL2, MULTICALL2_ABI

logger = get_logger(__name__)


class Web3Transport:
    """ChainTransport over an async HTTP JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        multicall_address: str = MULTICALL2,
        request_timeout: float = 30.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize the transport.

        Args:
            rpc_url: HTTP(S) JSON-RPC endpoint
            multicall_address: Multicall2 contract used for batched reads
            request_timeout: Per-request timeout in seconds
            w3: Pre-built AsyncWeb3 instance (overrides rpc_url)
        """
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc_url, request_kwargs={"timeout": request_timeout}
            )
        )
        self.multicall = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(multicall_address),
            abi=MULTICALL2_ABI,
        )
        logger.debug("Web3 transport initialized (multicall: %s)", multicall_address)

    async def call_function(
        self, address: str, abi: List[Dict[str, Any]], fn_name: str, *args: Any
    ) -> Any:
        contract = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=abi
        )
        try:
            return await getattr(contract.functions, fn_name)(*args).call()
        except BadFunctionCallOutput as e:
            raise DecodeError(
                f"{fn_name}() on {address} returned unusable data: {e}",
                record_id=address,
            ) from e
        except Exception as e:
            raise TransportError(
                f"{fn_name}() on {address} failed: {e}", endpoint=self.rpc_url
            ) from e

    async def aggregate(self, calls: Sequence[RawCall]) -> List[bytes]:
        if not calls:
            return []
        payload = [
            (AsyncWeb3.to_checksum_address(target), bytes(data))
            for target, data in calls
        ]
        try:
            _block_number, return_data = await self.multicall.functions.aggregate(
                payload
            ).call()
        except Exception as e:
            raise TransportError(
                f"Multicall aggregate of {len(payload)} calls failed: {e}",
                endpoint=self.rpc_url,
                details={"calls": len(payload)},
            ) from e
        return [bytes(raw) for raw in return_data]
