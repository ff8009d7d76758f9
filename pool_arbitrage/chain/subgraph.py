"""
Indexed pool feed from a Uniswap V2 style subgraph.

Returns the same Pool records as on-chain discovery, with reserves already
in human units and the indexer's USD liquidity attached.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp

from .. import diagnostics as diag
from ..diagnostics import Diagnostics
from ..exceptions import DecodeError, TransportError
from ..models import Pool, Token
from ..utils import canonical_address, get_logger

logger = get_logger(__name__)

UNISWAP_V2_SUBGRAPH = (
    "https://gateway.thegraph.com/api/subgraphs/id/"
    "A3Np3RQbaBA6oKJgiwDJeo5T3zrYfGHPWFYayMwtNDum"
)

STAGE_SUBGRAPH = "subgraph"

PAIRS_QUERY = """
query TopPairs($first: Int!) {
  pairs(
    first: $first,
    orderBy: reserveUSD,
    orderDirection: desc,
    where: {
      token0_: { derivedETH_gt: 0 },
      token1_: { derivedETH_gt: 0 }
    }
  ) {
    id
    reserveUSD
    reserve0
    reserve1
    token0 { id symbol name decimals }
    token1 { id symbol name decimals }
  }
}
"""


def parse_token(entry: Dict[str, Any], record_id: str) -> Token:
    try:
        return Token(
            address=canonical_address(entry["id"]),
            symbol=str(entry["symbol"]),
            name=str(entry["name"]),
            decimals=str(entry["decimals"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed token entry: {e}", record_id=record_id) from e


def parse_pair(entry: Dict[str, Any]) -> Pool:
    """
    Convert one subgraph ``pairs`` entry into a Pool.

    Raises:
        DecodeError: If a required field is missing or not the expected shape
    """
    record_id = str(entry.get("id", "?")) if isinstance(entry, dict) else "?"
    try:
        liquidity = entry.get("reserveUSD")
        return Pool(
            address=canonical_address(entry["id"]),
            token0=parse_token(entry["token0"], record_id),
            token1=parse_token(entry["token1"], record_id),
            reserve0=str(entry["reserve0"]),
            reserve1=str(entry["reserve1"]),
            liquidity_usd=None if liquidity is None else str(liquidity),
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise DecodeError(f"Malformed pair entry: {e}", record_id=record_id) from e


class SubgraphPoolSource:
    """
    Pool source backed by a GraphQL subgraph.

    Args:
        endpoint: GraphQL endpoint URL
        api_key: Optional bearer token for the gateway
        first: Number of pairs to request, ordered by USD reserve
        timeout: Total request timeout in seconds
        session: Existing aiohttp session (caller keeps ownership)
        diagnostics: Collector for dropped records
    """

    def __init__(
        self,
        endpoint: str = UNISWAP_V2_SUBGRAPH,
        api_key: Optional[str] = None,
        first: int = 100,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
        diagnostics: Optional[Diagnostics] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.first = first
        self.timeout = timeout
        self.session = session
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, session: aiohttp.ClientSession, payload: Dict[str, Any]):
        try:
            async with session.post(
                self.endpoint, json=payload, headers=self._headers()
            ) as response:
                return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"Subgraph request failed: {e}", endpoint=self.endpoint
            ) from e

    async def fetch_pools(self, diagnostics: Optional[Diagnostics] = None) -> List[Pool]:
        """
        Query the subgraph and return Pool records.

        Args:
            diagnostics: Collector for dropped entries; defaults to the
                source's own collector

        Raises:
            TransportError: On HTTP failure, non-200 status, invalid JSON or
                GraphQL errors
        """
        if diagnostics is None:
            diagnostics = self.diagnostics
        payload = {"query": PAIRS_QUERY, "variables": {"first": self.first}}

        if self.session is not None:
            status, body = await self._post(self.session, payload)
        else:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                status, body = await self._post(session, payload)

        logger.debug("Subgraph responded with status %d", status)
        if status != 200:
            raise TransportError(
                f"Subgraph returned HTTP {status}",
                endpoint=self.endpoint,
                details={"status": status, "body": body[:500]},
            )

        try:
            document = json.loads(body)
        except ValueError as e:
            raise TransportError(
                f"Subgraph returned invalid JSON: {e}", endpoint=self.endpoint
            ) from e

        errors = document.get("errors") if isinstance(document, dict) else None
        if errors:
            messages = [
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            raise TransportError(
                f"Subgraph returned errors: {'; '.join(messages)}",
                endpoint=self.endpoint,
                details={"errors": messages},
            )

        data = document.get("data") if isinstance(document, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("pairs"), list):
            raise TransportError(
                "Subgraph response had no pairs data", endpoint=self.endpoint
            )

        pools: List[Pool] = []
        for entry in data["pairs"]:
            try:
                pools.append(parse_pair(entry))
            except DecodeError as e:
                diagnostics.record_error(
                    diag.DECODE, e.record_id or "?", e, stage=STAGE_SUBGRAPH
                )

        logger.info("Fetched %d pools from subgraph", len(pools))
        return pools
