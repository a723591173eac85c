"""JSON-RPC transport for Ethereum-compatible nodes.

Contract reads are plain `eth_call` requests against the configured node for a chain.
"""

import itertools
import logging
from typing import Any, Dict, List, Protocol

from aiohttp import ClientSession

from dotbit.avatar.errors import ContractCallFailure, UnexpectedTransportFailure

logger = logging.getLogger(__name__)

DEFAULT_RPC_URLS: Dict[int, str] = {1: "https://rpc.ankr.com/eth"}

_request_ids = itertools.count(1)


class EthereumCallProvider(Protocol):
    """Executes read-only contract calls and returns the hex encoded return buffer."""

    async def call(self, to: str, data: str) -> str: ...


async def json_rpc_request(
    session: ClientSession, url: str, method: str, params: List[Any]
) -> Dict[str, Any]:
    """Send one JSON-RPC 2.0 request and return the decoded response envelope.

    Args:
        session: HTTP client session
        url: JSON-RPC endpoint
        method: RPC method name
        params: Positional parameters

    Returns:
        Response body with either `result` or `error`

    Raises:
        UnexpectedTransportFailure: If the endpoint does not answer with a JSON object
    """
    payload = {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": method,
        "params": params,
    }
    async with session.post(url, json=payload) as resp:
        if resp.status != 200:
            raise UnexpectedTransportFailure(
                f"{method} to {url} failed with status {resp.status}"
            )
        body = await resp.json(content_type=None)

    if not isinstance(body, dict):
        raise UnexpectedTransportFailure(f"{method} to {url} returned a non-object body")
    return body


class JsonRpcCallProvider:
    """`eth_call` provider backed by a JSON-RPC endpoint."""

    def __init__(self, session: ClientSession, rpc_url: str, block: str = "latest") -> None:
        self.session = session
        self.rpc_url = rpc_url
        self.block = block

    async def call(self, to: str, data: str) -> str:
        body = await json_rpc_request(
            self.session, self.rpc_url, "eth_call", [{"to": to, "data": data}, self.block]
        )

        error = body.get("error")
        if error is not None:
            message = error.get("message") if isinstance(error, dict) else error
            logger.debug("eth_call to %s reverted: %s", to, message)
            raise ContractCallFailure(f"eth_call to {to} failed: {message}")

        result = body.get("result")
        if not isinstance(result, str):
            raise UnexpectedTransportFailure(f"eth_call to {to} returned no result")
        return result


def build_call_providers(
    session: ClientSession, rpc_urls: Dict[int, str]
) -> Dict[int, EthereumCallProvider]:
    return {
        chain_id: JsonRpcCallProvider(session, rpc_url)
        for chain_id, rpc_url in rpc_urls.items()
    }
