"""
Unit tests for the JSON-RPC transport in dotbit.avatar.chain.rpc
"""

import pytest

from dotbit.avatar.chain.rpc import (
    JsonRpcCallProvider,
    build_call_providers,
    json_rpc_request,
)
from dotbit.avatar.errors import ContractCallFailure, UnexpectedTransportFailure
from tests.test_helpers import CONTRACT_CHECKSUM, abi_encode_uint, json_response_session

RPC_URL = "https://rpc.example"


class TestJsonRpcRequest:
    """Test suite for json_rpc_request."""

    @pytest.mark.asyncio
    async def test_payload(self):
        mock_session = json_response_session("post", body={"jsonrpc": "2.0", "result": "0x1"})

        body = await json_rpc_request(mock_session, RPC_URL, "eth_chainId", [])

        assert body["result"] == "0x1"
        mock_session.post.assert_called_once()
        args, kwargs = mock_session.post.call_args
        assert args == (RPC_URL,)
        assert kwargs["json"]["jsonrpc"] == "2.0"
        assert kwargs["json"]["method"] == "eth_chainId"
        assert kwargs["json"]["params"] == []
        assert isinstance(kwargs["json"]["id"], int)

    @pytest.mark.asyncio
    async def test_non_200(self):
        mock_session = json_response_session("post", status=502)

        with pytest.raises(UnexpectedTransportFailure):
            await json_rpc_request(mock_session, RPC_URL, "eth_call", [])

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        mock_session = json_response_session("post", body=["not", "an", "envelope"])

        with pytest.raises(UnexpectedTransportFailure):
            await json_rpc_request(mock_session, RPC_URL, "eth_call", [])


class TestJsonRpcCallProvider:
    """Test suite for the eth_call provider."""

    @pytest.mark.asyncio
    async def test_call(self):
        mock_session = json_response_session(
            "post", body={"jsonrpc": "2.0", "id": 1, "result": abi_encode_uint(1)}
        )
        provider = JsonRpcCallProvider(mock_session, RPC_URL)

        result = await provider.call(CONTRACT_CHECKSUM, "0x6352211e")

        assert result == abi_encode_uint(1)
        payload = mock_session.post.call_args[1]["json"]
        assert payload["method"] == "eth_call"
        assert payload["params"] == [
            {"to": CONTRACT_CHECKSUM, "data": "0x6352211e"},
            "latest",
        ]

    @pytest.mark.asyncio
    async def test_revert(self):
        mock_session = json_response_session(
            "post",
            body={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": 3, "message": "execution reverted"},
            },
        )
        provider = JsonRpcCallProvider(mock_session, RPC_URL)

        with pytest.raises(ContractCallFailure, match="execution reverted"):
            await provider.call(CONTRACT_CHECKSUM, "0x6352211e")

    @pytest.mark.asyncio
    async def test_missing_result(self):
        mock_session = json_response_session("post", body={"jsonrpc": "2.0", "id": 1})
        provider = JsonRpcCallProvider(mock_session, RPC_URL)

        with pytest.raises(UnexpectedTransportFailure):
            await provider.call(CONTRACT_CHECKSUM, "0x6352211e")


def test_build_call_providers():
    mock_session = json_response_session("post")

    providers = build_call_providers(
        mock_session, {1: RPC_URL, 137: "https://polygon.example"}
    )

    assert set(providers) == {1, 137}
    assert providers[137].rpc_url == "https://polygon.example"
    assert providers[1].session is mock_session
