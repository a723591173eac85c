"""
Unit tests for the resolve CLI in dotbit.avatar.resolve.__main__
"""

from unittest.mock import AsyncMock, patch

import pytest

from dotbit.avatar.model.avatar import (
    FailureKind,
    Linkage,
    LinkageStep,
    ResolvedAvatar,
    Unresolved,
)
from dotbit.avatar.resolve.__main__ import realMain


@pytest.mark.asyncio
@patch("dotbit.avatar.resolve.__main__.build_avatar_resolver")
async def test_real_main(mock_build, capsys):
    resolver = AsyncMock()
    resolver.resolve_outcome.side_effect = [
        ResolvedAvatar(
            linkage=[LinkageStep(kind="url", content="https://example.com/a.png")],
            url="https://example.com/a.png",
        ),
        Unresolved(
            kind=FailureKind.no_avatar_record,
            linkage=Linkage().append("account", "b.bit"),
        ),
    ]
    mock_build.return_value = resolver

    argv = [
        "resolve",
        "a.bit",
        "b.bit",
        "--ipfs-gateway",
        "https://gateway.example/",
        "--rpc-url",
        "https://rpc.example",
    ]
    with patch("sys.argv", argv):
        await realMain()

    settings = mock_build.call_args[0][0]
    assert settings.ipfs_gateway == "https://gateway.example"
    assert settings.rpc_urls[1] == "https://rpc.example"

    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("resolved_avatar a.bit {")
    assert '"url":"https://example.com/a.png"' in out[0]
    assert out[1] == "resolved_avatar b.bit None"
