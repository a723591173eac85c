"""
Unit tests for the avatar data model in dotbit.avatar.model.avatar
"""

import pytest
from pydantic import ValidationError

from dotbit.avatar.errors import OwnershipMismatch
from dotbit.avatar.model.avatar import (
    FailureKind,
    Linkage,
    TokenPointer,
    TokenStandard,
)
from tests.test_helpers import CONTRACT_CHECKSUM


class TestLinkage:
    def test_append_returns_new_value(self):
        empty = Linkage()
        first = empty.append("account", "jeffx.bit")
        second = first.append("url", "https://example.com/a.png")

        assert len(empty) == 0
        assert first.kinds == ["account"]
        assert second.kinds == ["account", "url"]
        assert second.steps[1].content == "https://example.com/a.png"

    def test_linkage_is_frozen(self):
        linkage = Linkage().append("account", "jeffx.bit")

        with pytest.raises(ValidationError):
            linkage.steps = ()


class TestTokenPointer:
    def test_token_word(self):
        pointer = TokenPointer(
            chain_id=1,
            standard=TokenStandard.erc1155,
            contract_address=CONTRACT_CHECKSUM,
            token_id=255,
        )

        assert pointer.token_word == "0" * 62 + "ff"

    def test_token_id_range(self):
        with pytest.raises(ValidationError):
            TokenPointer(
                chain_id=1,
                standard=TokenStandard.erc721,
                contract_address=CONTRACT_CHECKSUM,
                token_id=2**256,
            )


def test_error_to_unresolved():
    linkage = Linkage().append("account", "jeffx.bit").append("erc721", "eip155:1/...")

    outcome = OwnershipMismatch("owner differs").to_unresolved(linkage)

    assert outcome.kind == FailureKind.ownership_mismatch
    assert outcome.linkage is linkage
    assert outcome.detail == "owner differs"
