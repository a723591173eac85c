"""Data model for avatar resolution.

Linkage steps form the audit trail of a single resolution run. A `Linkage` value is
never mutated: `append()` returns a new value, so every pipeline stage hands the
trail it received plus its own steps to the next stage.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class LinkageStep(BaseModel):
    """One audit entry, e.g. `account`, `erc721`, `owner` or `url`."""

    model_config = ConfigDict(frozen=True)

    kind: str
    content: str


class Linkage(BaseModel):
    """Ordered, append-only sequence of linkage steps owned by one run."""

    model_config = ConfigDict(frozen=True)

    steps: Tuple[LinkageStep, ...] = ()

    def append(self, kind: str, content: str) -> "Linkage":
        return Linkage(steps=self.steps + (LinkageStep(kind=kind, content=content),))

    @property
    def kinds(self) -> List[str]:
        return [step.kind for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)


class ResolvedAvatar(BaseModel):
    """Final image URL together with the linkage proving how it was derived."""

    linkage: List[LinkageStep]
    url: str


class TokenStandard(str, Enum):
    erc721 = "erc721"
    erc1155 = "erc1155"


class TokenPointer(BaseModel):
    """NFT referenced by an `eip155:` avatar.

    `contract_address` is the checksummed 20-byte address. `token_word` is the token id
    as a 32-byte big-endian word (64 lowercase hex digits, no `0x`) used for every
    contract call.
    """

    model_config = ConfigDict(frozen=True)

    chain_id: int
    standard: TokenStandard
    contract_address: str
    token_id: int = Field(ge=0, lt=2**256)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def token_word(self) -> str:
        return self.token_id.to_bytes(32, "big").hex()


class FailureKind(IntEnum):
    """Why a resolution run ended without an avatar."""

    no_avatar_record = 1
    missing_owner_key = 2
    unsupported_scheme_format = 3
    malformed_token_reference = 4
    unsupported_chain = 5
    contract_call_failure = 6
    ownership_mismatch = 7
    zero_balance = 8
    abi_decode_failure = 9
    metadata_fetch_failure = 10
    missing_image_field = 11
    unsupported_ipfs_format = 12
    unexpected_transport_failure = 13


@dataclass(frozen=True)
class Unresolved:
    """Internal failure outcome. Never returned from the public resolver API."""

    kind: FailureKind
    linkage: Linkage
    detail: str = ""


Outcome = Union[ResolvedAvatar, Unresolved]
