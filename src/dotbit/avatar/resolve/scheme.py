"""Avatar URI scheme matching and IPFS gateway translation.

Classifies raw avatar record values against the supported URI schemes and parses
`eip155:` NFT references into token pointers.
"""

import re
from enum import IntEnum
from typing import Optional

from eth_utils import (
    is_checksum_address,
    is_checksum_formatted_address,
    is_hex_address,
    to_checksum_address,
)
from pydantic import BaseModel

from dotbit.avatar.errors import MalformedTokenReference, UnsupportedIpfsFormat
from dotbit.avatar.model.avatar import TokenPointer, TokenStandard

DEFAULT_IPFS_GATEWAY = "https://gateway.ipfs.io"

IPFS_PATTERN = re.compile(r"(ipfs)://(.*)", re.IGNORECASE)

# Checked in this order; the first pattern that matches wins.
SCHEME_PATTERNS = (
    re.compile(r"(https)://(.*)", re.IGNORECASE),
    re.compile(r"(data):(.*)", re.IGNORECASE),
    IPFS_PATTERN,
    re.compile(r"eip155:([0-9]+)/(erc[0-9]+):(.*)", re.IGNORECASE),
)

_IPFS_PATH_PREFIX = re.compile(r"ipfs://ipfs/", re.IGNORECASE)
_IPFS_PREFIX = re.compile(r"ipfs://", re.IGNORECASE)
_DIRECT_IMAGE = re.compile(r"(https://|data:)", re.IGNORECASE)
_HEX_TOKEN_ID = re.compile(r"0x[0-9a-f]+", re.IGNORECASE)
_DECIMAL_TOKEN_ID = re.compile(r"[0-9]+")


class AvatarScheme(IntEnum):
    """Scheme tag of a matched avatar reference.

    `unknown` is an `eip155:` reference to a token standard other than ERC-721 or
    ERC-1155.
    """

    https = 1
    data = 2
    ipfs = 3
    erc721 = 4
    erc1155 = 5
    unknown = 6


class SchemeMatch(BaseModel):
    """Result of matching an avatar reference.

    `reference` is the part after the scheme token; for `eip155:` references it is the
    `<contract>/<tokenId>` path and `chain_id` is set.
    """

    scheme: AvatarScheme
    value: str
    reference: str
    chain_id: Optional[int] = None


def match_scheme(value: str) -> Optional[SchemeMatch]:
    """Match an avatar reference against the supported schemes in priority order.

    Args:
        value: Raw avatar record value

    Returns:
        SchemeMatch for the first matching pattern, None if nothing matches
    """
    for pattern in SCHEME_PATTERNS:
        match = pattern.fullmatch(value)
        if match is None:
            continue

        if pattern is SCHEME_PATTERNS[3]:
            standard = match.group(2).lower()
            scheme = (
                AvatarScheme[standard]
                if standard in TokenStandard.__members__
                else AvatarScheme.unknown
            )
            return SchemeMatch(
                scheme=scheme,
                value=value,
                reference=match.group(3),
                chain_id=int(match.group(1)),
            )

        return SchemeMatch(
            scheme=AvatarScheme[match.group(1).lower()],
            value=value,
            reference=match.group(2),
        )
    return None


def is_direct_image(value: str) -> bool:
    """Check if an image value can be displayed as-is (https or data URL)."""
    return _DIRECT_IMAGE.match(value) is not None


def ipfs_gateway_url(link: str, gateway: str = DEFAULT_IPFS_GATEWAY) -> str:
    """Rewrite an `ipfs://` reference to an HTTP gateway URL.

    Exactly one `ipfs://ipfs/` or `ipfs://` prefix is removed.

    Args:
        link: IPFS reference
        gateway: Gateway base URL, trailing slashes are ignored

    Returns:
        `{gateway}/ipfs/{remainder}`

    Raises:
        UnsupportedIpfsFormat: If the link starts with neither prefix
    """
    if _IPFS_PATH_PREFIX.match(link):
        link = link[12:]
    elif _IPFS_PREFIX.match(link):
        link = link[7:]
    else:
        raise UnsupportedIpfsFormat(f"unsupported IPFS format '{link}'")

    return f"{gateway.rstrip('/')}/ipfs/{link}"


def parse_token_id(value: str) -> int:
    if _HEX_TOKEN_ID.fullmatch(value):
        token_id = int(value, 16)
    elif _DECIMAL_TOKEN_ID.fullmatch(value):
        token_id = int(value)
    else:
        raise MalformedTokenReference(f"invalid token id '{value}'")

    if token_id >= 2**256:
        raise MalformedTokenReference(f"token id '{value}' does not fit in 32 bytes")
    return token_id


def parse_token_pointer(match: SchemeMatch) -> TokenPointer:
    """Build a token pointer from an ERC-721 or ERC-1155 scheme match.

    Args:
        match: Scheme match with scheme erc721 or erc1155

    Returns:
        TokenPointer with a checksummed contract address

    Raises:
        MalformedTokenReference: If the reference is not `<contract>/<tokenId>` or either
            part is invalid
    """
    if match.scheme not in (AvatarScheme.erc721, AvatarScheme.erc1155):
        raise MalformedTokenReference(f"'{match.value}' is not an NFT reference")

    parts = match.reference.split("/")
    if len(parts) != 2:
        raise MalformedTokenReference(f"expected '<contract>/<tokenId>' in '{match.value}'")

    contract, token_id = parts
    if not is_hex_address(contract):
        raise MalformedTokenReference(f"invalid contract address '{contract}'")
    # Mixed case means EIP-55, which must verify.
    if is_checksum_formatted_address(contract) and not is_checksum_address(contract):
        raise MalformedTokenReference(f"bad checksum on contract address '{contract}'")

    return TokenPointer(
        chain_id=match.chain_id if match.chain_id is not None else 1,
        standard=TokenStandard(match.scheme.name),
        contract_address=to_checksum_address(contract),
        token_id=parse_token_id(token_id),
    )
