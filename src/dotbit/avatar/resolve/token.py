"""On-chain verification and metadata URI lookup for NFT avatars.

ERC-721 avatars must be owned by the account's owner key (`ownerOf`); ERC-1155
avatars must have a nonzero balance for it (`balanceOf`). Only then is the metadata
URI read (`tokenURI` / `uri`). Ownership is checked against the owner key only;
approved operators and manager keys do not count.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

import sentry_sdk
from eth_utils import is_address

from dotbit.avatar.chain.rpc import EthereumCallProvider
from dotbit.avatar.errors import (
    AbiDecodeFailure,
    AvatarResolutionError,
    MissingOwnerKey,
    OwnershipMismatch,
    ZeroBalance,
)
from dotbit.avatar.model.avatar import (
    FailureKind,
    Linkage,
    TokenPointer,
    TokenStandard,
    Unresolved,
)
from dotbit.avatar.resolve.abi import (
    decode_address,
    decode_dynamic_string,
    decode_uint256,
    encode_call,
    pad_word,
)

logger = logging.getLogger(__name__)

# ownerOf(uint256)
OWNER_OF_SELECTOR = "0x6352211e"
# tokenURI(uint256)
TOKEN_URI_SELECTOR = "0xc87b56dd"
# balanceOf(address,uint256)
BALANCE_OF_SELECTOR = "0x00fdd58e"
# uri(uint256)
URI_SELECTOR = "0x0e89341c"

ERC1155_ID_PLACEHOLDER = "{id}"


@dataclass(frozen=True)
class TokenMetadataUrl:
    url: str
    linkage: Linkage


async def _call(
    provider: EthereumCallProvider,
    pointer: TokenPointer,
    data: str,
    call_timeout: Optional[float],
) -> str:
    return await asyncio.wait_for(
        provider.call(pointer.contract_address, data), timeout=call_timeout
    )


async def fetch_token_owner(
    provider: EthereumCallProvider,
    pointer: TokenPointer,
    call_timeout: Optional[float] = None,
) -> Optional[str]:
    """Call `ownerOf(tokenId)`.

    Returns:
        Checksummed owner address, None if the token has no owner
    """
    result = await _call(
        provider, pointer, encode_call(OWNER_OF_SELECTOR, pointer.token_word), call_timeout
    )
    return decode_address(result)


async def fetch_token_balance(
    provider: EthereumCallProvider,
    pointer: TokenPointer,
    owner_key: str,
    call_timeout: Optional[float] = None,
) -> int:
    """Call `balanceOf(owner, tokenId)`."""
    result = await _call(
        provider,
        pointer,
        encode_call(BALANCE_OF_SELECTOR, pad_word(owner_key), pointer.token_word),
        call_timeout,
    )
    return decode_uint256(result)


async def fetch_metadata_url_base(
    provider: EthereumCallProvider,
    pointer: TokenPointer,
    call_timeout: Optional[float] = None,
) -> str:
    """Call `tokenURI(tokenId)` (ERC-721) or `uri(tokenId)` (ERC-1155).

    Raises:
        AbiDecodeFailure: If the return data is not a UTF-8 string
    """
    selector = (
        TOKEN_URI_SELECTOR if pointer.standard == TokenStandard.erc721 else URI_SELECTOR
    )
    result = await _call(
        provider, pointer, encode_call(selector, pointer.token_word), call_timeout
    )
    metadata_url = decode_dynamic_string(result)
    if metadata_url is None:
        raise AbiDecodeFailure(
            f"metadata URI of {pointer.contract_address}/{pointer.token_id} is not a string"
        )
    return metadata_url


def expand_metadata_url(metadata_url: str, pointer: TokenPointer) -> str:
    """Substitute the ERC-1155 `{id}` placeholder with the 64-digit lowercase hex id."""
    return metadata_url.replace(ERC1155_ID_PLACEHOLDER, pointer.token_word)


async def resolve_token_metadata_url(
    provider: EthereumCallProvider,
    pointer: TokenPointer,
    owner_key: str,
    linkage: Linkage,
    call_timeout: Optional[float] = None,
) -> Union[TokenMetadataUrl, Unresolved]:
    """Verify the account holds the token, then look up its metadata URI.

    Args:
        provider: Call provider for the token's chain
        pointer: Token referenced by the avatar
        owner_key: The account's owner address
        linkage: Trail accumulated so far
        call_timeout: Seconds allowed for each contract call

    Returns:
        TokenMetadataUrl with the extended linkage, or Unresolved on any failure
    """
    try:
        if not is_address(owner_key):
            raise MissingOwnerKey(f"owner key '{owner_key}' is not an EVM address")

        if pointer.standard == TokenStandard.erc721:
            token_owner = await fetch_token_owner(provider, pointer, call_timeout)
            if token_owner is None or token_owner.lower() != owner_key.lower():
                raise OwnershipMismatch(
                    f"token owned by {token_owner}, account owner is {owner_key}"
                )
            linkage = linkage.append("owner", token_owner)
        else:
            balance = await fetch_token_balance(provider, pointer, owner_key, call_timeout)
            if balance == 0:
                raise ZeroBalance(f"{owner_key} holds none of token {pointer.token_id}")
            linkage = linkage.append("balance", str(balance))

        metadata_url = await fetch_metadata_url_base(provider, pointer, call_timeout)
        linkage = linkage.append("metadata-url-base", metadata_url)

        if pointer.standard == TokenStandard.erc1155:
            metadata_url = expand_metadata_url(metadata_url, pointer)
            linkage = linkage.append("metadata-url-expanded", metadata_url)

        return TokenMetadataUrl(url=metadata_url, linkage=linkage)
    except AvatarResolutionError as e:
        logger.debug("Token %s not resolved: %s", pointer, e)
        return e.to_unresolved(linkage)
    except Exception as e:
        logger.warning("Contract read failed for %s: %s", pointer, e)
        sentry_sdk.capture_exception(e)
        return Unresolved(
            kind=FailureKind.unexpected_transport_failure, linkage=linkage, detail=str(e)
        )
