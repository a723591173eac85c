"""Token metadata fetching and image URL extraction."""

import asyncio
import base64
import binascii
import json
import logging
import re
from typing import Any, Optional, Union
from urllib.parse import unquote

import aiohttp
import sentry_sdk
from aiohttp import ClientSession

from dotbit.avatar.errors import (
    AvatarResolutionError,
    MetadataFetchFailure,
    MissingImageField,
    UnsupportedSchemeFormat,
)
from dotbit.avatar.model.avatar import FailureKind, Linkage, ResolvedAvatar, Unresolved
from dotbit.avatar.resolve.scheme import (
    DEFAULT_IPFS_GATEWAY,
    IPFS_PATTERN,
    ipfs_gateway_url,
    is_direct_image,
)

logger = logging.getLogger(__name__)

_IPFS_METADATA_URL = re.compile(r"ipfs:", re.IGNORECASE)
# media type, parameters, base64 flag, payload
_DATA_METADATA_URL = re.compile(
    r"data:([^;,]*)((?:;[^;,]*)*?)(;base64)?,(.*)", re.IGNORECASE | re.DOTALL
)


def decode_data_url(url: str) -> Optional[Any]:
    """Decode a `data:` metadata URI holding JSON.

    Both `data:<mime>[;param...];base64,<payload>` and the percent-encoded plain form
    `data:<mime>[;param...],<payload>` are accepted, whatever the media type.

    Returns:
        Parsed document, or None if the URL is not a data URL

    Raises:
        MetadataFetchFailure: If the payload is not JSON in the declared encoding
    """
    match = _DATA_METADATA_URL.fullmatch(url)
    if match is None:
        return None
    is_base64, payload = match.group(3), match.group(4)
    try:
        if is_base64:
            return json.loads(base64.b64decode(payload, validate=True))
        return json.loads(unquote(payload))
    except (binascii.Error, ValueError) as e:
        raise MetadataFetchFailure(f"undecodable data URL metadata: {e}") from e


async def _get_json(session: ClientSession, url: str) -> Any:
    async with session.get(url) as resp:
        if resp.status < 200 or resp.status >= 300:
            raise MetadataFetchFailure(f"GET {url} returned status {resp.status}")
        return await resp.json(content_type=None)


async def fetch_metadata(
    session: ClientSession, url: str, call_timeout: Optional[float] = None
) -> Any:
    """Fetch a token metadata document.

    Args:
        session: HTTP client session
        url: HTTP(S) URL or base64 JSON data URL
        call_timeout: Seconds allowed for the request

    Returns:
        The parsed JSON document

    Raises:
        MetadataFetchFailure: On non-2xx status, transport error or invalid JSON
    """
    if _DATA_METADATA_URL.fullmatch(url):
        return decode_data_url(url)

    try:
        return await asyncio.wait_for(_get_json(session, url), timeout=call_timeout)
    except (aiohttp.ClientError, ValueError) as e:
        raise MetadataFetchFailure(f"GET {url} failed: {e}") from e


async def resolve_image_url(
    session: ClientSession,
    metadata_url: str,
    linkage: Linkage,
    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY,
    call_timeout: Optional[float] = None,
) -> Union[ResolvedAvatar, Unresolved]:
    """Fetch token metadata and turn its `image` field into a displayable URL.

    `https://` and `data:` images are used as-is; `ipfs://` images go through the
    gateway. Anything else is unresolved.

    Args:
        session: HTTP client session
        metadata_url: Metadata URI from the token contract
        linkage: Trail accumulated so far
        ipfs_gateway: Gateway base URL for IPFS links
        call_timeout: Seconds allowed for the metadata request

    Returns:
        ResolvedAvatar, or Unresolved on any failure
    """
    try:
        if _IPFS_METADATA_URL.match(metadata_url):
            metadata_url = ipfs_gateway_url(metadata_url, ipfs_gateway)
        linkage = linkage.append("metadata-url", metadata_url)

        metadata = await fetch_metadata(session, metadata_url, call_timeout)
        if metadata is None:
            raise MetadataFetchFailure(f"{metadata_url} returned an empty document")
        linkage = linkage.append(
            "metadata", json.dumps(metadata, separators=(",", ":"), ensure_ascii=False)
        )

        image_url = metadata.get("image") if isinstance(metadata, dict) else None
        if not isinstance(image_url, str):
            raise MissingImageField(f"metadata at {metadata_url} has no image")

        if not is_direct_image(image_url):
            if IPFS_PATTERN.fullmatch(image_url) is None:
                raise UnsupportedSchemeFormat(f"unsupported image URL '{image_url}'")
            linkage = linkage.append("url-ipfs", image_url)
            image_url = ipfs_gateway_url(image_url, ipfs_gateway)

        linkage = linkage.append("url", image_url)
        return ResolvedAvatar(linkage=list(linkage.steps), url=image_url)
    except AvatarResolutionError as e:
        logger.debug("Metadata %s not resolved: %s", metadata_url, e)
        return e.to_unresolved(linkage)
    except Exception as e:
        logger.warning("Metadata fetch failed for %s: %s", metadata_url, e)
        sentry_sdk.capture_exception(e)
        return Unresolved(
            kind=FailureKind.unexpected_transport_failure, linkage=linkage, detail=str(e)
        )
