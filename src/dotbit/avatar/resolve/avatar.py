"""Avatar resolution pipeline.

One run per account: fetch the `profile.avatar` record, pick the scheme branch and
either return the URL directly or verify the NFT on chain and follow its metadata to
the image. The run is strictly sequential and never falls back to another scheme once
a branch is chosen. Every failure becomes an `Unresolved` outcome internally;
`AvatarResolver.resolve()` only reports whether an avatar was found.
"""

import asyncio
import logging
from time import time
from typing import List, Mapping, Optional, Sequence

import sentry_sdk
from aiohttp import ClientSession

from dotbit.avatar.app.metrics import MetricsClient, NoOpMetricsClient
from dotbit.avatar.chain.indexer import (
    AVATAR_RECORD_KEY,
    AccountInfoFetcher,
    AccountRecordFetcher,
)
from dotbit.avatar.chain.rpc import EthereumCallProvider
from dotbit.avatar.errors import (
    AvatarResolutionError,
    MissingOwnerKey,
    NoAvatarRecord,
    UnsupportedChain,
    UnsupportedSchemeFormat,
)
from dotbit.avatar.model.avatar import (
    FailureKind,
    Linkage,
    Outcome,
    ResolvedAvatar,
    Unresolved,
)
from dotbit.avatar.model.health import HealthGauge
from dotbit.avatar.resolve.metadata import resolve_image_url
from dotbit.avatar.resolve.scheme import (
    DEFAULT_IPFS_GATEWAY,
    AvatarScheme,
    ipfs_gateway_url,
    match_scheme,
    parse_token_pointer,
)
from dotbit.avatar.resolve.token import resolve_token_metadata_url

logger = logging.getLogger(__name__)


class AvatarResolver:
    """Resolves .bit accounts to avatar image URLs.

    The resolver holds only stateless collaborators and configuration, so one instance
    can serve any number of concurrent runs.
    """

    def __init__(
        self,
        session: ClientSession,
        info_fetcher: AccountInfoFetcher,
        record_fetcher: AccountRecordFetcher,
        providers: Mapping[int, EthereumCallProvider],
        ipfs_gateway: str = DEFAULT_IPFS_GATEWAY,
        call_timeout: Optional[float] = 10.0,
        resolve_timeout: Optional[float] = 30.0,
        metrics_client: Optional[MetricsClient] = None,
        health_gauge: Optional[HealthGauge] = None,
    ) -> None:
        self.session = session
        self.info_fetcher = info_fetcher
        self.record_fetcher = record_fetcher
        self.providers = providers
        self.ipfs_gateway = ipfs_gateway.rstrip("/")
        self.call_timeout = call_timeout
        self.resolve_timeout = resolve_timeout
        self.metrics_client = metrics_client or NoOpMetricsClient()
        self.health_gauge = health_gauge

    async def _fetch_avatar_record(self, account: str) -> str:
        records = await asyncio.wait_for(
            self.record_fetcher.records(account, AVATAR_RECORD_KEY),
            timeout=self.call_timeout,
        )
        avatar = records[0].value if records else None
        if not avatar:
            raise NoAvatarRecord(f"{account} has no {AVATAR_RECORD_KEY} record")
        return avatar

    async def _fetch_owner_key(self, account: str) -> str:
        info = await asyncio.wait_for(
            self.info_fetcher.info(account), timeout=self.call_timeout
        )
        if info is None or not info.owner_key:
            raise MissingOwnerKey(f"{account} has no owner key")
        return info.owner_key

    async def _resolve(self, account: str) -> Outcome:
        linkage = Linkage().append("account", account)
        try:
            avatar = await self._fetch_avatar_record(account)

            match = match_scheme(avatar)
            if match is None or match.scheme == AvatarScheme.unknown:
                raise UnsupportedSchemeFormat(f"unsupported avatar '{avatar}'")

            if match.scheme in (AvatarScheme.https, AvatarScheme.data):
                linkage = linkage.append("url", avatar)
                return ResolvedAvatar(linkage=list(linkage.steps), url=avatar)

            if match.scheme == AvatarScheme.ipfs:
                url = ipfs_gateway_url(avatar, self.ipfs_gateway)
                linkage = linkage.append("url-ipfs", avatar).append("url", url)
                return ResolvedAvatar(linkage=list(linkage.steps), url=url)

            linkage = linkage.append(match.scheme.name, avatar)
            pointer = parse_token_pointer(match)

            provider = self.providers.get(pointer.chain_id)
            if provider is None:
                raise UnsupportedChain(f"no provider configured for chain {pointer.chain_id}")

            owner_key = await self._fetch_owner_key(account)

            token_result = await resolve_token_metadata_url(
                provider, pointer, owner_key, linkage, self.call_timeout
            )
            if isinstance(token_result, Unresolved):
                return token_result

            return await resolve_image_url(
                self.session,
                token_result.url,
                token_result.linkage,
                self.ipfs_gateway,
                self.call_timeout,
            )
        except AvatarResolutionError as e:
            logger.debug("Avatar of %s not resolved: %s", account, e)
            return e.to_unresolved(linkage)
        except Exception as e:
            logger.exception("Exception resolving avatar of %s", account)
            sentry_sdk.capture_exception(e)
            return Unresolved(
                kind=FailureKind.unexpected_transport_failure,
                linkage=linkage,
                detail=str(e),
            )

    async def resolve_outcome(self, account: str) -> Outcome:
        """Resolve an account, keeping the failure kind on failure.

        Args:
            account: Account name, e.g. `phone.bit`

        Returns:
            ResolvedAvatar, or Unresolved with the failure kind and partial linkage
        """
        start_time = time()
        try:
            async with asyncio.timeout(self.resolve_timeout):
                outcome = await self._resolve(account)
        except TimeoutError:
            logger.warning("Timed out resolving avatar of %s", account)
            outcome = Unresolved(
                kind=FailureKind.unexpected_transport_failure,
                linkage=Linkage().append("account", account),
                detail=f"timed out after {self.resolve_timeout}s",
            )

        if isinstance(outcome, Unresolved):
            outcome_tag = outcome.kind.name
            if (
                outcome.kind == FailureKind.unexpected_transport_failure
                and self.health_gauge is not None
            ):
                await self.health_gauge.womp()
        else:
            outcome_tag = "resolved"

        self.metrics_client.increment(
            "avatar.resolve.count", 1, tag_dict={"outcome": outcome_tag}
        )
        self.metrics_client.timer(
            "avatar.resolve.time", time() - start_time, tag_dict={"outcome": outcome_tag}
        )
        return outcome

    async def resolve(self, account: str) -> Optional[ResolvedAvatar]:
        """Resolve an account's avatar.

        Returns:
            ResolvedAvatar, or None when no avatar could be resolved for any reason
        """
        outcome = await self.resolve_outcome(account)
        if isinstance(outcome, ResolvedAvatar):
            return outcome
        return None

    async def resolve_many(self, accounts: Sequence[str]) -> List[Optional[ResolvedAvatar]]:
        """Resolve several accounts concurrently; results keep the input order."""
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self.resolve(account)) for account in accounts]
        return [task.result() for task in tasks]
