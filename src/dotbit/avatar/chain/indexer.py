""".bit indexer client.

Supplies the two account collaborators the avatar pipeline needs: the account's owner
key (`das_accountInfo`) and its text records (`das_accountRecords`).
"""

import logging
from typing import List, Optional, Protocol, Union

from aiohttp import ClientSession
from pydantic import BaseModel, ValidationError

from dotbit.avatar.chain.rpc import json_rpc_request
from dotbit.avatar.errors import UnexpectedTransportFailure

logger = logging.getLogger(__name__)

DEFAULT_INDEXER_URL = "https://indexer-v1.did.id"

AVATAR_RECORD_KEY = "profile.avatar"

# Indexer errno for an account that is not registered.
ERRNO_ACCOUNT_NOT_EXIST = 20007


class AccountInfo(BaseModel):
    """Subset of `das_accountInfo` used by avatar resolution."""

    account: str
    owner_key: Optional[str] = None
    owner_algorithm_id: Optional[int] = None
    manager_key: Optional[str] = None
    manager_algorithm_id: Optional[int] = None


class AccountRecord(BaseModel):
    key: str
    label: str = ""
    value: str
    ttl: Union[int, str, None] = None


class AccountInfoFetcher(Protocol):
    async def info(self, account: str) -> Optional[AccountInfo]: ...


class AccountRecordFetcher(Protocol):
    async def records(self, account: str, key: str) -> List[AccountRecord]: ...


class BitIndexerClient:
    """JSON-RPC client for a .bit indexer node.

    Implements both `AccountInfoFetcher` and `AccountRecordFetcher`.
    """

    def __init__(self, session: ClientSession, indexer_url: str = DEFAULT_INDEXER_URL) -> None:
        self.session = session
        self.indexer_url = indexer_url

    async def _request(self, method: str, account: str) -> Optional[dict]:
        body = await json_rpc_request(
            self.session, self.indexer_url, method, [{"account": account}]
        )
        result = body.get("result")
        if not isinstance(result, dict):
            raise UnexpectedTransportFailure(f"{method} returned no result for {account}")

        errno = result.get("errno", 0)
        if errno == ERRNO_ACCOUNT_NOT_EXIST:
            return None
        if errno != 0:
            raise UnexpectedTransportFailure(
                f"{method} failed for {account}: {errno} {result.get('errmsg', '')}"
            )
        return result.get("data") or None

    async def info(self, account: str) -> Optional[AccountInfo]:
        """Fetch account info.

        Args:
            account: Account name, e.g. `phone.bit`

        Returns:
            AccountInfo, or None if the account does not exist
        """
        data = await self._request("das_accountInfo", account)
        if data is None:
            return None
        account_info = data.get("account_info")
        if not isinstance(account_info, dict):
            return None
        try:
            return AccountInfo.model_validate(account_info)
        except ValidationError as e:
            logger.warning("Malformed account info for %s: %s", account, e)
            return None

    async def records(self, account: str, key: str) -> List[AccountRecord]:
        """Fetch the account's records with the given key, in indexer order.

        Args:
            account: Account name
            key: Record key, e.g. `profile.avatar`

        Returns:
            Matching records, empty if the account has none
        """
        data = await self._request("das_accountRecords", account)
        if data is None:
            return []

        records: List[AccountRecord] = []
        for raw in data.get("records") or []:
            try:
                record = AccountRecord.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed record on %s: %s", account, raw)
                continue
            if record.key == key:
                records.append(record)
        return records
