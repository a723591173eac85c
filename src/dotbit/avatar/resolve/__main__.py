from typing import List
import argparse
import asyncio
import logging

from dotbit.avatar.app.cli import configure_logging
from dotbit.avatar.app.config import Settings
from dotbit.avatar.app.server import build_avatar_resolver, create_client_session
from dotbit.avatar.model.avatar import Unresolved

logger = logging.getLogger(__name__)


async def realMain() -> None:
    settings = Settings()  # type: ignore

    parser = argparse.ArgumentParser(prog="resolve", description="Resolve .bit avatars")
    parser.add_argument("account", nargs="+", help="The account(s) to resolve.")
    parser.add_argument(
        "--ipfs-gateway",
        default=settings.ipfs_gateway,
        help="The HTTP gateway to use for ipfs:// links.",
    )
    parser.add_argument(
        "--indexer-url",
        default=settings.indexer_url,
        help="The .bit indexer JSON-RPC endpoint.",
    )
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="The JSON-RPC endpoint to use for chain 1 contract reads.",
    )

    args = vars(parser.parse_args())

    accounts: List[str] = args.get("account", [])
    rpc_urls = dict(settings.rpc_urls)
    if args.get("rpc_url"):
        rpc_urls[1] = args["rpc_url"]
    settings = settings.model_copy(
        update={
            "ipfs_gateway": args["ipfs_gateway"].rstrip("/"),
            "indexer_url": args["indexer_url"],
            "rpc_urls": rpc_urls,
        }
    )

    async with create_client_session(settings.debug) as session:
        resolver = build_avatar_resolver(settings, session)
        for account in accounts:
            try:
                outcome = await resolver.resolve_outcome(account)
                if isinstance(outcome, Unresolved):
                    logger.info(
                        "%s unresolved: %s %s", account, outcome.kind.name, outcome.detail
                    )
                    print(f"resolved_avatar {account} None")
                else:
                    print(f"resolved_avatar {account} {outcome.model_dump_json()}")
            except Exception:
                logging.exception("Exception resolving avatar of %s", account)


def main() -> None:
    configure_logging(Settings().debug)  # type: ignore
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
