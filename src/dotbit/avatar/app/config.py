"""
Configuration Module for the Avatar Service

Settings are loaded from environment variables through pydantic-settings, with defaults
pointing at public infrastructure (a public IPFS gateway, the public .bit indexer and a
public Ethereum mainnet RPC endpoint) so the service and CLI work without any setup.

Shared resources live on the aiohttp application and are reached through typed AppKeys,
the same way request handlers reach the settings themselves.
"""

import asyncio
import json
import logging
from typing import Annotated, Dict, Final, Optional

from aiohttp import ClientSession, web
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from dotbit.avatar.app.metrics import MetricsClient
from dotbit.avatar.chain.indexer import DEFAULT_INDEXER_URL
from dotbit.avatar.chain.rpc import DEFAULT_RPC_URLS
from dotbit.avatar.model.health import HealthGauge
from dotbit.avatar.resolve.avatar import AvatarResolver
from dotbit.avatar.resolve.scheme import DEFAULT_IPFS_GATEWAY

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the avatar service.

    Environment variables map to fields by name, e.g. IPFS_GATEWAY or CALL_TIMEOUT.
    """

    debug: bool = False
    """
    Enable debug mode: request tracing on the outgoing HTTP session and detailed error bodies.
    Set with DEBUG=true environment variable.
    """

    http_port: int = Field(alias="port", default=5200)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY
    """
    Base URL of the HTTP gateway used for ipfs:// links, without trailing slash.
    Set with IPFS_GATEWAY environment variable.
    """

    indexer_url: str = DEFAULT_INDEXER_URL
    """
    JSON-RPC endpoint of the .bit indexer providing account info and records.
    Set with INDEXER_URL environment variable.
    """

    rpc_urls: Annotated[Dict[int, str], NoDecode] = Field(
        default_factory=lambda: dict(DEFAULT_RPC_URLS)
    )
    """
    JSON-RPC endpoints by EIP-155 chain id, used for NFT contract reads.
    Set with RPC_URLS as a JSON object or comma-separated chain=url pairs,
    e.g. RPC_URLS="1=https://rpc.ankr.com/eth,137=https://polygon-rpc.com".
    """

    call_timeout: float = 10.0
    """
    Seconds allowed for each record fetch, contract call and metadata fetch.
    Set with CALL_TIMEOUT environment variable.
    """

    resolve_timeout: float = 30.0
    """
    Seconds allowed for one account's whole resolution run.
    Set with RESOLVE_TIMEOUT environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    metrics_backend: str = "telegraf"
    """
    Metrics backend: 'telegraf' or 'none'.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    statsd_prefix: str = "avatar"
    """
    Prefix for all StatsD metrics from this service.
    Set with STATSD_PREFIX environment variable.
    """

    health_threshold: int = 100
    """
    Infrastructure failures tolerated before the readiness check fails.
    Set with HEALTH_THRESHOLD environment variable.
    """

    health_tick_interval: float = 30.0
    """
    Seconds between health gauge drains; each drain forgives one failure.
    Set with HEALTH_TICK_INTERVAL environment variable.
    """

    @field_validator("ipfs_gateway", mode="after")
    @classmethod
    def strip_gateway_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("rpc_urls", mode="before")
    @classmethod
    def decode_rpc_urls(cls, v) -> Dict[int, str]:
        """
        Accept a mapping, a JSON object string or comma-separated chain=url pairs.

        Raises:
            ValueError: If a pair is not of the form chain=url
        """
        if isinstance(v, dict):
            return v
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("{"):
                return json.loads(v)
            rpc_urls: Dict[int, str] = {}
            for pair in filter(None, (part.strip() for part in v.split(","))):
                chain_id, sep, url = pair.partition("=")
                if not sep or not url:
                    raise ValueError(f"rpc_urls entry '{pair}' must be chain=url")
                rpc_urls[int(chain_id)] = url.strip()
            return rpc_urls
        raise ValueError("rpc_urls must be a mapping, JSON object or chain=url pairs")


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

AvatarResolverAppKey: Final = web.AppKey("avatar_resolver", AvatarResolver)
"""AppKey for accessing the avatar resolver built on the shared session"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for accessing the metrics client"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that drains the health gauge"""
