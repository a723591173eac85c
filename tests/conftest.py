"""
Shared test configuration and fixtures for avatar service tests.

Provides settings and an aiohttp application wired with a mocked resolver so
request handlers can be exercised without network access.
"""

from unittest.mock import AsyncMock

import pytest
from aiohttp import web

from dotbit.avatar.app.config import (
    AvatarResolverAppKey,
    HealthGaugeAppKey,
    Settings,
    SettingsAppKey,
)
from dotbit.avatar.model.health import HealthGauge
from dotbit.avatar.resolve.avatar import AvatarResolver


@pytest.fixture
def settings():
    """Settings pointing at non-routable test endpoints, metrics disabled."""
    return Settings(
        ipfs_gateway="https://gateway.example/",
        indexer_url="https://indexer.example",
        rpc_urls={1: "https://rpc.example"},
        metrics_backend="none",
    )


@pytest.fixture
def mock_resolver():
    return AsyncMock(spec=AvatarResolver)


@pytest.fixture
def avatar_app(settings, mock_resolver):
    """Application with the keys request handlers read, without background tasks."""
    app = web.Application()
    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge()
    app[AvatarResolverAppKey] = mock_resolver
    return app
