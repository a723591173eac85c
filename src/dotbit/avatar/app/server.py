import asyncio
import contextlib
import logging
from time import time
from typing import (
    Optional,
)
from aiohttp import web
import aiohttp
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from dotbit.avatar.app.config import (
    AvatarResolverAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
    TickHealthTaskAppKey,
)
from dotbit.avatar.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_avatar,
    handle_internal_ready,
)
from dotbit.avatar.app.metrics import TelegrafCompatibilityClient, create_metrics_client
from dotbit.avatar.app.tasks import tick_health_task
from dotbit.avatar.chain.indexer import BitIndexerClient
from dotbit.avatar.chain.rpc import build_call_providers
from dotbit.avatar.model.health import HealthGauge
from dotbit.avatar.resolve.avatar import AvatarResolver

logger = logging.getLogger(__name__)


def create_client_session(debug: bool = False) -> aiohttp.ClientSession:
    trace_config = aiohttp.TraceConfig()

    if debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logging.info("Starting request: %s", params)

        async def on_request_end(session, trace_config_ctx, params):
            logging.info("Ending request: %s", params)

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    return aiohttp.ClientSession(trace_configs=[trace_config])


def build_avatar_resolver(
    settings: Settings,
    session: aiohttp.ClientSession,
    metrics_client=None,
    health_gauge: Optional[HealthGauge] = None,
) -> AvatarResolver:
    indexer = BitIndexerClient(session, settings.indexer_url)
    return AvatarResolver(
        session,
        info_fetcher=indexer,
        record_fetcher=indexer,
        providers=build_call_providers(session, settings.rpc_urls),
        ipfs_gateway=settings.ipfs_gateway,
        call_timeout=settings.call_timeout,
        resolve_timeout=settings.resolve_timeout,
        metrics_client=metrics_client,
        health_gauge=health_gauge,
    )


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    app[SessionAppKey] = create_client_session(settings.debug)

    metrics_client = create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        prefix=settings.statsd_prefix,
        debug=settings.debug,
    )
    if isinstance(metrics_client, TelegrafCompatibilityClient):
        await metrics_client.connect()
    app[MetricsClientAppKey] = metrics_client

    app[AvatarResolverAppKey] = build_avatar_resolver(
        settings,
        app[SessionAppKey],
        metrics_client=metrics_client,
        health_gauge=app[HealthGaugeAppKey],
    )

    logger.info("Startup complete")

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[TickHealthTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TickHealthTaskAppKey]

    await app[SessionAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except Exception as e:
        metrics_client.increment(
            "server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=True,
            integrations=[AioHttpIntegration()]
        )
    app = web.Application(middlewares=[statsd_middleware, sentry_middleware])

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge(threshold=settings.health_threshold)

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
            web.get("/internal/api/avatar", handle_internal_avatar),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
