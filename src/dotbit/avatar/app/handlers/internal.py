import json
import logging
import traceback
from aiohttp import web
import sentry_sdk
from dotbit.avatar.app.config import (
    AvatarResolverAppKey,
    HealthGaugeAppKey,
    SettingsAppKey,
)

logger = logging.getLogger(__name__)


async def handle_internal_ready(request: web.Request):
    health_gauge = request.app[HealthGaugeAppKey]
    failures, healthy = await health_gauge.snapshot()
    return web.json_response(
        {"failures": failures, "threshold": health_gauge.threshold},
        status=200 if healthy else 503,
    )


async def handle_internal_alive(request: web.Request):
    return web.Response(status=200)


async def handle_internal_avatar(request: web.Request):
    accounts = request.query.getall("account", [])
    if len(accounts) == 0:
        return web.json_response([])

    resolver = request.app[AvatarResolverAppKey]
    try:
        avatars = await resolver.resolve_many(accounts)
    except Exception as e:
        logger.error(
            f"Unexpected error in handle_internal_avatar: {type(e).__name__}: {str(e)}\n"
            f"Traceback:\n{traceback.format_exc()}"
        )
        sentry_sdk.capture_exception(e)

        settings = request.app.get(SettingsAppKey)
        if settings and getattr(settings, "debug", False):
            response_body = json.dumps(
                {
                    "error": "Internal Server Error",
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                }
            )
        else:
            response_body = json.dumps(
                {"error": "Internal Server Error", "error_type": type(e).__name__}
            )

        raise web.HTTPInternalServerError(
            text=response_body,
            content_type="application/json",
        )

    return web.json_response(
        [
            {
                "account": account,
                "avatar": avatar.model_dump() if avatar is not None else None,
            }
            for account, avatar in zip(accounts, avatars)
        ]
    )
