import asyncio
import logging
from typing import NoReturn

from aiohttp import web

from dotbit.avatar.app.config import HealthGaugeAppKey, SettingsAppKey

logger = logging.getLogger(__name__)


async def tick_health_task(app: web.Application) -> NoReturn:
    """
    Drain the health gauge by one failure every `health_tick_interval` seconds.
    """

    interval = app[SettingsAppKey].health_tick_interval
    logger.info("Starting health gauge task, interval %ss", interval)

    health_gauge = app[HealthGaugeAppKey]
    while True:
        await health_gauge.tick()
        await asyncio.sleep(interval)
