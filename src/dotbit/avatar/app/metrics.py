"""
Metrics Abstraction Layer

Vendor-agnostic metrics interface used by the avatar pipeline and the web server, so that
resolution code can record counters and timings without knowing whether a StatsD/Telegraf
agent is present.

Key Components:
- MetricsClient: Abstract interface for all metrics operations
- TelegrafCompatibilityClient: Wrapper for aio-statsd's TelegrafStatsdClient
- NoOpMetricsClient: No-operation client for the CLI, tests and disabled metrics
- create_metrics_client: Factory function for backend selection
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from aio_statsd import TelegrafStatsdClient

logger = logging.getLogger(__name__)


class MetricsClient(ABC):
    """
    Abstract metrics client.

    Tags follow the StatsD-style `tag_dict` convention of TelegrafStatsdClient.
    """

    @abstractmethod
    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Increment a counter metric by the specified value.

        Args:
            name: Metric name (e.g., 'avatar.resolve.count')
            value: Amount to increment by (default: 1)
            tag_dict: Optional tags for metric dimensions
        """
        pass

    @abstractmethod
    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record a duration in seconds.

        Args:
            name: Metric name (e.g., 'avatar.resolve.time')
            value: Duration in seconds
            tag_dict: Optional tags for metric dimensions
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Flush pending metrics and close any network connection."""
        pass


class TelegrafCompatibilityClient(MetricsClient):
    """MetricsClient delegating to a TelegrafStatsdClient."""

    def __init__(self, telegraf_client: TelegrafStatsdClient, prefix: str = ""):
        self.client = telegraf_client
        self.prefix = prefix

    def _name(self, name: str) -> str:
        return f"{self.prefix}.{name}" if self.prefix else name

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.increment(self._name(name), value, tag_dict=tag_dict or {})

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.timer(self._name(name), value, tag_dict=tag_dict or {})

    async def connect(self) -> None:
        await self.client.connect()

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Telegraf client: {e}")


class NoOpMetricsClient(MetricsClient):
    """Metrics client that discards everything."""

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    async def close(self) -> None:
        pass


def create_metrics_client(
    backend: str,
    host: str = "localhost",
    port: int = 8125,
    prefix: str = "",
    debug: bool = False,
) -> MetricsClient:
    """
    Create the metrics client for a backend name.

    Args:
        backend: 'telegraf' or 'none'
        host: Telegraf/StatsD host
        port: Telegraf/StatsD port
        prefix: Prefix prepended to every metric name
        debug: Enable aio-statsd debug logging

    Returns:
        MetricsClient: Configured metrics client instance

    Raises:
        ValueError: If the backend name is not supported
    """
    backend = backend.lower()

    if backend == "telegraf":
        return TelegrafCompatibilityClient(
            TelegrafStatsdClient(host=host, port=port, debug=debug), prefix=prefix
        )

    elif backend == "none":
        logger.info("Metrics collection disabled (no-op client)")
        return NoOpMetricsClient()

    raise ValueError(
        f"Invalid metrics backend: {backend}. Supported backends: 'telegraf', 'none'"
    )
