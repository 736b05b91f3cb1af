"""Base collector abstract class for all metric plugins."""

from abc import ABC, abstractmethod
from typing import Any, List
import logging
from functools import wraps

from ..config.models import CollectorConfig
from ..utils.errors import CollectorError, PluginError
from ..utils.metrics import MetricRecord, PluginData


class BaseCollector(ABC):
    """
    Abstract base class for all collectors.

    A collector fetches one technology's status, scrapes it into flat metric
    records and hands them to run(), which wraps them in the plugin envelope.
    """

    name: str = ""
    config_class = CollectorConfig
    status: str = "OK"

    def __init__(self, config: Any, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            config: Collector-specific configuration
            logger: Logger instance
        """
        self.config = config
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def collect(self) -> List[MetricRecord]:
        """
        Collect metrics and return flat records.

        Returns:
            List[MetricRecord]: Records with at least event_type and provider

        Raises:
            PluginError: Any collection error that should end the run

        Note:
            Implementations should use the @safe_collect decorator so that
            unexpected exceptions surface as CollectorError.
        """
        pass

    async def run(self, plugin_version: str) -> PluginData:
        """
        Collect and wrap the records in the output envelope.

        Args:
            plugin_version: Version string reported in the envelope

        Returns:
            PluginData: Envelope ready for output_json
        """
        metrics = await self.collect()
        self.logger.debug(f"Collected {len(metrics)} metric record(s)")
        return PluginData(
            name=self.name,
            plugin_version=plugin_version,
            metrics=metrics,
            status=self.status,
        )


def safe_collect(func):
    """
    Decorator to log collector failures and normalize them to PluginError.

    PluginError subclasses pass through unchanged; any other exception is
    wrapped in CollectorError.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped coroutine function
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except PluginError as e:
            self.logger.error(f"Collection failed: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Collection failed: {e}", exc_info=True)
            raise CollectorError(f"{self.name} collection error: {e}") from e
    return wrapper
