"""Tests for BaseCollector class."""

import logging

import pytest

from newrelic_plugins.collectors.base import BaseCollector, safe_collect
from newrelic_plugins.config.models import CollectorConfig
from newrelic_plugins.utils.errors import CollectorError, FetchError
from newrelic_plugins.utils.metrics import PluginData


class MockCollector(BaseCollector):
    """Mock collector for testing BaseCollector functionality."""

    name = "mock"

    def __init__(self, records=None, error=None, logger=None):
        if logger is None:
            logger = logging.getLogger(__name__)
        super().__init__(CollectorConfig(), logger)
        self.records = records or []
        self.error = error

    @safe_collect
    async def collect(self):
        """Mock collect method."""
        if self.error:
            raise self.error
        return self.records


class TestBaseCollector:
    """Test suite for BaseCollector."""

    def test_child_logger_named_after_class(self, logger):
        collector = MockCollector(logger=logger)
        assert collector.logger.name == "test.MockCollector"

    @pytest.mark.asyncio
    async def test_run_wraps_records_in_envelope(self):
        records = [{"event_type": "X", "provider": "mock", "mock.value": 1}]
        collector = MockCollector(records=records)

        data = await collector.run("1.2.3")

        assert isinstance(data, PluginData)
        assert data.name == "mock"
        assert data.plugin_version == "1.2.3"
        assert data.protocol_version == "1"
        assert data.status == "OK"
        assert data.metrics == records
        assert data.inventory == {}
        assert data.events == []

    @pytest.mark.asyncio
    async def test_run_with_no_records(self):
        data = await MockCollector().run("1.0.0")
        assert data.metrics == []

    @pytest.mark.asyncio
    async def test_plugin_errors_pass_through(self):
        collector = MockCollector(error=FetchError("connection refused"))

        with pytest.raises(FetchError, match="connection refused"):
            await collector.collect()

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_collector_error(self):
        collector = MockCollector(error=KeyError("missing"))

        with pytest.raises(CollectorError) as exc_info:
            await collector.collect()

        assert "mock collection error" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, KeyError)
