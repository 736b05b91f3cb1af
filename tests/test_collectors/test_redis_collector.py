"""Tests for Redis collector."""

from unittest.mock import MagicMock, patch

import pytest
import redis

from newrelic_plugins.collectors.redis_collector import (
    FLOAT_FIELDS,
    INT_FIELDS,
    STRING_FIELDS,
    RedisCollector,
    parse_info,
)
from newrelic_plugins.config.models import RedisConfig
from newrelic_plugins.utils.errors import FetchError

INFO = {
    "redis_version": "3.2.9",
    "redis_mode": "standalone",
    "arch_bits": 64,
    "connected_clients": 12,
    "used_memory": 1048576,
    "used_memory_human": "1.00M",
    "mem_fragmentation_ratio": 1.25,
    "role": "master",
    "keyspace_hits": 900,
    "keyspace_misses": 100,
    "db0": {"keys": 10, "expires": 0},
}

INFO_TEXT = (
    "# Server\r\n"
    "redis_version:3.2.9\r\n"
    "redis_git_sha1:00000000\r\n"
    "redis_git_dirty:0\r\n"
    "run_id:1234567890\r\n"
    "arch_bits:64\r\n"
    "\r\n"
    "# Memory\r\n"
    "used_memory:1048576\r\n"
    "used_memory_human:1.00M\r\n"
    "mem_fragmentation_ratio:1.25\r\n"
    "\r\n"
    "# Replication\r\n"
    "role:master\r\n"
    "\r\n"
    "# Keyspace\r\n"
    "db0:keys=10,expires=0,avg_ttl=0\r\n"
)


@pytest.fixture
def collector(logger):
    return RedisCollector(RedisConfig(password="pw", db="2"), logger)


def test_format_metric(collector):
    record = collector.format_metric(INFO)

    assert record["event_type"] == "RedisInfo"
    assert record["provider"] == "redis"
    assert record["redis.redis_version"] == "3.2.9"
    assert record["redis.used_memory_human"] == "1.00M"
    assert record["redis.arch_bits"] == 64
    assert record["redis.connected_clients"] == 12
    assert record["redis.mem_fragmentation_ratio"] == 1.25
    assert record["redis.keyspace_misses"] == 100
    assert len(record) == 2 + len(STRING_FIELDS) + len(INT_FIELDS) + len(FLOAT_FIELDS)


def test_missing_fields_get_typed_defaults(collector):
    record = collector.format_metric({})

    assert record["redis.role"] == ""
    assert record["redis.uptime_in_seconds"] == 0
    assert record["redis.used_cpu_sys"] == 0.0


@pytest.mark.asyncio
async def test_redis_collector_success(collector):
    with patch('newrelic_plugins.collectors.redis_collector.redis.Redis') as mock_redis:
        mock_client = MagicMock()
        mock_client.execute_command.return_value = INFO_TEXT
        mock_redis.return_value = mock_client

        records = await collector.collect()

        mock_redis.assert_called_once_with(
            host="localhost", port=6379, password="pw", db=2, socket_timeout=10,
            decode_responses=True
        )
        mock_client.execute_command.assert_called_once_with("INFO")
        mock_client.close.assert_called_once()

    assert len(records) == 1
    assert records[0]["redis.role"] == "master"
    assert records[0]["redis.redis_git_sha1"] == "00000000"
    assert records[0]["redis.run_id"] == "1234567890"
    assert records[0]["redis.arch_bits"] == 64
    assert records[0]["redis.mem_fragmentation_ratio"] == 1.25


@pytest.mark.asyncio
async def test_redis_connection_error(collector):
    with patch('newrelic_plugins.collectors.redis_collector.redis.Redis') as mock_redis:
        mock_redis.return_value.execute_command.side_effect = redis.ConnectionError("Connection refused")

        with pytest.raises(FetchError, match="Error making stats call to redis"):
            await collector.collect()


def test_parse_info_keeps_values_as_text():
    info = parse_info(INFO_TEXT)

    assert info["redis_git_sha1"] == "00000000"
    assert info["arch_bits"] == "64"
    assert info["db0"] == "keys=10,expires=0,avg_ttl=0"
    assert "# Server" not in info
