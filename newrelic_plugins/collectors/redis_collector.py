"""Redis INFO collector."""

import asyncio
from typing import Any, Dict, List, Mapping

import redis

from ..config.models import RedisConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from ..utils.values import to_float, to_int
from .base import BaseCollector, safe_collect

EVENT_TYPE = "RedisInfo"
PROVIDER = "redis"

STRING_FIELDS = [
    "redis_version", "redis_git_sha1", "redis_build_id", "redis_mode", "os",
    "multiplexing_api", "gcc_version", "run_id", "executable", "config_file",
    "used_memory_human", "used_memory_rss_human", "used_memory_peak_human",
    "total_system_memory_human", "used_memory_lua_human", "maxmemory_human",
    "maxmemory_policy", "mem_allocator", "rdb_last_bgsave_status",
    "aof_last_bgrewrite_status", "aof_last_write_status", "role",
]

INT_FIELDS = [
    "redis_git_dirty", "arch_bits", "process_id", "tcp_port", "uptime_in_seconds",
    "uptime_in_days", "hz", "lru_clock", "connected_clients",
    "client_longest_output_list", "client_biggest_input_buf", "blocked_clients",
    "used_memory", "used_memory_rss", "used_memory_peak", "total_system_memory",
    "used_memory_lua", "maxmemory", "loading", "rdb_changes_since_last_save",
    "rdb_bgsave_in_progress", "rdb_last_save_time", "rdb_last_bgsave_time_sec",
    "rdb_current_bgsave_time_sec", "aof_enabled", "aof_rewrite_in_progress",
    "aof_rewrite_scheduled", "aof_last_rewrite_time_sec", "aof_current_rewrite_time_sec",
    "total_connections_received", "total_commands_processed", "instantaneous_ops_per_sec",
    "total_net_input_bytes", "total_net_output_bytes", "rejected_connections",
    "sync_full", "sync_partial_ok", "sync_partial_err", "expired_keys", "evicted_keys",
    "keyspace_hits", "keyspace_misses", "pubsub_channels", "pubsub_patterns",
    "latest_fork_usec", "migrate_cached_sockets", "connected_slaves",
    "master_repl_offset", "repl_backlog_active", "repl_backlog_size",
    "repl_backlog_first_byte_offset", "repl_backlog_histlen", "cluster_enabled",
]

FLOAT_FIELDS = [
    "mem_fragmentation_ratio", "instantaneous_input_kbps", "instantaneous_output_kbps",
    "used_cpu_sys", "used_cpu_user", "used_cpu_sys_children", "used_cpu_user_children",
]


def parse_info(text: str) -> Dict[str, str]:
    """
    Split a raw INFO reply into field strings.

    Values stay exactly as the server sent them; section headers and blank
    lines are skipped.
    """
    info = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        key, value = line.split(":", 1)
        info[key] = value
    return info


def _raw(info: Mapping[str, Any], key: str) -> str:
    value = info.get(key)
    return "" if value is None else str(value)


class RedisCollector(BaseCollector):
    """Collector for the Redis INFO command."""

    name = "redis"
    config_class = RedisConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        loop = asyncio.get_event_loop()
        info = await loop.run_in_executor(None, self._read_info)
        return [self.format_metric(info)]

    def _read_info(self) -> Dict[str, str]:
        client = redis.Redis(
            host=self.config.host,
            port=int(self.config.port),
            password=self.config.password or None,
            db=self.config.db_id,
            socket_timeout=10,
            decode_responses=True
        )
        # raw INFO text, so digit-only strings such as redis_git_sha1 stay strings
        client.set_response_callback("INFO", lambda response, **options: response)
        try:
            return parse_info(client.execute_command("INFO"))
        except redis.RedisError as e:
            raise FetchError(f"Error making stats call to redis: {e}") from e
        finally:
            client.close()

    def format_metric(self, info: Mapping[str, Any]) -> MetricRecord:
        """
        Shape the INFO mapping into a single typed record.

        Missing keys become "", 0 or 0.0 depending on the field type.

        Args:
            info: Parsed INFO reply

        Returns:
            MetricRecord: redis.<field> values
        """
        self.logger.debug(f"Full raw info response: {dict(info)}")
        record: Dict[str, Any] = {"event_type": EVENT_TYPE, "provider": PROVIDER}
        for key in STRING_FIELDS:
            record[f"redis.{key}"] = _raw(info, key)
        for key in INT_FIELDS:
            record[f"redis.{key}"] = to_int(_raw(info, key), self.logger)
        for key in FLOAT_FIELDS:
            record[f"redis.{key}"] = to_float(_raw(info, key), self.logger)
        return record
