"""memcached text-protocol stats collector."""

from typing import List

from ..config.models import MemcachedConfig
from ..utils.metrics import MetricRecord
from ..utils.values import PLAIN_CHUNKS, as_value, camel_case
from .base import BaseCollector, safe_collect
from .socket_helper import SocketHelper

EVENT_TYPE = "DatastoreSample"
PROVIDER = "memcached"

TERMINATORS = ("END", "ERROR", "CLIENT_ERROR", "SERVER_ERROR")
ERROR_REPLIES = ("ERROR", "CLIENT_ERROR", "SERVER_ERROR")


def metric_name(command: str, stat: str) -> str:
    """
    Build the metric name for a STAT line.

    "stats" gives memcached.<stat>, "stats slabs" gives memcached.slabs.<stat>.
    """
    words = command.split()
    prefix = f"memcached.{words[1]}" if len(words) == 2 else "memcached"
    return f"{prefix}.{camel_case(stat, PLAIN_CHUNKS)}"


class MemcachedCollector(BaseCollector):
    """Collector for memcached "stats" style commands."""

    name = "memcached"
    config_class = MemcachedConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        replies = await SocketHelper.send_commands_until(
            self.config.host,
            int(self.config.port),
            self.config.command_list,
            TERMINATORS,
            self.logger
        )

        record: MetricRecord = {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "memcached.stat": 1,
        }
        for command, lines in replies:
            self.scrape_reply(command, lines, record)
        return [record]

    def scrape_reply(self, command: str, lines: List[str], record: MetricRecord) -> None:
        """Add each "STAT <name> <value...>" line of a reply to the record."""
        for line in lines:
            if line == "END":
                break
            if line.startswith(ERROR_REPLIES):
                self.logger.warning(f"memcached rejected '{command}': {line}")
                break
            words = line.split(" ")
            if len(words) < 3 or words[0] != "STAT":
                self.logger.debug(f"Skipping unexpected line for '{command}': {line!r}")
                continue
            record[metric_name(command, words[1])] = as_value(" ".join(words[2:]))
