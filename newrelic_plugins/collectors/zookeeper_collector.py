"""Zookeeper four-letter-word (conf, mntr) collector."""

from typing import Dict, List

from ..config.models import ZookeeperConfig
from ..utils.errors import ParseError
from ..utils.metrics import MetricRecord
from ..utils.values import as_value, to_int
from .base import BaseCollector, safe_collect
from .socket_helper import SocketHelper

EVENT_TYPE = "ZookeeperServerSample"
PROVIDER = "zookeeper"

CONF_INT_KEYS = [
    "clientPort", "tickTime", "maxClientCnxns", "minSessionTimeout",
    "maxSessionTimeout", "serverId",
]

MNTR_STRING_KEYS = ["zk_version", "zk_server_state"]
MNTR_KEYS = [
    "zk_avg_latency", "zk_max_latency", "zk_min_latency", "zk_packets_received",
    "zk_packets_sent", "zk_num_alive_connections", "zk_outstanding_requests",
    "zk_znode_count", "zk_watch_count", "zk_ephemerals_count",
    "zk_approximate_data_size", "zk_open_file_descriptor_count",
    "zk_max_file_descriptor_count",
]
MNTR_LEADER_KEYS = ["zk_followers", "zk_synced_followers", "zk_pending_syncs"]


def parse_lines(text: str, separator: str) -> Dict[str, str]:
    """Split "key<sep>value" lines into a dict, ignoring anything else."""
    values = {}
    for line in text.splitlines():
        if separator not in line:
            continue
        key, value = line.split(separator, 1)
        values[key.strip()] = value.strip()
    return values


def _require(values: Dict[str, str], keys: List[str], command: str) -> None:
    missing = [key for key in keys if key not in values]
    if missing:
        raise ParseError(f"zookeeper '{command}' reply is missing {', '.join(missing)}")


class ZookeeperCollector(BaseCollector):
    """Collector for the Zookeeper conf and mntr admin commands."""

    name = "zookeeper"
    config_class = ZookeeperConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        conf = await self._command("conf")
        mntr = await self._command("mntr")
        return [self.scrape_conf(conf), self.scrape_mntr(mntr)]

    async def _command(self, command: str) -> str:
        return await SocketHelper.send_command(
            self.config.host,
            int(self.config.client_port),
            command,
            self.logger,
            timeout=self.config.timeout
        )

    def scrape_conf(self, text: str) -> MetricRecord:
        """
        Parse the key=value reply of "conf".

        Raises:
            ParseError: If a reported setting is missing
        """
        values = parse_lines(text, "=")
        _require(values, CONF_INT_KEYS + ["dataDir"], "conf")
        self.logger.debug(f"Scraped ZooKeeper conf values: {values}")

        record: MetricRecord = {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "zookeeper.conf.dataDir": values["dataDir"],
        }
        for key in CONF_INT_KEYS:
            record[f"zookeeper.conf.{key}"] = to_int(values[key], self.logger)
        return record

    def scrape_mntr(self, text: str) -> MetricRecord:
        """
        Parse the tab separated reply of "mntr".

        Follower counts are only present when the server is the leader.

        Raises:
            ParseError: If a base metric is missing
        """
        values = parse_lines(text, "\t")
        _require(values, MNTR_STRING_KEYS + MNTR_KEYS, "mntr")
        self.logger.debug(f"Scraped ZooKeeper mntr values: {values}")

        record: MetricRecord = {"event_type": EVENT_TYPE, "provider": PROVIDER}
        for key in MNTR_STRING_KEYS:
            record[f"zookeeper.mntr.{key}"] = values[key]

        keys = list(MNTR_KEYS)
        if values["zk_server_state"] == "leader":
            keys.extend(key for key in MNTR_LEADER_KEYS if key in values)
        for key in keys:
            record[f"zookeeper.mntr.{key}"] = as_value(values[key])
        return record
