"""MongoDB dbStats and serverStatus collector."""

import asyncio
from typing import Any, Dict, List
from urllib.parse import quote_plus

import pymongo
from pymongo.errors import PyMongoError

from ..config.models import MongoConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect

EVENT_TYPE = "DatastoreSample"
PROVIDER = "mongo"
SERVER_SELECTION_TIMEOUT_MS = 10000

DB_FIELDS = [
    ("collections", "collections"),
    ("Objects", "objects"),
    ("AvgObjSize", "avgObjSize"),
    ("DataSize", "dataSize"),
    ("StorageSize", "storageSize"),
    ("NumExtents", "numExtents"),
    ("Indexes", "indexes"),
    ("IndexSize", "indexSize"),
]

SERVER_FIELDS = [
    ("mongo.server.pid", None, "pid"),
    ("mongo.server.uptime", None, "uptime"),
    ("mongo.server.uptimeMillis", None, "uptimeMillis"),
    ("mongo.server.uptimeEstimate", None, "uptimeEstimate"),
    ("mongo.server.asserts.msg", "asserts", "msg"),
    ("mongo.server.asserts.regular", "asserts", "regular"),
    ("mongo.server.asserts.rollovers", "asserts", "rollovers"),
    ("mongo.server.asserts.user", "asserts", "user"),
    ("mongo.server.asserts.warning", "asserts", "warning"),
    ("mongo.backgroundFlushing.averageMS", "backgroundFlushing", "average_ms"),
    ("mongo.backgroundFlushing.flushes", "backgroundFlushing", "flushes"),
    ("mongo.backgroundFlushing.lastMS", "backgroundFlushing", "last_ms"),
    ("mongo.backgroundFlushing.totalMS", "backgroundFlushing", "total_ms"),
    ("mongo.connections.available", "connections", "available"),
    ("mongo.connections.current", "connections", "current"),
    ("mongo.connections.totalCreated", "connections", "totalCreated"),
    ("mongo.dur.commits", "dur", "commits"),
    ("mongo.dur.compression", "dur", "compression"),
    ("mongo.dur.earlyCommits", "dur", "earlyCommits"),
    ("mongo.dur.journalMB", "dur", "journaledMB"),
    ("mongo.dur.writeToDataFilesMb", "dur", "writeToDataFilesMB"),
    ("mongo.dur.commitsInWriteLock", "dur", "commitsInWriteLock"),
]


def format_db_stats(stats: Dict[str, Any]) -> MetricRecord:
    record: MetricRecord = {
        "event_type": EVENT_TYPE,
        "provider": PROVIDER,
        "mongo.db.name": stats.get("db", ""),
    }
    for metric, key in DB_FIELDS:
        record[f"mongo.db.{metric}"] = stats.get(key) or 0
    return record


def format_server_status(status: Dict[str, Any]) -> MetricRecord:
    """Flatten serverStatus; sections the server does not report read as 0."""
    record: MetricRecord = {
        "event_type": EVENT_TYPE,
        "provider": PROVIDER,
        "mongo.server.host": status.get("host", ""),
        "mongo.server.version": status.get("version", ""),
    }
    for metric, section, key in SERVER_FIELDS:
        source = status if section is None else (status.get(section) or {})
        record[metric] = source.get(key) or 0
    return record


class MongoCollector(BaseCollector):
    """Collector for per-database and server-wide MongoDB statistics."""

    name = "mongo"
    config_class = MongoConfig

    @property
    def uri(self) -> str:
        return "mongodb://{}:{}@{}:{}/{}".format(
            quote_plus(self.config.user),
            quote_plus(self.config.password),
            self.config.host,
            self.config.port,
            self.config.database,
        )

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._collect_sync)

    def _collect_sync(self) -> List[MetricRecord]:
        client = pymongo.MongoClient(self.uri, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
        try:
            names = client.list_database_names()
            self.logger.info(f"Found {len(names)} database(s)")
            records = [format_db_stats(client[name].command("dbStats")) for name in names]
            records.append(format_server_status(client.admin.command("serverStatus")))
        except PyMongoError as e:
            raise FetchError(f"mongo request to {self.config.host}:{self.config.port} failed: {e}") from e
        finally:
            client.close()
        return records
