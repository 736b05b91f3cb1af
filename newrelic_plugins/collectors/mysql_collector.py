"""MySQL status query collector."""

import asyncio
from typing import Any, Dict, List

import pymysql

from ..config.models import MySQLConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from ..utils.values import as_value, camel_case
from .base import BaseCollector, safe_collect

EVENT_TYPE = "DatastoreSample"
PROVIDER = "mysql"


def fix_prefix(name: str, prefixes: str) -> str:
    """
    Turn the first underscore into a dot when name starts with a known prefix.

    Args:
        name: Raw variable name, e.g. "Innodb_buffer_pool_pages_free"
        prefixes: Space separated prefixes, e.g. "Innodb Threads"

    Returns:
        str: e.g. "Innodb.buffer_pool_pages_free"
    """
    for prefix in prefixes.split(" "):
        if prefix and name.startswith(prefix):
            return name.replace("_", ".", 1)
    return name


def metric_name(name: str, prefixes: str) -> str:
    return f"mysql.{camel_case(fix_prefix(name.replace(':', '.'), prefixes))}"


class MySQLCollector(BaseCollector):
    """Collector running name/value status queries against MySQL."""

    name = "mysql"
    config_class = MySQLConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        loop = asyncio.get_event_loop()
        return [await loop.run_in_executor(None, self._collect_sync)]

    def _collect_sync(self) -> MetricRecord:
        """Run every configured query on one connection (blocking)."""
        try:
            connection = pymysql.connect(
                host=self.config.host,
                port=int(self.config.port),
                user=self.config.user,
                password=self.config.password,
                database=self.config.database,
                connect_timeout=10
            )
        except pymysql.MySQLError as e:
            raise FetchError(
                f"Cannot connect to mysql {self.config.host}:{self.config.port}: {e}"
            ) from e

        try:
            return self.build_record(self._run_queries(connection))
        finally:
            connection.close()

    def _run_queries(self, connection: Any) -> List[tuple]:
        rows: List[tuple] = []
        for query in self.config.query_list:
            try:
                with connection.cursor() as cursor:
                    cursor.execute(query)
                    result = cursor.fetchall()
            except pymysql.MySQLError as e:
                self.logger.warning(f"Query failed, skipping: {query}: {e}")
                continue
            for row in result:
                if len(row) != 2:
                    self.logger.warning(f"Unknown query result: query {query} result: {row!r}")
                    continue
                rows.append(row)
        return rows

    def build_record(self, rows: List[tuple]) -> MetricRecord:
        """
        Fold (name, value) rows into a single record.

        Args:
            rows: Two-column rows such as those from SHOW GLOBAL STATUS

        Returns:
            MetricRecord: mysql.<camelName> = coerced value
        """
        record: Dict[str, Any] = {"event_type": EVENT_TYPE, "provider": PROVIDER}
        for name, value in rows:
            name = name.decode() if isinstance(name, bytes) else str(name)
            if isinstance(value, bytes):
                value = value.decode()
            record[metric_name(name, self.config.prefixes)] = as_value("" if value is None else str(value))
        return record
