"""Google Cloud Datastore collector (Stackdriver series and kind statistics)."""

import asyncio
import logging
import time
from typing import Any, List, Optional

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import datastore, monitoring_v3
from google.oauth2 import service_account

from ..config.models import DatastoreConfig
from ..utils.errors import ConfigError, FetchError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect

EVENT_TYPE = "DatastoreSample"
STACKDRIVER_PROVIDER = "datastoreStackdriver"
QUERY_PROVIDER = "datastoreQuery"

STACKDRIVER_METRICS = [
    "datastore.googleapis.com/api/request_count",
    "datastore.googleapis.com/index/write_count",
]
WINDOW_SECONDS = 180
STAT_KIND = "__Stat_Kind__"

KIND_FIELDS = [
    ("builtinIndexBytes", "builtin_index_bytes"),
    ("builtinIndexCount", "builtin_index_count"),
    ("compositeIndexBytes", "composite_index_bytes"),
    ("compositeIndexCount", "composite_index_count"),
    ("entityBytes", "entity_bytes"),
    ("bytes", "bytes"),
    ("count", "count"),
]


def _epoch(value: Any) -> int:
    if value is None:
        return 0
    if hasattr(value, "timestamp"):
        return int(value.timestamp())
    return int(value)


def _kind_name(kind: Any) -> str:
    return getattr(kind, "name", str(kind))


class DatastoreCollector(BaseCollector):
    """Collector for Datastore request/index series and per-kind storage statistics."""

    name = "datastore"
    config_class = DatastoreConfig

    def __init__(self, config: DatastoreConfig, logger: logging.Logger,
                 metric_client: Optional[Any] = None,
                 datastore_client: Optional[Any] = None,
                 project_id: Optional[str] = None):
        super().__init__(config, logger)
        self.metric_client = metric_client
        self.datastore_client = datastore_client
        self.project_id = project_id

    def _connect(self) -> None:
        """Build both clients from the service-account key file unless they were injected."""
        if self.metric_client and self.datastore_client and self.project_id:
            return
        try:
            credentials = service_account.Credentials.from_service_account_file(
                self.config.key_file
            )
        except (OSError, ValueError) as e:
            raise ConfigError(f"Unable to load service account key {self.config.key_file}: {e}") from e

        self.project_id = self.project_id or credentials.project_id
        if not self.project_id:
            raise ConfigError(f"No project_id in service account key {self.config.key_file}")
        if self.metric_client is None:
            self.metric_client = monitoring_v3.MetricServiceClient(credentials=credentials)
        if self.datastore_client is None:
            self.datastore_client = datastore.Client(project=self.project_id, credentials=credentials)

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._collect_sync)

    def _collect_sync(self) -> List[MetricRecord]:
        self._connect()
        records: List[MetricRecord] = []
        try:
            for metric_type in STACKDRIVER_METRICS:
                records.extend(self.stackdriver_records(metric_type))
            records.extend(self.kind_records())
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise FetchError(f"Google Cloud request failed: {e}") from e
        return records

    def stackdriver_records(self, metric_type: str, now: Optional[float] = None) -> List[MetricRecord]:
        """
        List the time series of one metric type over the last three minutes.

        Series without points are skipped. Each record carries the first point.
        """
        end = int(now if now is not None else time.time())
        interval = monitoring_v3.TimeInterval({
            "end_time": {"seconds": end},
            "start_time": {"seconds": end - WINDOW_SECONDS},
        })
        series_list = self.metric_client.list_time_series(
            request={
                "name": f"projects/{self.project_id}",
                "filter": f'metric.type = "{metric_type}"',
                "interval": interval,
                "view": monitoring_v3.ListTimeSeriesRequest.TimeSeriesView.FULL,
            }
        )

        records = []
        for series in series_list:
            if not series.points:
                self.logger.debug(f"Skipping {metric_type} series without points")
                continue
            point = series.points[0]
            labels = series.metric.labels
            records.append({
                "event_type": EVENT_TYPE,
                "provider": STACKDRIVER_PROVIDER,
                "datastoreStackdriver.apiMethod": labels.get("api_method", ""),
                "datastoreStackdriver.responseCode": labels.get("response_code", ""),
                "datastoreStackdriver.metricType": series.metric.type,
                "datastoreStackdriver.metricKind": _kind_name(series.metric_kind),
                "datastoreStackdriver.timestamp": _epoch(point.interval.start_time),
                "datastoreStackdriver.value": point.value.int64_value,
                "datastoreStackdriver.projectId": series.resource.labels.get("project_id", ""),
                "datastoreStackdriver.resourceType": series.resource.type,
            })
        self.logger.info(f"Found {len(records)} {metric_type} series")
        return records

    def kind_records(self) -> List[MetricRecord]:
        """Query the per-kind statistics entities, ordered by kind name."""
        query = self.datastore_client.query(kind=STAT_KIND, order=["kind_name"])
        records = []
        for entity in query.fetch():
            record: MetricRecord = {"event_type": EVENT_TYPE, "provider": QUERY_PROVIDER}
            for metric, prop in KIND_FIELDS:
                record[f"datastoreQuery.{metric}"] = entity.get(prop) or 0
            record["datastoreQuery.kindName"] = entity.get("kind_name", "")
            record["datastoreQuery.projectId"] = self.project_id
            record["datastoreQuery.timestamp"] = _epoch(entity.get("timestamp"))
            records.append(record)
        return records
