"""Couchbase cluster, bucket and XDCR replication collector."""

import asyncio
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field, ValidationError

from ..config.models import CouchbaseConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from ..utils.values import mean
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper, build_url

EVENT_TYPE = "DatastoreSample"
INDEX_EVENT_TYPE = "CouchbaseIndexSample"
REPLICATION_EVENT_TYPE = "CouchbaseReplicationSample"
PROVIDER = "couchbase"

BUCKET_STATS = [
    "avg_bg_wait_time", "avg_disk_commit_time", "bytes_read", "bytes_written",
    "cas_hits", "cas_misses", "cmd_get", "cmd_set", "couch_docs_actual_disk_size",
    "couch_docs_data_size", "couch_docs_disk_size", "couch_docs_fragmentation",
    "couch_total_disk_size", "couch_views_fragmentation", "couch_views_ops",
    "cpu_idle_ms", "cpu_utilization_rate", "curr_connections", "curr_items",
    "curr_items_tot", "decr_hits", "decr_misses", "delete_hits", "delete_misses",
    "disk_commit_count", "disk_update_count", "disk_write_queue", "evictions",
    "get_hits", "get_misses", "hit_ratio", "incr_hits", "mem_free", "mem_actual_free",
    "mem_total", "mem_used", "mem_actual_used", "misses", "ops", "vb_active_itm_memory",
    "vb_active_meta_data_memory", "vb_active_num", "vb_active_queue_drain",
    "vb_active_queue_size", "vb_active_resident_items_ratio", "vb_active_num_non_resident",
    "vb_avg_total_queue_age", "vb_pending_ops_create", "vb_pending_queue_fill",
    "vb_replica_curr_items", "vb_replica_itm_memory", "vb_replica_meta_data_memory",
    "vb_replica_num", "vb_replica_queue_size", "xdc_ops", "vb_replica_resident_items_ratio",
]

BUCKET_EP_STATS = [
    "ep_bg_fetched", "ep_cache_miss_rate", "ep_diskqueue_items", "ep_diskqueue_drain",
    "ep_diskqueue_fill", "ep_flusher_todo", "ep_item_commit_failed", "ep_max_size",
    "ep_mem_high_wat", "ep_num_non_resident", "ep_meta_data_memory", "ep_num_value_ejects",
    "ep_num_ops_get_meta", "ep_num_ops_set_meta", "ep_oom_errors", "ep_ops_create",
    "ep_ops_update", "ep_overhead", "ep_queue_size", "ep_resident_items_rate",
    "ep_tap_replica_queue_drain", "ep_tap_total_queue_drain", "ep_tap_total_queue_fill",
    "ep_tap_total_total_backlog_size", "ep_tmp_oom_errors", "ep_kv_size", "ep_mem_low_wat",
    "ep_dcp_replica_items_remaining", "ep_dcp_replica_items_sent",
    "ep_dcp_replica_total_bytes", "ep_dcp_xdcr_items_remaining", "ep_dcp_xdcr_items_sent",
    "ep_dcp_xdcr_total_bytes", "ep_dcp_views_items_remaining", "ep_dcp_2i_items_remaining",
    "ep_dcp_fts_items_remaining", "ep_dcp_other_items_remaining",
]

REMOTE_STAT_ENDPOINTS = [
    "changes_left",
    "rate_replicated",
    "docs_written",
    "docs_checked",
    "docs_rep_queue",
    "num_checkpoints",
    "num_failedckpts",
    "bandwidth_usage",
]


class HDDTotals(BaseModel):
    free: int = 0
    total: int = 0
    used: int = 0
    usedByData: int = 0
    quotaTotal: int = 0


class RAMTotals(BaseModel):
    total: int = 0
    used: int = 0
    usedByData: int = 0
    quotaTotal: int = 0


class StorageTotals(BaseModel):
    hdd: HDDTotals = Field(default_factory=HDDTotals)
    ram: RAMTotals = Field(default_factory=RAMTotals)


class ClusterNode(BaseModel):
    hostname: str = ""
    clusterMembership: str = ""
    status: str = ""


class ClusterInfo(BaseModel):
    """Subset of GET /pools/default."""
    name: str = ""
    indexStatusURI: str = ""
    storageTotals: StorageTotals = Field(default_factory=StorageTotals)
    nodes: List[ClusterNode] = Field(default_factory=list)


class IndexStatus(BaseModel):
    id: int = 0
    bucket: str = ""
    index: str = ""
    status: str = ""
    definition: str = ""
    progress: int = 0


class IndexStatusResponse(BaseModel):
    indexes: List[IndexStatus] = Field(default_factory=list)


class BucketStatsLink(BaseModel):
    uri: str = ""


class BucketInfo(BaseModel):
    """One entry of GET /pools/default/buckets."""
    name: str
    uri: str = ""
    stats: BucketStatsLink = Field(default_factory=BucketStatsLink)


class BucketSamples(BaseModel):
    samples: Dict[str, Any] = Field(default_factory=dict)


class BucketStats(BaseModel):
    op: BucketSamples = Field(default_factory=BucketSamples)


class RemoteCluster(BaseModel):
    hostname: str = ""
    name: str = ""
    uri: str = ""
    username: str = ""
    uuid: str = ""
    deleted: bool = False


class RemoteReplicationStats(BaseModel):
    samplesCount: int = 0
    isPersistent: bool = False
    lastTStamp: int = 0
    interval: int = 0
    timestamp: List[int] = Field(default_factory=list)
    nodeStats: Dict[str, List[float]] = Field(default_factory=dict)


class CouchbaseCollector(BaseCollector):
    """Collector for Couchbase REST statistics."""

    name = "couchbase"
    config_class = CouchbaseConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        """
        Gather cluster, bucket and replication metrics.

        Only the cluster overview is required; bucket, index and replication
        failures are logged and the affected records are left out.

        Returns:
            List[MetricRecord]: Cluster records, then bucket, replication and
            remote replication records
        """
        records = await self.cluster_records()

        buckets, bucket_records = await self.bucket_records()
        records.extend(bucket_records)

        try:
            remotes = await self._decode_list("pools/default/remoteClusters", RemoteCluster)
        except FetchError as e:
            self.logger.error(f"Error retrieving remote clusters: {e}")
            remotes = []
        records.extend(self.format_remote_cluster(remote) for remote in remotes)

        records.extend(await self.remote_replication_records(buckets, [r.uuid for r in remotes]))
        return records

    async def _fetch(self, path: str) -> Any:
        url = build_url(self.config.host, self.config.port, path)
        return await HTTPHelper.get_json(
            url, self.logger, auth=(self.config.user, self.config.password)
        )

    async def _decode(self, path: str, model: type) -> Any:
        payload = await self._fetch(path)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise FetchError(f"Unexpected couchbase response for {path}: {e}") from e

    async def _decode_list(self, path: str, model: type) -> List[Any]:
        payload = await self._fetch(path)
        if not isinstance(payload, list):
            raise FetchError(f"Expected a list from {path}")
        try:
            return [model.model_validate(item) for item in payload]
        except ValidationError as e:
            raise FetchError(f"Unexpected couchbase response for {path}: {e}") from e

    async def cluster_records(self) -> List[MetricRecord]:
        """
        Per-node, index and cluster storage records from /pools/default.

        Raises:
            FetchError: If the cluster overview cannot be retrieved
        """
        cluster: ClusterInfo = await self._decode("pools/default", ClusterInfo)

        records: List[MetricRecord] = [
            {
                "event_type": EVENT_TYPE,
                "provider": PROVIDER,
                "couchbase.cluster.name": cluster.name,
                "couchbase.cluster.by_node.status": node.status,
                "couchbase.cluster.by_node.hostname": node.hostname,
                "couchbase.cluster.by_node.cluster_membership": node.clusterMembership,
            }
            for node in cluster.nodes
        ]

        if cluster.indexStatusURI:
            try:
                indexes = await self._decode(cluster.indexStatusURI, IndexStatusResponse)
                records.extend(self.format_index(index) for index in indexes.indexes)
            except FetchError as e:
                self.logger.error(f"Error querying cluster indexes: {e}")

        hdd = cluster.storageTotals.hdd
        ram = cluster.storageTotals.ram
        records.append({
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "couchbase.scalr.clustername": self.config.cluster_name,
            "couchbase.cluster.name": cluster.name,
            "couchbase.cluster.hdd.free": hdd.free,
            "couchbase.cluster.hdd.total": hdd.total,
            "couchbase.cluster.hdd.quota_total": hdd.quotaTotal,
            "couchbase.cluster.hdd.used": hdd.used,
            "couchbase.cluster.hdd.used_by_data": hdd.usedByData,
            "couchbase.cluster.ram.total": ram.total,
            "couchbase.cluster.ram.quota_total": ram.quotaTotal,
            "couchbase.cluster.ram.used": ram.used,
            "couchbase.cluster.ram.used_by_data": ram.usedByData,
        })
        return records

    def format_index(self, index: IndexStatus) -> MetricRecord:
        return {
            "event_type": INDEX_EVENT_TYPE,
            "provider": PROVIDER,
            "couchbase.scalr.clustername": self.config.cluster_name,
            "couchbase.index.id": index.id,
            "couchbase.index.index": index.index,
            "couchbase.index.definition": index.definition,
            "couchbase.index.status": index.status,
            "couchbase.index.progress": index.progress,
        }

    async def bucket_records(self) -> Tuple[List[str], List[MetricRecord]]:
        """
        Fetch every bucket's minute stats concurrently.

        A bucket whose stats cannot be fetched is logged and skipped, so N
        buckets with one failure yield 2*(N-1) records.

        Returns:
            Tuple of (names of buckets that reported, stats and EP stats records)
        """
        try:
            buckets = await self._decode_list("pools/default/buckets", BucketInfo)
        except FetchError as e:
            self.logger.error(f"Error retrieving bucket list: {e}")
            return [], []

        self.logger.info(f"Fetching stats for {len(buckets)} bucket(s)")
        tasks = [self._decode(f"{bucket.stats.uri}?zoom=minute", BucketStats) for bucket in buckets]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        names: List[str] = []
        records: List[MetricRecord] = []
        for bucket, result in zip(buckets, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Error retrieving stats for bucket {bucket.name}: {result}")
                continue
            names.append(bucket.name)
            records.append(self.format_bucket(bucket.name, result, BUCKET_STATS))
            records.append(self.format_bucket(bucket.name, result, BUCKET_EP_STATS))
        return names, records

    def format_bucket(self, name: str, stats: BucketStats, keys: List[str]) -> MetricRecord:
        """Average each sampled stat over the minute window."""
        record: MetricRecord = {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "couchbase.scalr.clustername": self.config.cluster_name,
            "couchbase.by_bucket.name": name,
        }
        samples = stats.op.samples
        for key in keys:
            record[f"couchbase.by_bucket.{key}"] = mean(samples.get(key))
        return record

    def format_remote_cluster(self, remote: RemoteCluster) -> MetricRecord:
        return {
            "event_type": REPLICATION_EVENT_TYPE,
            "provider": PROVIDER,
            "couchbase.replication.hostname": remote.hostname,
            "couchbase.replication.name": remote.name,
            "couchbase.replication.uri": remote.uri,
            "couchbase.replication.username": remote.username,
            "couchbase.replication.uuid": remote.uuid,
            "couchbase.replication.deleted": remote.deleted,
        }

    async def remote_replication_records(
        self,
        buckets: List[str],
        uuids: List[str]
    ) -> List[MetricRecord]:
        """
        XDCR stats for every bucket, remote cluster and replication endpoint.

        Failed endpoints are dropped silently apart from a debug log.
        """
        targets = [
            (bucket, uuid, endpoint)
            for bucket in buckets
            for uuid in uuids
            for endpoint in REMOTE_STAT_ENDPOINTS
        ]
        if not targets:
            return []

        results = await asyncio.gather(
            *(self._remote_replication_stat(*target) for target in targets),
            return_exceptions=True
        )

        records = []
        for (bucket, uuid, endpoint), result in zip(targets, results):
            if isinstance(result, Exception):
                self.logger.debug(f"Replication stat {endpoint} for {bucket}/{uuid} failed: {result}")
                continue
            records.append(result)
        return records

    async def _remote_replication_stat(self, bucket: str, uuid: str, endpoint: str) -> MetricRecord:
        path = (
            f"pools/default/buckets/{bucket}/stats/"
            f"replications%2F{uuid}%2F{bucket}%2F{bucket}%2F{endpoint}"
        )
        stat: RemoteReplicationStats = await self._decode(path, RemoteReplicationStats)
        prefix = f"couchbase.replication.{endpoint}"
        return {
            "event_type": REPLICATION_EVENT_TYPE,
            "provider": PROVIDER,
            f"{prefix}.samplescount": stat.samplesCount,
            f"{prefix}.ispersistent": stat.isPersistent,
            f"{prefix}.lasttstamp": stat.lastTStamp,
            f"{prefix}.interval": stat.interval,
            f"{prefix}.timestamp": stat.timestamp,
            f"{prefix}.nodestats": stat.nodeStats,
        }
