"""Tests for Couchbase collector."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from newrelic_plugins.collectors.couchbase_collector import (
    BUCKET_EP_STATS,
    BUCKET_STATS,
    REMOTE_STAT_ENDPOINTS,
    BucketInfo,
    CouchbaseCollector,
)
from newrelic_plugins.config.models import CouchbaseConfig
from newrelic_plugins.utils.errors import FetchError

from conftest import http_response, routed_get

BASE = "http://cb:8091"

CLUSTER = {
    "name": "default",
    "indexStatusURI": "/indexStatus",
    "storageTotals": {
        "hdd": {"free": 100, "total": 500, "used": 400, "usedByData": 300, "quotaTotal": 500},
        "ram": {"total": 64, "used": 32, "usedByData": 16, "quotaTotal": 48},
    },
    "nodes": [
        {"hostname": "cb1:8091", "clusterMembership": "active", "status": "healthy"},
        {"hostname": "cb2:8091", "clusterMembership": "active", "status": "warmup"},
    ],
}

INDEXES = {
    "indexes": [
        {"id": 42, "bucket": "b1", "index": "by_type", "status": "Ready",
         "definition": "CREATE INDEX by_type ON b1(type)", "progress": 100},
    ]
}


def bucket_list(names):
    return [{"name": n, "uri": f"/pools/default/buckets/{n}",
             "stats": {"uri": f"/pools/default/buckets/{n}/stats"}} for n in names]


def bucket_stats(value):
    return {"op": {"samples": {"cmd_get": [value, value * 3], "ep_bg_fetched": [value]}}}


def routes(names, failing=(), remotes=None):
    table = {
        f"{BASE}/pools/default": http_response(json_data=CLUSTER),
        f"{BASE}/indexStatus": http_response(json_data=INDEXES),
        f"{BASE}/pools/default/buckets": http_response(json_data=bucket_list(names)),
    }
    for idx, name in enumerate(names):
        url = f"{BASE}/pools/default/buckets/{name}/stats?zoom=minute"
        if name in failing:
            table[url] = httpx.ConnectError("connection reset")
        else:
            table[url] = http_response(json_data=bucket_stats(idx + 1))
    if remotes is not None:
        table[f"{BASE}/pools/default/remoteClusters"] = http_response(json_data=remotes)
    return table


@pytest.fixture
def collector(logger):
    config = CouchbaseConfig(user="admin", password="pw", host="cb", port="8091",
                             cluster_name="scalr-cb")
    return CouchbaseCollector(config, logger)


@pytest.mark.asyncio
async def test_bucket_fan_out(http_client, collector):
    """N buckets give 2*N stats records."""
    http_client.get.side_effect = routed_get(routes(["b1", "b2", "b3"]))

    names, records = await collector.bucket_records()

    assert sorted(names) == ["b1", "b2", "b3"]
    assert len(records) == 6
    first = records[0]
    assert first["couchbase.by_bucket.name"] == "b1"
    assert first["couchbase.by_bucket.cmd_get"] == 2
    assert first["couchbase.by_bucket.cas_hits"] == 0
    assert len(first) == 4 + len(BUCKET_STATS)
    assert records[1]["couchbase.by_bucket.ep_bg_fetched"] == 1
    assert len(records[1]) == 4 + len(BUCKET_EP_STATS)


@pytest.mark.asyncio
async def test_bucket_fan_out_with_failure(http_client, collector):
    """One failing bucket gives 2*(N-1) records instead of aborting."""
    http_client.get.side_effect = routed_get(routes(["b1", "b2", "b3"], failing={"b2"}))

    names, records = await collector.bucket_records()

    assert names == ["b1", "b3"]
    assert len(records) == 4
    assert {r["couchbase.by_bucket.name"] for r in records} == {"b1", "b3"}


@pytest.mark.asyncio
async def test_cluster_records(http_client, collector):
    http_client.get.side_effect = routed_get(routes([]))

    records = await collector.cluster_records()

    assert len(records) == 4
    assert records[0]["couchbase.cluster.by_node.hostname"] == "cb1:8091"
    assert records[1]["couchbase.cluster.by_node.status"] == "warmup"
    assert records[2]["event_type"] == "CouchbaseIndexSample"
    assert records[2]["couchbase.index.id"] == 42
    storage = records[3]
    assert storage["couchbase.scalr.clustername"] == "scalr-cb"
    assert storage["couchbase.cluster.hdd.used_by_data"] == 300
    assert storage["couchbase.cluster.ram.quota_total"] == 48


@pytest.mark.asyncio
async def test_cluster_failure_is_fatal(http_client, collector):
    http_client.get.side_effect = routed_get({})

    with pytest.raises(FetchError):
        await collector.collect()


@pytest.mark.asyncio
async def test_collect_with_replication(http_client, collector):
    remote = {"hostname": "dr:8091", "name": "dr", "uri": "/pools/default/remoteClusters/dr",
              "username": "admin", "uuid": "abc123", "deleted": False}
    table = routes(["b1"], remotes=[remote])
    stat_url = (
        f"{BASE}/pools/default/buckets/b1/stats/"
        "replications%2Fabc123%2Fb1%2Fb1%2Fchanges_left"
    )
    table[stat_url] = http_response(json_data={
        "samplesCount": 60, "isPersistent": True, "lastTStamp": 1500000000000,
        "interval": 1000, "timestamp": [1, 2], "nodeStats": {"cb1:8091": [0, 1]},
    })
    http_client.get.side_effect = routed_get(table)

    records = await collector.collect()

    # 2 nodes, 1 index, storage, 2 bucket records, remote cluster, 1 replication stat
    assert len(records) == 8
    assert records[6]["couchbase.replication.uuid"] == "abc123"
    replication = records[7]
    assert replication["couchbase.replication.changes_left.samplescount"] == 60
    assert replication["couchbase.replication.changes_left.nodestats"] == {"cb1:8091": [0.0, 1.0]}
    assert len(REMOTE_STAT_ENDPOINTS) == 8


@pytest.mark.asyncio
async def test_uses_basic_auth(collector):
    with patch('httpx.AsyncClient') as mock_client_class:
        mock_client = AsyncMock()
        mock_client_class.return_value.__aenter__.return_value = mock_client
        mock_client.get.return_value = http_response(json_data=[])

        await collector._decode_list("pools/default/buckets", BucketInfo)

        assert mock_client_class.call_args.kwargs["auth"] == ("admin", "pw")
