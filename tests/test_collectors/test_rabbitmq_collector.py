"""Tests for RabbitMQ collector."""

import pytest

from newrelic_plugins.collectors.rabbitmq_collector import RabbitMQCollector
from newrelic_plugins.config.models import RabbitMQConfig
from newrelic_plugins.utils.errors import FetchError

from conftest import http_response, routed_get

BASE = "http://mq:15672"

NODES = [{
    "name": "rabbit@mq", "fd_used": 40, "fd_total": 1024, "sockets_used": 3,
    "sockets_total": 829, "mem_used": 73400320, "run_queue": 0, "processors": 4,
    "uptime": 123456,
}]

QUEUES = [
    {"name": "orders", "vhost": "/", "durable": True, "memory": 21848, "consumers": 2,
     "message_bytes": 512, "messages": 4, "messages_ready": 3, "messages_unacknowledged": 1},
    {"name": "scratch", "vhost": "/dev"},
]


@pytest.fixture
def collector(logger):
    config = RabbitMQConfig(user="guest", password="guest", host="mq", port="15672")
    return RabbitMQCollector(config, logger)


@pytest.mark.asyncio
async def test_rabbitmq_collector_success(http_client, collector):
    http_client.get.side_effect = routed_get({
        f"{BASE}/api/nodes": http_response(json_data=NODES),
        f"{BASE}/api/queues": http_response(json_data=QUEUES),
    })

    records = await collector.collect()

    assert len(records) == 3
    assert records[0] == {
        "event_type": "QueueSample",
        "provider": "rabbitmq",
        "rabbitmq.node.name": "rabbit@mq",
        "rabbitmq.node.fd_used": 40,
        "rabbitmq.node.fd_total": 1024,
        "rabbitmq.node.mem_used": 73400320,
        "rabbitmq.node.sockets_used": 3,
        "rabbitmq.node.sockets_total": 829,
        "rabbitmq.node.run_queue": 0,
        "rabbitmq.node.processors": 4,
    }
    assert records[1]["rabbitmq.queue.messages_bytes"] == 512
    assert records[1]["rabbitmq.queue.durable"] is True
    assert records[2]["rabbitmq.queue.vhost"] == "/dev"
    assert records[2]["rabbitmq.queue.messages"] == 0


@pytest.mark.asyncio
async def test_rabbitmq_unexpected_payload(http_client, collector):
    http_client.get.side_effect = routed_get({
        f"{BASE}/api/nodes": http_response(json_data={"error": "not_authorised"}),
    })

    with pytest.raises(FetchError, match="Expected a list"):
        await collector.collect()
