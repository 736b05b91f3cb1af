"""RabbitMQ management API collector."""

from typing import Any, List

from pydantic import BaseModel, Field, ValidationError

from ..config.models import RabbitMQConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper, build_url

EVENT_TYPE = "QueueSample"
PROVIDER = "rabbitmq"


class NodeInfo(BaseModel):
    name: str = ""
    fd_used: int = 0
    fd_total: int = 0
    sockets_used: int = 0
    sockets_total: int = 0
    mem_used: int = 0
    run_queue: int = 0
    processors: int = 0


class QueueInfo(BaseModel):
    name: str = ""
    vhost: str = ""
    durable: bool = False
    memory: int = 0
    consumers: int = 0
    message_bytes: int = 0
    messages: int = 0
    messages_ready: int = 0
    messages_unacknowledged: int = 0


class RabbitMQCollector(BaseCollector):
    """Collector for RabbitMQ node and queue statistics."""

    name = "rabbitmq"
    config_class = RabbitMQConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        nodes = await self._fetch_list("api/nodes", NodeInfo)
        queues = await self._fetch_list("api/queues", QueueInfo)
        self.logger.info(f"Found {len(nodes)} node(s) and {len(queues)} queue(s)")
        return [self.format_node(n) for n in nodes] + [self.format_queue(q) for q in queues]

    async def _fetch_list(self, path: str, model: type) -> List[Any]:
        url = build_url(self.config.host, self.config.port, path)
        payload = await HTTPHelper.get_json(
            url, self.logger, auth=(self.config.user, self.config.password)
        )
        if not isinstance(payload, list):
            raise FetchError(f"Expected a list from {url}")
        try:
            return [model.model_validate(item) for item in payload]
        except ValidationError as e:
            raise FetchError(f"Unexpected rabbitmq response from {url}: {e}") from e

    @staticmethod
    def format_node(node: NodeInfo) -> MetricRecord:
        return {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "rabbitmq.node.name": node.name,
            "rabbitmq.node.fd_used": node.fd_used,
            "rabbitmq.node.fd_total": node.fd_total,
            "rabbitmq.node.mem_used": node.mem_used,
            "rabbitmq.node.sockets_used": node.sockets_used,
            "rabbitmq.node.sockets_total": node.sockets_total,
            "rabbitmq.node.run_queue": node.run_queue,
            "rabbitmq.node.processors": node.processors,
        }

    @staticmethod
    def format_queue(queue: QueueInfo) -> MetricRecord:
        return {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "rabbitmq.queue.name": queue.name,
            "rabbitmq.queue.vhost": queue.vhost,
            "rabbitmq.queue.durable": queue.durable,
            "rabbitmq.queue.memory": queue.memory,
            "rabbitmq.queue.consumers": queue.consumers,
            "rabbitmq.queue.messages_bytes": queue.message_bytes,
            "rabbitmq.queue.messages": queue.messages,
            "rabbitmq.queue.messages_ready": queue.messages_ready,
            "rabbitmq.queue.messages_unacknowledged": queue.messages_unacknowledged,
        }
