"""Fastly real-time analytics collector."""

from typing import Dict, List

from pydantic import BaseModel, Field, ValidationError

from ..config.models import FastlyConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper

EVENT_TYPE = "LoadBalancerSample"
PROVIDER = "fastly"
STATS_ENDPOINT = "https://rt.fastly.com/v1/"


class FastlyStats(BaseModel):
    requests: int = 0
    header_size: int = 0
    body_size: int = 0
    req_header_bytes: int = 0
    resp_header_bytes: int = 0
    resp_body_bytes: int = 0
    bereq_header_bytes: int = 0
    tls: int = 0
    shield: int = 0
    http2: int = 0
    status_2xx: int = 0
    status_3xx: int = 0
    status_4xx: int = 0
    status_5xx: int = 0
    status_200: int = 0
    status_301: int = 0
    status_302: int = 0
    status_304: int = 0
    hits: int = 0
    miss: int = 0
    pass_: int = Field(default=0, alias="pass")
    synth: int = 0
    errors: int = 0
    hits_time: float = 0.0
    miss_time: float = 0.0


class FastlyDataItem(BaseModel):
    datacenter: Dict[str, FastlyStats] = Field(default_factory=dict)
    aggregated: FastlyStats = Field(default_factory=FastlyStats)


class FastlyResponse(BaseModel):
    Data: List[FastlyDataItem] = Field(default_factory=list)


class FastlyCollector(BaseCollector):
    """Collector for Fastly per-datacenter edge statistics."""

    name = "fastly"
    config_class = FastlyConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        url = f"{STATS_ENDPOINT}channel/{self.config.service_id}/ts/0"
        payload = await HTTPHelper.get_json(
            url, self.logger, headers={"Fastly-Key": self.config.api_key}
        )
        try:
            response = FastlyResponse.model_validate(payload)
        except ValidationError as e:
            raise FetchError(f"Unexpected fastly response: {e}") from e

        records = []
        for item in response.Data:
            for datacenter in sorted(item.datacenter):
                records.append(self.format_stats(item.datacenter[datacenter], datacenter))
            records.append(self.format_stats(item.aggregated, "aggregated"))
        return records

    def format_stats(self, stats: FastlyStats, datacenter: str) -> MetricRecord:
        return {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "fastly.serviceId": self.config.service_id,
            "fastly.datacenter": datacenter,
            "fastly.requests": stats.requests,
            "fastly.headerSize": stats.header_size,
            "fastly.bodySize": stats.body_size,
            "fastly.reqHeaderBytes": stats.req_header_bytes,
            "fastly.respHeaderBytes": stats.resp_header_bytes,
            "fastly.respBodyBytes": stats.resp_body_bytes,
            "fastly.bereqHeaderBytes": stats.bereq_header_bytes,
            "fastly.tls": stats.tls,
            "fastly.shield": stats.shield,
            "fastly.http2": stats.http2,
            "fastly.status.2xx": stats.status_2xx,
            "fastly.status.3xx": stats.status_3xx,
            "fastly.status.4xx": stats.status_4xx,
            "fastly.status.5xx": stats.status_5xx,
            "fastly.status.200": stats.status_200,
            "fastly.status.301": stats.status_301,
            "fastly.status.302": stats.status_302,
            "fastly.status.304": stats.status_304,
            "fastly.hits": stats.hits,
            "fastly.miss": stats.miss,
            "fastly.pass": stats.pass_,
            "fastly.synth": stats.synth,
            "fastly.errors": stats.errors,
            "fastly.hitTime": stats.hits_time,
            "fastly.missTime": stats.miss_time,
        }
