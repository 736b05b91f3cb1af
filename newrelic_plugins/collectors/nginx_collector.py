"""nginx stub_status collector."""

import re
from typing import Dict, List

from ..config.models import NginxConfig
from ..utils.errors import ParseError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper, build_url

EVENT_TYPE = "LoadBalancerSample"
PROVIDER = "nginx"

_PATTERNS = {
    "connections": re.compile(r'Active connections:\s+(?P<connections>\d+)'),
    "totals": re.compile(r'requests\s+(?P<accepts>\d+)\s+(?P<handled>\d+)\s+(?P<requests>\d+)'),
    "reading": re.compile(r'Reading:\s+(?P<reading>\d+)'),
    "writing": re.compile(r'Writing:\s+(?P<writing>\d+)'),
    "waiting": re.compile(r'Waiting:\s+(?P<waiting>\d+)'),
}


def scrape_status(text: str) -> Dict[str, int]:
    """
    Extract the seven stub_status counters.

    Args:
        text: Body of the stub_status page

    Returns:
        Dict with connections, accepts, handled, requests, reading, writing, waiting

    Raises:
        ParseError: If any counter is missing
    """
    values: Dict[str, int] = {}
    for label, pattern in _PATTERNS.items():
        match = pattern.search(text)
        if match is None:
            raise ParseError(f"nginx status page is missing '{label}'")
        values.update({k: int(v) for k, v in match.groupdict().items()})
    return values


class NginxCollector(BaseCollector):
    """Collector for the nginx stub_status page."""

    name = "nginx"
    config_class = NginxConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        url = build_url(self.config.host, self.config.port, self.config.status_uri)
        text = await HTTPHelper.get_text(url, self.logger)
        stats = scrape_status(text)

        return [{
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "nginx.net.connections": stats["connections"],
            "nginx.net.accepts": stats["accepts"],
            "nginx.net.handled": stats["handled"],
            "nginx.net.requests": stats["requests"],
            "nginx.net.reading": stats["reading"],
            "nginx.net.writing": stats["writing"],
            "nginx.net.waiting": stats["waiting"],
        }]
