"""Kraken load-test status page collector."""

import re
from typing import Dict, List

from ..config.models import KrakenConfig
from ..utils.errors import ParseError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper, build_url

EVENT_TYPE = "GKrakenSample"
PROVIDER = "kraken"

_NUMBER = r'\d+(?:\.\d+)?'

_PATTERNS = {
    "version": re.compile(r'Version:\s+(?P<version>\d+(?:\.\d+){0,2})'),
    "customer": re.compile(r'Customer:\s+(?P<customer>\w+)'),
    "project": re.compile(r'Project:\s+(?P<project>\w+)'),
    "state": re.compile(r'State:\s+(?P<state>\w+)'),
    "duration": re.compile(r'Test duration:\s+(?P<duration>\S+)'),
    "samples": re.compile(
        rf'Samples count:\s+(?P<sample_count>\d+),\s+(?P<sample_failure>{_NUMBER}).\s+failures'
    ),
    "averages": re.compile(
        rf'Average times:\s+total\s+(?P<avg_resp_time>{_NUMBER}),\s+'
        rf'latency\s+(?P<avg_latency>{_NUMBER}),\s+connect\s+(?P<avg_conn_time>{_NUMBER})'
    ),
}

PERCENTILES = ["50", "90", "95", "99", "100"]
_PERCENTILE_PATTERNS = {
    p: re.compile(rf'(?<![\d.]){p}\.0%:?\s+(?P<value>{_NUMBER})') for p in PERCENTILES
}

STRING_FIELDS = ["version", "customer", "project", "state", "duration"]


def scrape_status(text: str) -> Dict[str, str]:
    """
    Extract the named fields of a Kraken status report.

    Args:
        text: Body of the Kraken status page

    Returns:
        Dict of raw field values, percentiles keyed as "percentiles.<p>"

    Raises:
        ParseError: If any field is missing
    """
    values: Dict[str, str] = {}
    for label, pattern in _PATTERNS.items():
        match = pattern.search(text)
        if match is None:
            raise ParseError(f"kraken status page is missing '{label}'")
        values.update(match.groupdict())

    for percentile, pattern in _PERCENTILE_PATTERNS.items():
        match = pattern.search(text)
        if match is None:
            raise ParseError(f"kraken status page is missing percentile {percentile}")
        values[f"percentiles.{percentile}"] = match.group("value")
    return values


class KrakenCollector(BaseCollector):
    """Collector for the Kraken load-test status report."""

    name = "kraken"
    config_class = KrakenConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        url = build_url(self.config.host, self.config.port, "")
        text = await HTTPHelper.get_text(url, self.logger)
        values = scrape_status(text)
        self.logger.debug(f"Scraped Kraken values: {values}")

        record: MetricRecord = {"event_type": EVENT_TYPE, "provider": PROVIDER}
        for field in STRING_FIELDS:
            record[f"kraken.{field}"] = values[field]
        record["kraken.sample_count"] = int(values["sample_count"])
        record["kraken.sample_failure"] = float(values["sample_failure"])
        for field in ("avg_resp_time", "avg_latency", "avg_conn_time"):
            record[f"kraken.kpi.{field}"] = float(values[field])
        for percentile in PERCENTILES:
            record[f"kraken.kpi.percentiles.{percentile}"] = float(values[f"percentiles.{percentile}"])
        return [record]
