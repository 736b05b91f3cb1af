"""HAProxy CSV stats collector."""

import csv
from typing import Dict, List, Optional, Tuple

from ..config.models import HAProxyConfig
from ..utils.metrics import MetricRecord
from ..utils.values import to_int
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper, build_url

EVENT_TYPE = "LoadBalancerSample"
PROVIDER = "haproxy"

DEFAULT_HEADER = (
    "pxname,svname,qcur,qmax,scur,smax,slim,stot,bin,bout,dreq,dresp,ereq,econ,eresp,"
    "wretr,wredis,status,weight,act,bck,chkfail,chkdown,lastchg,downtime,qlimit,pid,iid,"
    "sid,throttle,lbtot,tracked,type,rate,rate_lim,rate_max,check_status,check_code,"
    "check_duration,hrsp_1xx,hrsp_2xx,hrsp_3xx,hrsp_4xx,hrsp_5xx,hrsp_other,hanafail,"
    "req_rate,req_rate_max,req_tot,cli_abrt,srv_abrt,comp_in,comp_out,comp_byp,comp_rsp,"
    "lastsess,last_chk,last_agt,qtime,ctime,rtime,ttime"
).split(",")

_SESSION_FIELDS: List[Tuple[str, str]] = [
    ("session.current", "scur"),
    ("session.max", "smax"),
    ("session.limit", "slim"),
    ("session.total", "stot"),
    ("bytes.in_rate", "bin"),
    ("bytes.out_rate", "bout"),
    ("denied.req_rate", "dreq"),
    ("denied.resp_rate", "dresp"),
]

_RESPONSE_FIELDS: List[Tuple[str, str]] = [
    ("session.rate", "rate"),
    ("response.1xx", "hrsp_1xx"),
    ("response.2xx", "hrsp_2xx"),
    ("response.3xx", "hrsp_3xx"),
    ("response.4xx", "hrsp_4xx"),
    ("response.5xx", "hrsp_5xx"),
    ("response.other", "hrsp_other"),
]

FRONTEND_FIELDS: List[Tuple[str, str]] = (
    _SESSION_FIELDS
    + [("errors.req_rate", "ereq")]
    + _RESPONSE_FIELDS
    + [("requests.rate", "req_rate")]
)

BACKEND_FIELDS: List[Tuple[str, str]] = (
    [("queue.current", "qcur"), ("queue.max", "qmax")]
    + _SESSION_FIELDS
    + [
        ("errors.con_rate", "econ"),
        ("errors.resp_rate", "eresp"),
        ("warnings.retr_rate", "wretr"),
        ("warnings.redis_rate", "wredis"),
    ]
    + _RESPONSE_FIELDS
    + [
        ("queue.time", "qtime"),
        ("connect.time", "ctime"),
        ("response.time", "rtime"),
        ("session.time", "ttime"),
    ]
)


class HAProxyCollector(BaseCollector):
    """Collector for the HAProxy ;csv stats export."""

    name = "haproxy"
    config_class = HAProxyConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        url = build_url(self.config.host, self.config.port, f"{self.config.status_uri};csv")
        text = await HTTPHelper.get_text(url, self.logger)
        return self.scrape_csv(text)

    def scrape_csv(self, text: str) -> List[MetricRecord]:
        """
        Turn the stats CSV into one record per FRONTEND and BACKEND row.

        The "# pxname,svname,..." header names the columns; if it is absent the
        documented default layout is assumed. Rows shorter than the header
        are skipped with a warning. The built-in "stats" backend is ignored.

        Args:
            text: Body of the ;csv stats page

        Returns:
            List[MetricRecord]: One record per proxy row
        """
        header = DEFAULT_HEADER
        records = []

        for row in csv.reader(text.splitlines()):
            if not row:
                continue
            if row[0].startswith("#"):
                header = [column.strip() for column in row]
                header[0] = header[0].lstrip("#").strip()
                continue

            fields = self._row_to_dict(header, row)
            if fields is None:
                continue

            svname = fields.get("svname")
            if svname == "FRONTEND":
                records.append(self._format(fields, "frontend", FRONTEND_FIELDS))
            elif svname == "BACKEND" and fields.get("pxname") != "stats":
                records.append(self._format(fields, "backend", BACKEND_FIELDS))

        self.logger.debug(f"Parsed {len(records)} proxy rows")
        return records

    def _row_to_dict(self, header: List[str], row: List[str]) -> Optional[Dict[str, str]]:
        # HAProxy ends every line with a comma, so the header has a trailing empty column
        width = len([column for column in header if column])
        if len(row) < width:
            self.logger.warning(
                f"Skipping short HAProxy row with {len(row)} of {width} columns: {row[:2]}"
            )
            return None
        return dict(zip(header, row))

    def _format(
        self,
        fields: Dict[str, str],
        side: str,
        mapping: List[Tuple[str, str]]
    ) -> MetricRecord:
        record: MetricRecord = {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "haproxy.proxy": fields.get("pxname", ""),
        }
        for metric, column in mapping:
            record[f"haproxy.{side}.{metric}"] = to_int(fields.get(column), self.logger)
        return record
