"""Jenkins job and node collector using the JSON remote access API."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..config.models import JenkinsConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper, basic_auth

JOB_EVENT_TYPE = "DatastoreSample"
NODE_EVENT_TYPE = "LoadBalancerSample"
JOB_PROVIDER = "jenkins.job"
NODE_PROVIDER = "jenkins.node"


def api_url(base: str) -> str:
    if "://" not in base:
        base = f"http://{base}"
    return f"{base.rstrip('/')}/api/json"


def full_job_name(job_url: str) -> str:
    """Folder-qualified job name, e.g. ".../job/team/job/app/" -> "team/app"."""
    path = urlparse(job_url).path
    return path.replace("/job/", "/").strip("/")


def job_health(job: Dict[str, Any]) -> int:
    """Mean of the job's health report scores, 0 without reports."""
    reports = job.get("healthReport") or []
    if not reports:
        return 0
    return int(sum(r.get("score", 0) for r in reports) / len(reports))


def build_revision(build: Dict[str, Any]) -> str:
    for action in build.get("actions") or []:
        if action and "lastBuiltRevision" in action:
            return (action["lastBuiltRevision"] or {}).get("SHA1", "")
    return ""


class JenkinsCollector(BaseCollector):
    """Collector for Jenkins job results and executor nodes."""

    name = "jenkins"
    config_class = JenkinsConfig
    status = "ok"

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        jobs = await self.all_jobs()
        self.logger.info(f"Found {len(jobs)} job(s)")

        records = await asyncio.gather(*(self.job_record(job) for job in jobs))
        records = list(records)
        records.extend(await self.node_records())
        return records

    async def _get(self, url: str) -> Any:
        return await HTTPHelper.get_json(
            url,
            self.logger,
            auth=basic_auth(self.config.api_user, self.config.api_key)
        )

    async def all_jobs(self) -> List[Dict[str, Any]]:
        """
        Every job on the master, walking into folders recursively.

        Raises:
            FetchError: If the top-level job list cannot be retrieved
        """
        root = await self._get(api_url(self.config.host))
        return await self._expand(root.get("jobs") or [])

    async def _expand(self, summaries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        details = await asyncio.gather(
            *(self._get(api_url(s.get("url", ""))) for s in summaries),
            return_exceptions=True
        )

        jobs: List[Dict[str, Any]] = []
        for summary, detail in zip(summaries, details):
            if isinstance(detail, Exception):
                self.logger.warning(f"Error fetching job {summary.get('name')}: {detail}")
                continue
            detail.setdefault("url", summary.get("url", ""))
            jobs.append(detail)
            children = detail.get("jobs") or []
            if children:
                jobs.extend(await self._expand(children))
        return jobs

    async def job_record(self, job: Dict[str, Any]) -> MetricRecord:
        record: MetricRecord = {
            "entity_name": full_job_name(job.get("url", "")),
            "event_type": JOB_EVENT_TYPE,
            "provider": JOB_PROVIDER,
            "jenkins.job.health": job_health(job),
            "jenkins.job.buildNumber": 0,
            "jenkins.job.buildRevision": "",
            "jenkins.job.buildDate": "",
            "jenkins.job.buildResult": "",
            "jenkins.job.buildDurationSecond": 0,
            "jenkins.job.buildArtifacts": 0,
            "jenkins.job.testsDurationSecond": 0,
            "jenkins.job.testsSuites": 0,
            "jenkins.job.tests": 0,
            "jenkins.job.testsPassed": 0,
            "jenkins.job.testsFailed": 0,
            "jenkins.job.testsSkipped": 0,
        }

        last_build = job.get("lastBuild")
        if not last_build or not last_build.get("url"):
            return record

        try:
            build = await self._get(api_url(last_build["url"]))
        except FetchError as e:
            self.logger.warning(f"Error fetching last build of {record['entity_name']}: {e}")
            return record

        record.update(self.format_build(build))

        tests = await self._test_report(last_build["url"])
        if tests is not None:
            record.update(self.format_tests(tests))
        return record

    async def _test_report(self, build_url: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._get(api_url(f"{build_url.rstrip('/')}/testReport"))
        except FetchError:
            # Builds without published test results answer 404
            return None

    @staticmethod
    def format_build(build: Dict[str, Any]) -> Dict[str, Any]:
        timestamp = build.get("timestamp") or 0
        build_date = datetime.fromtimestamp(timestamp / 1000.0, tz=timezone.utc).isoformat()
        return {
            "jenkins.job.buildNumber": build.get("number") or 0,
            "jenkins.job.buildRevision": build_revision(build),
            "jenkins.job.buildDate": build_date,
            "jenkins.job.buildResult": (build.get("result") or "").lower(),
            "jenkins.job.buildDurationSecond": int((build.get("duration") or 0) / 1000),
            "jenkins.job.buildArtifacts": len(build.get("artifacts") or []),
        }

    @staticmethod
    def format_tests(tests: Dict[str, Any]) -> Dict[str, Any]:
        suites = tests.get("suites") or []
        return {
            "jenkins.job.testsDurationSecond": int(tests.get("duration") or 0),
            "jenkins.job.testsSuites": len(suites),
            "jenkins.job.tests": sum(len(s.get("cases") or []) for s in suites),
            "jenkins.job.testsPassed": tests.get("passCount") or 0,
            "jenkins.job.testsFailed": tests.get("failCount") or 0,
            "jenkins.job.testsSkipped": tests.get("skipCount") or 0,
        }

    async def node_records(self) -> List[MetricRecord]:
        """
        One record per executor node.

        Raises:
            FetchError: If the node list cannot be retrieved
        """
        base = self.config.host if "://" in self.config.host else f"http://{self.config.host}"
        computers = await self._get(api_url(f"{base.rstrip('/')}/computer"))
        return [
            {
                "entity_name": node.get("displayName", ""),
                "event_type": NODE_EVENT_TYPE,
                "provider": NODE_PROVIDER,
                "jenkins.node.online": not node.get("offline", False),
                "jenkins.node.idle": bool(node.get("idle", False)),
                "jenkins.node.executors": len(node.get("executors") or []),
            }
            for node in computers.get("computer") or []
        ]
