"""Jira open-sprint issue collector."""

import asyncio
from typing import Any, Dict, List

from ..config.models import JiraConfig
from ..utils.errors import FetchError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect
from .http_helper import HTTPHelper

EVENT_TYPE = "JiraIssueSample"
PROVIDER = "jira"

STORY_POINTS_FIELD = "customfield_10105"
EPIC_FIELD = "customfield_11500"
SEARCH_FIELDS = f"components, assignee, {STORY_POINTS_FIELD}, {EPIC_FIELD}"
MAX_RESULTS = 200


class JiraCollector(BaseCollector):
    """Collector for issues in the project's open sprints."""

    name = "jira"
    config_class = JiraConfig

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Basic {self.config.auth_token}"}

    def _url(self, path: str) -> str:
        return f"{self.config.url.rstrip('/')}{path}"

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        issues = await self.open_issues()
        self.logger.info(f"Found {len(issues)} open sprint issue(s)")
        logged = await asyncio.gather(*(self.time_logged(issue.get("key", "")) for issue in issues))
        return [self.format_issue(issue, seconds) for issue, seconds in zip(issues, logged)]

    async def open_issues(self) -> List[Dict[str, Any]]:
        """
        Search issues in open sprints of the configured project.

        Raises:
            FetchError: If the search request fails
        """
        params = {
            "jql": f'sprint in openSprints() and PROJECT = "{self.config.project}"',
            "fields": SEARCH_FIELDS,
            "maxResults": MAX_RESULTS,
        }
        try:
            result = await HTTPHelper.get_json(
                self._url("/rest/api/2/search"), self.logger, headers=self._headers, params=params
            )
        except FetchError as e:
            raise FetchError(f"unable to grab jira data: {e}") from e
        return result.get("issues") or []

    async def time_logged(self, key: str) -> int:
        """
        Total seconds logged against an issue; 0 when the worklog is unavailable.

        Args:
            key: Issue key, e.g. "PAAS-123"
        """
        try:
            worklog = await HTTPHelper.get_json(
                self._url(f"/rest/api/2/issue/{key}/worklog"), self.logger, headers=self._headers
            )
        except FetchError as e:
            self.logger.warning(f"unable to grab worklog for {key}: {e}")
            return 0
        return sum(w.get("timeSpentSeconds", 0) for w in worklog.get("worklogs") or [])

    @staticmethod
    def format_issue(issue: Dict[str, Any], seconds: int) -> MetricRecord:
        fields = issue.get("fields") or {}
        components = ", ".join(c.get("name", "") for c in fields.get("components") or [])
        assignee = fields.get("assignee") or {}
        epic = fields.get(EPIC_FIELD)
        return {
            "event_type": EVENT_TYPE,
            "provider": PROVIDER,
            "jira.issue.key": issue.get("key", ""),
            "jira.issue.components": components,
            "jira.issue.assignee": assignee.get("key") or assignee.get("name") or "",
            "jira.issue.storyPoints": fields.get(STORY_POINTS_FIELD) or 0,
            "jira.issue.epic": epic if isinstance(epic, str) else "",
            "jira.issue.timeSpentSeconds": seconds,
        }
