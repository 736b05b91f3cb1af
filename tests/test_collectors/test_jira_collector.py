"""Tests for Jira collector."""

import httpx
import pytest

from newrelic_plugins.collectors.jira_collector import JiraCollector
from newrelic_plugins.config.models import JiraConfig
from newrelic_plugins.utils.errors import FetchError

from conftest import http_response, routed_get

BASE = "https://jira.example.com"

SEARCH = {
    "issues": [
        {
            "key": "PAAS-1",
            "fields": {
                "components": [{"name": "api"}, {"name": "db"}],
                "assignee": {"key": "jdoe", "name": "jdoe"},
                "customfield_10105": 5,
                "customfield_11500": "PAAS-100",
            },
        },
        {
            "key": "PAAS-2",
            "fields": {"components": [], "assignee": None},
        },
    ]
}

WORKLOG = {"worklogs": [{"timeSpentSeconds": 3600}, {"timeSpentSeconds": 7200}, {"timeSpentSeconds": 14400}]}


@pytest.fixture
def collector(logger):
    return JiraCollector(JiraConfig(url=BASE, auth_token="dG9rZW4="), logger)


@pytest.mark.asyncio
async def test_jira_collector_success(http_client, collector):
    http_client.get.side_effect = routed_get({
        f"{BASE}/rest/api/2/search": http_response(json_data=SEARCH),
        f"{BASE}/rest/api/2/issue/PAAS-1/worklog": http_response(json_data=WORKLOG),
        f"{BASE}/rest/api/2/issue/PAAS-2/worklog": http_response(json_data={"worklogs": []}),
    })

    records = await collector.collect()

    assert records[0] == {
        "event_type": "JiraIssueSample",
        "provider": "jira",
        "jira.issue.key": "PAAS-1",
        "jira.issue.components": "api, db",
        "jira.issue.assignee": "jdoe",
        "jira.issue.storyPoints": 5,
        "jira.issue.epic": "PAAS-100",
        "jira.issue.timeSpentSeconds": 25200,
    }
    assert records[1]["jira.issue.assignee"] == ""
    assert records[1]["jira.issue.storyPoints"] == 0
    assert records[1]["jira.issue.timeSpentSeconds"] == 0

    search_call = http_client.get.call_args_list[0]
    assert search_call.kwargs["headers"] == {"Authorization": "Basic dG9rZW4="}
    assert 'PROJECT = "PAAS"' in search_call.kwargs["params"]["jql"]
    assert search_call.kwargs["params"]["maxResults"] == 200


@pytest.mark.asyncio
async def test_worklog_failure_counts_zero(http_client, collector):
    http_client.get.side_effect = routed_get({
        f"{BASE}/rest/api/2/search": http_response(json_data={"issues": SEARCH["issues"][:1]}),
        f"{BASE}/rest/api/2/issue/PAAS-1/worklog": httpx.ConnectError("reset"),
    })

    records = await collector.collect()

    assert records[0]["jira.issue.timeSpentSeconds"] == 0


@pytest.mark.asyncio
async def test_search_failure_is_fatal(http_client, collector):
    http_client.get.side_effect = routed_get({})

    with pytest.raises(FetchError, match="unable to grab jira data"):
        await collector.collect()
