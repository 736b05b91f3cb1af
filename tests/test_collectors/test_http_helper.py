"""Tests for the shared HTTP helper."""

import httpx
import pytest

from newrelic_plugins.collectors.http_helper import HTTPHelper, basic_auth, build_url
from newrelic_plugins.utils.errors import FetchError

from conftest import http_response


def test_build_url():
    assert build_url("localhost", "80", "nginx_status") == "http://localhost:80/nginx_status"
    assert build_url("https://cb.example.com", "18091", "/pools") == "https://cb.example.com:18091/pools"
    assert build_url("localhost", "8000") == "http://localhost:8000/"


def test_basic_auth():
    assert basic_auth("bot", "key") == ("bot", "key")
    assert basic_auth("", "") is None


@pytest.mark.asyncio
async def test_get_text(http_client, logger):
    http_client.get.return_value = http_response(text="ok")

    assert await HTTPHelper.get_text("http://host:1/", logger) == "ok"
    http_client.get.assert_called_once()


@pytest.mark.asyncio
async def test_get_json_invalid_body(http_client, logger):
    http_client.get.return_value = http_response(text="<html>")

    with pytest.raises(FetchError, match="Invalid JSON"):
        await HTTPHelper.get_json("http://host:1/", logger)


@pytest.mark.asyncio
async def test_non_200_raises(http_client, logger):
    http_client.get.return_value = http_response(status_code=503)

    with pytest.raises(FetchError, match="503"):
        await HTTPHelper.get("http://host:1/", logger)


@pytest.mark.asyncio
async def test_timeout_raises(http_client, logger):
    http_client.get.side_effect = httpx.TimeoutException("Request timed out")

    with pytest.raises(FetchError, match="timeout"):
        await HTTPHelper.get("http://host:1/", logger)


@pytest.mark.asyncio
async def test_connection_error_raises(http_client, logger):
    http_client.get.side_effect = httpx.ConnectError("Connection refused")

    with pytest.raises(FetchError, match="Connection refused"):
        await HTTPHelper.get("http://host:1/", logger)
