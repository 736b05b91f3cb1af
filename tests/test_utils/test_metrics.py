"""Tests for the plugin envelope and JSON output."""

import io
import json

import pytest

from newrelic_plugins.utils.errors import OutputError
from newrelic_plugins.utils.metrics import PluginData, output_json


def test_envelope_key_order():
    data = PluginData(name="nginx", plugin_version="1.0.0", metrics=[{"b": 1, "a": 2}])

    assert list(data.to_dict()) == [
        "name", "protocol_version", "plugin_version", "metrics", "inventory", "events", "status"
    ]
    assert list(data.to_dict()["metrics"][0]) == ["a", "b"]


def test_output_compact():
    stream = io.StringIO()
    data = PluginData(name="redis", plugin_version="1.0.0", metrics=[{"provider": "redis"}])

    output_json(data, stream=stream)

    assert stream.getvalue() == (
        '{"name":"redis","protocol_version":"1","plugin_version":"1.0.0",'
        '"metrics":[{"provider":"redis"}],"inventory":{},"events":[],"status":"OK"}\n'
    )


def test_output_pretty_uses_tabs():
    stream = io.StringIO()
    output_json(PluginData(name="kraken", plugin_version="1.0.0"), pretty=True, stream=stream)

    text = stream.getvalue()
    assert text.endswith("}\n")
    assert '\n\t"name": "kraken"' in text
    assert json.loads(text)["metrics"] == []


def test_output_null_prints_empty_list():
    stream = io.StringIO()
    output_json(None, stream=stream)
    assert stream.getvalue() == "[]\n"


def test_output_rejects_non_finite_numbers():
    data = PluginData(name="x", plugin_version="1", metrics=[{"v": float("nan")}])

    with pytest.raises(OutputError, match="Error outputting JSON"):
        output_json(data, stream=io.StringIO())


def test_output_rejects_unserializable_values():
    with pytest.raises(OutputError):
        output_json({"value": object()}, stream=io.StringIO())
