"""Plugin envelope structure and JSON emission."""

import json
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

from .errors import OutputError

PROTOCOL_VERSION = "1"

MetricRecord = Dict[str, Any]


@dataclass
class PluginData:
    """Standard output document emitted by every collector."""

    name: str
    plugin_version: str
    metrics: List[MetricRecord] = field(default_factory=list)
    status: str = "OK"
    protocol_version: str = PROTOCOL_VERSION
    inventory: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form with keys in envelope order and sorted metric keys."""
        return {
            "name": self.name,
            "protocol_version": self.protocol_version,
            "plugin_version": self.plugin_version,
            "metrics": [dict(sorted(record.items())) for record in self.metrics],
            "inventory": self.inventory,
            "events": self.events,
            "status": self.status,
        }


def output_json(data: Optional[Any], pretty: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    Print data as a single JSON document followed by a newline.

    Args:
        data: PluginData envelope or any JSON-serializable value
        pretty: Indent with tabs for easy reading
        stream: Destination, stdout by default

    Raises:
        OutputError: If the data cannot be serialized
    """
    stream = stream or sys.stdout
    if isinstance(data, PluginData):
        data = data.to_dict()

    try:
        if pretty:
            output = json.dumps(data, indent="\t", allow_nan=False)
        else:
            output = json.dumps(data, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise OutputError(f"Error outputting JSON: {e}") from e

    if output == "null":
        output = "[]"
    stream.write(output + "\n")
    stream.flush()
