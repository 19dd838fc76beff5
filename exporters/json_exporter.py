"""JSON exporter for used-item maps (machine-friendly format)."""

import json
from typing import Optional

from usage.model import CrateMap


def to_json(crate_map: CrateMap, indent: Optional[int] = None) -> str:
    """
    Convert a crate map to JSON.

    Args:
        crate_map: The per-file used items to export.
        indent: JSON indentation level. None gives compact single-line output.

    Returns:
        JSON object keyed by file path. Each value maps the non-empty kind
        buckets to sorted symbol names.
    """
    data = crate_map.to_dict()
    if indent is None:
        return json.dumps(data, separators=(",", ":"))
    return json.dumps(data, indent=indent)
