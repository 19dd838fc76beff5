"""YAML exporter for used-item maps."""

import yaml

from usage.model import CrateMap


def to_yaml(crate_map: CrateMap) -> str:
    """
    Convert a crate map to a YAML document.

    Paths stay in lexicographic order and kind buckets in kind order.
    """
    return yaml.safe_dump(
        crate_map.to_dict(),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
