"""Tests for exporters."""

import json

import pytest
import yaml

from exporters.ascii_exporter import to_ascii
from exporters.json_exporter import to_json
from exporters.yaml_exporter import to_yaml
from usage.model import CrateMap, UsedItem, UsedItemKind, UsedItemMap


def used(*items):
    used_items = UsedItemMap()
    for name, kind in items:
        used_items.insert(UsedItem(name, kind))
    return used_items


@pytest.fixture
def crate_map():
    crate_map = CrateMap()
    crate_map.insert("src/main.rs", used(("helper", UsedItemKind.FN)))
    crate_map.insert("src/lib.rs", used(
        ("HashMap", UsedItemKind.STRUCT),
        ("BTreeMap", UsedItemKind.STRUCT),
        ("Write", UsedItemKind.TRAIT),
    ))
    crate_map.insert("src/empty.rs", UsedItemMap())
    return crate_map


class TestJSONExporter:
    """Tests for JSON exporter."""

    def test_empty_map(self):
        """Test exporting a project with no files."""
        assert to_json(CrateMap()) == "{}"

    def test_compact_output(self, crate_map):
        """Test the default single-line form."""
        output = to_json(crate_map)

        assert output == (
            '{"src/empty.rs":{},'
            '"src/lib.rs":{"traits":["Write"],"structs":["BTreeMap","HashMap"]},'
            '"src/main.rs":{"fns":["helper"]}}'
        )

    def test_indented_output(self, crate_map):
        """Test pretty-printing keeps the same data."""
        output = to_json(crate_map, indent=2)

        assert "\n" in output
        assert json.loads(output) == json.loads(to_json(crate_map))

    def test_key_order(self, crate_map):
        """Test that files and buckets keep their order through a parse."""
        data = json.loads(to_json(crate_map))

        assert list(data) == ["src/empty.rs", "src/lib.rs", "src/main.rs"]
        assert list(data["src/lib.rs"]) == ["traits", "structs"]


class TestYAMLExporter:
    """Tests for YAML exporter."""

    def test_round_trips_data(self, crate_map):
        """Test that the YAML document carries the same mapping."""
        assert yaml.safe_load(to_yaml(crate_map)) == crate_map.to_dict()

    def test_block_style_and_order(self, crate_map):
        """Test block style with paths in order."""
        output = to_yaml(crate_map)

        assert output.index("src/empty.rs") < output.index("src/lib.rs") < output.index("src/main.rs")
        assert "  traits:\n  - Write\n" in output


class TestASCIIExporter:
    """Tests for ASCII exporter."""

    def test_empty_map(self):
        """Test exporting a project with no files."""
        assert to_ascii(CrateMap()) == ""

    def test_unicode_style(self, crate_map):
        """Test tree rendering with Unicode box characters."""
        output = to_ascii(crate_map)

        assert output.split("\n") == [
            "src/empty.rs",
            "",
            "src/lib.rs",
            "├── traits",
            "│   └── Write",
            "└── structs",
            "    ├── BTreeMap",
            "    └── HashMap",
            "",
            "src/main.rs",
            "└── fns",
            "    └── helper",
        ]

    def test_ascii_style(self, crate_map):
        """Test pure ASCII output style."""
        output = to_ascii(crate_map, style="ascii")

        assert "├" not in output
        assert "└" not in output
        assert "│" not in output
        assert "|-- traits" in output
        assert "\\-- structs" in output

    def test_hide_empty_files(self, crate_map):
        """Test that files importing nothing can be left out."""
        output = to_ascii(crate_map, show_empty=False)

        assert "src/empty.rs" not in output
        assert output.startswith("src/lib.rs")
