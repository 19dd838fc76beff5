"""Tests for the project-wide walk that builds the crate map."""

import json

import pytest

from analysis.errors import ParseError, ProjectLoadError
from analysis.syntax import SourceFile, SyntaxKind
from exporters import to_json
from usage.builder import build_crate_map, list_used_items_in_cargo

from conftest import FakeAnalysis, FakeDatabase, FakeHost, dependency, member, write_files


def fake_host(builder, roots, paths, files, definitions):
    analysis = FakeAnalysis(builder, files, definitions)
    return FakeHost(analysis, FakeDatabase(roots, paths)), analysis


class TestBuildCrateMap:
    """Tests for build_crate_map against an in-memory host."""

    def test_only_member_roots_are_reported(self, builder):
        """Test that dependency roots are skipped entirely."""
        member_use = builder.use(builder.leaf("dep::Thing"))
        dep_use = builder.use(builder.leaf("other::Hidden"))
        host, analysis = fake_host(
            builder,
            roots={0: [0], 1: [1]},
            paths={0: "src/lib.rs", 1: "../dep/src/lib.rs"},
            files={0: SourceFile(items=(member_use,)), 1: SourceFile(items=(dep_use,))},
            definitions={
                "dep::Thing": [("Thing", SyntaxKind.STRUCT_DEF)],
                "other::Hidden": [("Hidden", SyntaxKind.STRUCT_DEF)],
            },
        )

        crate_map = build_crate_map(host, {0: member(), 1: dependency()})

        assert crate_map.to_dict() == {"src/lib.rs": {"structs": ["Thing"]}}
        assert analysis.queries == ["dep::Thing"]

    def test_every_member_file_is_a_key(self, builder):
        """Test that files importing nothing, or unparsable, still get an entry."""
        host, _ = fake_host(
            builder,
            roots={0: [0, 1]},
            paths={0: "src/empty.rs", 1: "src/bad.rs"},
            files={0: SourceFile(items=()), 1: ParseError("bad bytes")},
            definitions={},
        )

        crate_map = build_crate_map(host, {0: member()})

        assert crate_map.to_dict() == {"src/bad.rs": {}, "src/empty.rs": {}}

    def test_keys_sorted_across_roots(self, builder):
        """Test that output order does not depend on walk order."""
        host, _ = fake_host(
            builder,
            roots={0: [0], 1: [1]},
            paths={0: "b/src/lib.rs", 1: "a/src/lib.rs"},
            files={0: SourceFile(items=()), 1: SourceFile(items=())},
            definitions={},
        )

        crate_map = build_crate_map(host, {0: member("/ws/b"), 1: member("/ws/a")})

        assert crate_map.paths == ["a/src/lib.rs", "b/src/lib.rs"]

    def test_no_members(self, builder):
        """Test that a project with only dependency roots gives an empty map."""
        host, _ = fake_host(builder, roots={0: [0]}, paths={0: "x.rs"}, files={}, definitions={})

        assert len(build_crate_map(host, {0: dependency()})) == 0

    def test_idempotent(self, builder):
        """Test that two runs over the same host give equal results."""
        use = builder.use(builder.group("m", builder.leaf("f"), builder.leaf("T")))
        host, _ = fake_host(
            builder,
            roots={0: [0]},
            paths={0: "src/main.rs"},
            files={0: SourceFile(items=(use,))},
            definitions={"f": [("f", SyntaxKind.FN_DEF)], "T": [("T", SyntaxKind.TRAIT_DEF)]},
        )

        first = build_crate_map(host, {0: member()})
        second = build_crate_map(host, {0: member()})

        assert first.to_dict() == second.to_dict()


class TestListUsedItemsInCargo:
    """End-to-end tests over Cargo projects on disk."""

    def test_demo_project(self, demo_project):
        """Test the full used-item map of a small library crate."""
        crate_map = list_used_items_in_cargo(demo_project, load_sysroot=False)

        assert crate_map.to_dict() == {
            "src/broken.rs": {},
            "src/lib.rs": {
                "traits": ["Shape"],
                "structs": ["Circle", "Greeter"],
                "fns": ["area"],
                "consts": ["MAX_SIZE"],
            },
            "src/orphan.rs": {
                "structs": ["Circle"],
                "fns": ["wave"],
                "macros": ["shout"],
            },
            "src/shapes.rs": {},
            "src/util/mod.rs": {
                "enums": ["Kind"],
                "fns": ["run"],
                "others": ["Round"],
            },
        }

    def test_dependency_files_not_listed(self, demo_project):
        """Test that the path dependency is used for resolution only."""
        crate_map = list_used_items_in_cargo(demo_project, load_sysroot=False)

        assert not any("helper" in path for path in crate_map.paths)

    def test_start_below_project_root(self, demo_project):
        """Test that a subdirectory finds the enclosing manifest."""
        from_root = list_used_items_in_cargo(demo_project, load_sysroot=False)
        from_src = list_used_items_in_cargo(demo_project / "src", load_sysroot=False)

        assert from_src.to_dict() == from_root.to_dict()

    def test_compact_json(self, demo_project):
        """Test the default JSON shape of a real run."""
        output = to_json(list_used_items_in_cargo(demo_project, load_sysroot=False))

        assert "\n" not in output
        assert json.loads(output)["src/shapes.rs"] == {}
        assert output.startswith('{"src/broken.rs":{}')

    def test_workspace_members(self, tmp_path):
        """Test that every workspace member is walked and keyed from the workspace root."""
        write_files(tmp_path, {
            "Cargo.toml": '[workspace]\nmembers = ["crates/*"]\n',
            "crates/core/Cargo.toml": '[package]\nname = "ws-core"\nversion = "0.1.0"\n',
            "crates/core/src/lib.rs": "pub trait Engine {}\n",
            "crates/app/Cargo.toml": (
                '[package]\nname = "app"\nversion = "0.1.0"\n\n'
                '[dependencies]\nws-core = { path = "../core" }\n'
            ),
            "crates/app/src/main.rs": "use ws_core::Engine;\nfn main() {}\n",
        })

        crate_map = list_used_items_in_cargo(tmp_path, load_sysroot=False)

        assert crate_map.to_dict() == {
            "crates/app/src/main.rs": {"traits": ["Engine"]},
            "crates/core/src/lib.rs": {},
        }

    def test_start_in_workspace_member(self, tmp_path):
        """Test that running inside one member reports the whole workspace."""
        write_files(tmp_path, {
            "Cargo.toml": (
                '[workspace]\nmembers = ["a", "b"]\n\n'
                '[workspace.dependencies]\nb = { path = "b" }\n'
            ),
            "a/Cargo.toml": (
                '[package]\nname = "a"\nversion = "0.1.0"\n\n'
                '[dependencies]\nb = { workspace = true }\n'
            ),
            "a/src/lib.rs": "use b::Thing;\n",
            "b/Cargo.toml": '[package]\nname = "b"\nversion = "0.1.0"\n',
            "b/src/lib.rs": "pub struct Thing;\n",
        })

        from_member = list_used_items_in_cargo(tmp_path / "a", load_sysroot=False)
        from_root = list_used_items_in_cargo(tmp_path, load_sysroot=False)

        assert from_member.to_dict() == {
            "a/src/lib.rs": {"structs": ["Thing"]},
            "b/src/lib.rs": {},
        }
        assert from_member.to_dict() == from_root.to_dict()

    def test_missing_manifest(self, tmp_path):
        """Test that a directory outside any Cargo project fails to load."""
        lonely = tmp_path / "lonely"
        lonely.mkdir()

        with pytest.raises(ProjectLoadError):
            list_used_items_in_cargo(lonely, load_sysroot=False)
