"""Shared fixtures: an in-memory analysis double and on-disk Cargo projects."""

from pathlib import Path
from typing import Dict, List, Tuple, Union

import pytest

from analysis.database import NavigationTarget, PackageRoot
from analysis.errors import ResolutionError
from analysis.syntax import SourceFile, SyntaxKind, TextRange, UseItem, UseTree


class UseTreeBuilder:
    """
    Builds use trees with distinct offsets.

    Every leaf gets its own end offset, and the builder remembers which path
    text each offset stands for so a fake analysis can resolve it.
    """

    def __init__(self):
        self._offset = 0
        self.paths: Dict[int, str] = {}

    def leaf(self, path: str) -> UseTree:
        start = self._offset
        end = start + len(path)
        self._offset = end + 1
        self.paths[end] = path
        return UseTree(range=TextRange(start, end), path=tuple(path.split("::")))

    def group(self, prefix: str, *children: UseTree) -> UseTree:
        start = self._offset
        end = start + 1
        self._offset = end + 1
        return UseTree(
            range=TextRange(start, end),
            path=tuple(prefix.split("::")) if prefix else (),
            children=tuple(children),
        )

    def use(self, tree: Union[UseTree, None]) -> UseItem:
        start = tree.range.start if tree is not None else self._offset
        end = tree.range.end if tree is not None else self._offset
        return UseItem(range=TextRange(start, end), use_tree=tree)


class FakeAnalysis:
    """Analysis double resolving leaves by the path text they were built from."""

    def __init__(
        self,
        builder: UseTreeBuilder,
        files: Dict[int, Union[SourceFile, Exception]],
        definitions: Dict[str, List[Tuple[str, SyntaxKind]]],
    ):
        self.builder = builder
        self.files = files
        self.definitions = definitions
        self.queries: List[str] = []

    def parse(self, file_id: int) -> SourceFile:
        source_file = self.files[file_id]
        if isinstance(source_file, Exception):
            raise source_file
        return source_file

    def goto_definition(self, position) -> List[NavigationTarget]:
        path = self.builder.paths.get(position.offset)
        self.queries.append(path)
        if path is None or path not in self.definitions:
            raise ResolutionError(f"cannot resolve {path!r}")
        return [
            NavigationTarget(position.file_id, TextRange(0, 0), name, kind)
            for name, kind in self.definitions[path]
        ]


class FakeSourceRoot:
    def __init__(self, file_ids: List[int]):
        self._file_ids = file_ids

    def walk(self):
        return iter(self._file_ids)


class FakeDatabase:
    def __init__(self, roots: Dict[int, List[int]], paths: Dict[int, str]):
        self._roots = roots
        self._paths = paths

    def source_root(self, root_id: int) -> FakeSourceRoot:
        return FakeSourceRoot(self._roots[root_id])

    def file_relative_path(self, file_id: int) -> str:
        return self._paths[file_id]


class FakeHost:
    def __init__(self, analysis: FakeAnalysis, db: FakeDatabase):
        self._analysis = analysis
        self._db = db

    def analysis(self) -> FakeAnalysis:
        return self._analysis

    def raw_database(self) -> FakeDatabase:
        return self._db


def member(path: str = "/repo") -> PackageRoot:
    return PackageRoot(path=Path(path), is_member=True)


def dependency(path: str = "/deps/foo") -> PackageRoot:
    return PackageRoot(path=Path(path), is_member=False)


def write_files(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    """Write a tree of files under ``root`` and return ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def builder() -> UseTreeBuilder:
    return UseTreeBuilder()


@pytest.fixture
def demo_project(tmp_path: Path) -> Path:
    """
    A library crate with file modules, a path dependency, re-exports,
    an exported macro, an orphan file and a file that is not UTF-8.
    """
    write_files(tmp_path / "helper", {
        "Cargo.toml": '[package]\nname = "helper"\nversion = "0.1.0"\nedition = "2021"\n',
        "src/lib.rs": "mod greet;\npub use greet::Greeter;\npub use greet::*;\n",
        "src/greet.rs": "pub struct Greeter;\npub fn wave() {}\n",
    })
    return write_files(tmp_path / "demo", {
        "Cargo.toml": (
            '[package]\nname = "demo"\nversion = "0.1.0"\nedition = "2021"\n\n'
            '[dependencies]\nhelper = { path = "../helper" }\n'
        ),
        "src/lib.rs": (
            "pub mod shapes;\n"
            "mod util;\n"
            "\n"
            "use crate::shapes::{Circle, Shape, area};\n"
            "use helper::Greeter;\n"
            "use self::util::MAX_SIZE;\n"
            "use std::fmt;\n"
            "\n"
            "pub fn run() {}\n"
        ),
        "src/shapes.rs": (
            "pub struct Circle;\n"
            "pub trait Shape {}\n"
            "pub fn area() -> f64 { 0.0 }\n"
            "pub enum Kind { Round, Square }\n"
        ),
        "src/util/mod.rs": (
            "pub const MAX_SIZE: usize = 10;\n"
            "use super::shapes::Kind::{self, Round};\n"
            "use super::run;\n"
            "\n"
            "#[macro_export]\n"
            "macro_rules! shout {\n"
            "    () => {};\n"
            "}\n"
        ),
        "src/orphan.rs": (
            "use crate::shapes::Circle;\n"
            "use crate::shout;\n"
            "use crate::missing::Thing;\n"
            "use helper::wave;\n"
        ),
        "src/broken.rs": b"use crate::shapes::Circle;\n\xff\xfe\n",
    })
