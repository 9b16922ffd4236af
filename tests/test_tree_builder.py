# Copyright 2026 Cisco Systems, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Tests for building and walking the file tree."""

import random
from datetime import datetime

from crx_inspector.core.models import ArchiveEntry, DirectoryNode, FileCategory, FileNode
from crx_inspector.core.tree_builder import (
    aggregate_sizes,
    build_tree,
    find_node,
    flatten,
    iter_files,
    tree_stats,
    walk,
)

_WHEN = datetime(2024, 5, 1, 12, 0, 0)


def _file(path: str, size: int = 10, when: datetime = _WHEN) -> ArchiveEntry:
    return ArchiveEntry(path=path, is_directory=False, uncompressed_size=size, compressed_size=size // 2, modified_at=when)


def _dir(path: str) -> ArchiveEntry:
    return ArchiveEntry(path=path, is_directory=True, uncompressed_size=0, compressed_size=0, modified_at=_WHEN)


def _assert_ordered(node: DirectoryNode) -> None:
    dirs = [c for c in node.children if isinstance(c, DirectoryNode)]
    files = [c for c in node.children if isinstance(c, FileNode)]
    assert list(node.children) == dirs + files
    assert [d.name for d in dirs] == sorted(d.name for d in dirs)
    assert [f.name for f in files] == sorted(f.name for f in files)
    for d in dirs:
        _assert_ordered(d)


class TestBuildTree:
    def test_intermediate_directories_are_created(self):
        root = build_tree([_file("a/b/c.js")])
        a = root.children[0]
        assert isinstance(a, DirectoryNode) and a.path == "a"
        b = a.children[0]
        assert isinstance(b, DirectoryNode) and b.path == "a/b"
        assert b.children[0].path == "a/b/c.js"
        assert b.children[0].category == FileCategory.CODE

    def test_root_is_synthetic(self):
        root = build_tree([_file("x.txt")])
        assert root.name == "" and root.path == ""

    def test_empty_input(self):
        root = build_tree([])
        assert root.children == ()

    def test_directories_first_then_case_sensitive_names(self):
        root = build_tree([_file("b.js"), _file("B.js"), _file("a.js"), _file("zdir/x"), _file("Adir/y")])
        assert [c.name for c in root.children] == ["Adir", "zdir", "B.js", "a.js", "b.js"]

    def test_explicit_empty_directory_is_kept(self):
        root = build_tree([_dir("empty"), _file("f.txt")])
        assert isinstance(root.children[0], DirectoryNode)
        assert root.children[0].children == ()

    def test_duplicate_file_last_write_wins(self):
        root = build_tree([_file("a.js", size=1), _file("a.js", size=2)])
        assert len(root.children) == 1
        assert root.children[0].size == 2

    def test_directory_wins_over_file(self):
        for entries in ([_file("x", 5), _file("x/y.js")], [_file("x/y.js"), _file("x", 5)]):
            root = build_tree(entries)
            assert len(root.children) == 1
            assert isinstance(root.children[0], DirectoryNode)

    def test_input_order_does_not_matter(self):
        entries = [_file(p) for p in ["src/a.js", "src/lib/b.js", "README.md", "img/x.png", "src/Z.js"]]
        expected = build_tree(entries)
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(entries)
            rng.shuffle(shuffled)
            assert build_tree(shuffled) == expected

    def test_ordering_invariant_holds_everywhere(self):
        rng = random.Random(3)
        names = ["a", "B", "c", "D", "e.js", "F.css", "g.png"]
        paths = {"/".join(rng.choice(names) for _ in range(rng.randint(1, 4))) for _ in range(60)}
        _assert_ordered(build_tree([_file(p) for p in paths]))


class TestRoundTrip:
    """Every file entry appears exactly once as a leaf with the same path."""

    def test_leaf_paths_match_entries(self, sample_zip):
        from crx_inspector.core.extractors.archive_extractor import list_entries

        listing = list_entries(sample_zip).unwrap()
        root = build_tree(listing.entries)
        leaves = [node.path for node in iter_files(root)]
        assert sorted(leaves) == sorted(e.path for e in listing.file_entries)
        assert len(leaves) == len(set(leaves))


class TestTraversal:
    def test_walk_is_preorder(self):
        root = build_tree([_file("a/b.js"), _file("c.js")])
        assert [n.path for n in walk(root)] == ["", "a", "a/b.js", "c.js"]

    def test_find_node(self):
        root = build_tree([_file("a/b/c.js")])
        assert find_node(root, "a/b").path == "a/b"
        assert find_node(root, "/a/b/c.js").name == "c.js"
        assert find_node(root, "") is root
        assert find_node(root, "a/missing") is None
        assert find_node(root, "a/b/c.js/deeper") is None


class TestSizes:
    def test_directories_not_aggregated_by_default(self):
        root = build_tree([_file("d/a", 100), _file("d/b", 50)])
        assert root.children[0].size == 0

    def test_aggregate_sizes(self):
        root = aggregate_sizes(build_tree([_file("d/a", 100), _file("d/e/b", 50), _file("c", 1)]))
        d = root.children[0]
        assert d.size == 150
        assert d.compressed_size == 50 + 25
        assert root.size == 151

    def test_stats(self):
        later = datetime(2025, 1, 1)
        stats = tree_stats(build_tree([_file("a.js", 10), _file("img/b.png", 20, when=later), _dir("empty")]))
        assert stats.total_files == 2
        assert stats.total_directories == 2
        assert stats.total_size == 30
        assert stats.by_category["code"] == 1
        assert stats.by_category["asset"] == 1
        assert stats.by_category["other"] == 0
        assert stats.latest_modified == later
        assert stats.to_dict()["latest_modified"] == later.isoformat()

    def test_flatten(self):
        rows = flatten(build_tree([_file("src/a.js"), _file("b.md")]))
        assert [(r["path"], r["type"]) for r in rows] == [("src", "directory"), ("src/a.js", "file"), ("b.md", "file")]
        assert rows[2]["category"] == "documentation"

    def test_flatten_files_only(self):
        rows = flatten(build_tree([_file("src/a.js")]), include_directories=False)
        assert [r["path"] for r in rows] == ["src/a.js"]
