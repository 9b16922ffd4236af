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

"""
Hierarchical file tree built from a flat archive listing.

Ordering contract: in every directory, subdirectories come before files and
each group is sorted case-sensitively by name. Directory sizes are not
rolled up here; :func:`aggregate_sizes` is the explicit pass for that.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .file_magic import categorize
from .models import ArchiveEntry, DirectoryNode, FileCategory, FileNode, FileTreeNode


class _DirBuilder:
    """Mutable scratch directory used only while building."""

    __slots__ = ("name", "path", "dirs", "files")

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        self.dirs: dict[str, _DirBuilder] = {}
        self.files: dict[str, FileNode] = {}

    def child_dir(self, name: str) -> _DirBuilder:
        child = self.dirs.get(name)
        if child is None:
            child = _DirBuilder(name, f"{self.path}/{name}" if self.path else name)
            self.dirs[name] = child
        return child

    def freeze(self) -> DirectoryNode:
        dirs = [self.dirs[name].freeze() for name in sorted(self.dirs)]
        files = [self.files[name] for name in sorted(self.files)]
        return DirectoryNode(name=self.name, path=self.path, children=tuple(dirs + files))


def build_tree(entries: Iterable[ArchiveEntry]) -> DirectoryNode:
    """
    Build a file tree from archive entries.

    Intermediate directories are created on first sight. A repeated file path
    replaces the earlier node (last write wins). A name that is already a
    directory is kept as a directory when a file entry with the same path
    appears later.

    Args:
        entries: Archive entries, typically ``list_entries(...).value.entries``

    Returns:
        The synthetic root directory (empty name and path)
    """
    root = _DirBuilder("", "")

    for entry in entries:
        parts = [p for p in entry.path.split("/") if p]
        if not parts:
            continue

        parent = root
        for part in parts[:-1]:
            # A file previously recorded under this name becomes a directory
            parent.files.pop(part, None)
            parent = parent.child_dir(part)

        leaf = parts[-1]
        if entry.is_directory:
            parent.files.pop(leaf, None)
            parent.child_dir(leaf)
            continue

        if leaf in parent.dirs:
            continue

        path = f"{parent.path}/{leaf}" if parent.path else leaf
        parent.files[leaf] = FileNode(
            name=leaf,
            path=path,
            size=entry.uncompressed_size,
            compressed_size=entry.compressed_size,
            modified_at=entry.modified_at,
            category=categorize(leaf),
        )

    return root.freeze()


def walk(node: FileTreeNode) -> Iterator[FileTreeNode]:
    """Pre-order traversal of every node, in tree order."""
    yield node
    if isinstance(node, DirectoryNode):
        for child in node.children:
            yield from walk(child)


def iter_files(node: FileTreeNode) -> Iterator[FileNode]:
    """All leaf nodes under *node*, in tree order."""
    for current in walk(node):
        if isinstance(current, FileNode):
            yield current


def find_node(root: DirectoryNode, path: str) -> FileTreeNode | None:
    """Find the node at *path* (``""`` is the root)."""
    path = path.strip("/")
    if not path:
        return root

    current: FileTreeNode = root
    for part in path.split("/"):
        if not isinstance(current, DirectoryNode):
            return None
        for child in current.children:
            if child.name == part:
                current = child
                break
        else:
            return None
    return current


def aggregate_sizes(node: DirectoryNode) -> DirectoryNode:
    """Return a copy of the tree whose directories carry the sum of their leaf sizes."""
    children: list[FileTreeNode] = []
    size = 0
    compressed = 0
    for child in node.children:
        if isinstance(child, DirectoryNode):
            child = aggregate_sizes(child)
        children.append(child)
        size += child.size
        compressed += child.compressed_size
    return replace(node, children=tuple(children), size=size, compressed_size=compressed)


@dataclass
class TreeStats:
    """Counts and totals over a file tree."""

    total_files: int = 0
    total_directories: int = 0
    total_size: int = 0
    total_compressed_size: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    latest_modified: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_directories": self.total_directories,
            "total_size": self.total_size,
            "total_compressed_size": self.total_compressed_size,
            "by_category": dict(self.by_category),
            "latest_modified": self.latest_modified.isoformat() if self.latest_modified else None,
        }


def tree_stats(root: DirectoryNode) -> TreeStats:
    """Summarize a tree; the root itself is not counted as a directory."""
    stats = TreeStats()
    categories: Counter[str] = Counter()
    for node in walk(root):
        if node is root:
            continue
        if isinstance(node, DirectoryNode):
            stats.total_directories += 1
            continue
        stats.total_files += 1
        stats.total_size += node.size
        stats.total_compressed_size += node.compressed_size
        categories[node.category.value] += 1
        if stats.latest_modified is None or node.modified_at > stats.latest_modified:
            stats.latest_modified = node.modified_at
    stats.by_category = {c.value: categories.get(c.value, 0) for c in FileCategory}
    return stats


def flatten(root: DirectoryNode, include_directories: bool = True) -> list[dict[str, Any]]:
    """Flat list representation of the tree, in tree order, without the root."""
    rows: list[dict[str, Any]] = []
    for node in walk(root):
        if node is root:
            continue
        if isinstance(node, DirectoryNode):
            if include_directories:
                rows.append({"path": node.path, "name": node.name, "type": "directory", "size": node.size})
            continue
        rows.append(
            {
                "path": node.path,
                "name": node.name,
                "type": "file",
                "size": node.size,
                "compressed_size": node.compressed_size,
                "category": node.category.value,
            }
        )
    return rows
