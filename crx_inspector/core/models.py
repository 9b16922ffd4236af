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
Data models for CRX containers, archive entries, file trees and search results.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class FileCategory(str, Enum):
    """Coarse content classification of a file.

    The values are a public contract consumed by client-side filtering UIs.
    """

    CODE = "code"
    CONFIG = "config"
    RESOURCE = "resource"
    DOCUMENTATION = "documentation"
    ASSET = "asset"
    OTHER = "other"


@dataclass(frozen=True)
class ContainerHeader:
    """Parsed CRX header: format version and where the embedded ZIP begins."""

    version: int
    archive_offset: int
    public_key: bytes | None = None  # CRX2 only; CRX3 keys live in a protobuf header


@dataclass(frozen=True)
class ArchiveEntry:
    """One record of the embedded archive's directory listing."""

    path: str
    is_directory: bool
    uncompressed_size: int
    compressed_size: int
    modified_at: datetime

    @property
    def name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "is_directory": self.is_directory,
            "uncompressed_size": self.uncompressed_size,
            "compressed_size": self.compressed_size,
            "modified_at": self.modified_at.isoformat(),
        }


@dataclass(frozen=True)
class FileNode:
    """A leaf of the file tree."""

    name: str
    path: str
    size: int
    compressed_size: int
    modified_at: datetime
    category: FileCategory

    @property
    def is_directory(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "type": "file",
            "size": self.size,
            "compressed_size": self.compressed_size,
            "modified_at": self.modified_at.isoformat(),
            "category": self.category.value,
        }


@dataclass(frozen=True)
class DirectoryNode:
    """An interior node of the file tree.

    ``size`` and ``compressed_size`` stay 0 unless the tree was produced by
    :func:`crx_inspector.core.tree_builder.aggregate_sizes`.
    """

    name: str
    path: str
    children: tuple[FileTreeNode, ...] = ()
    size: int = 0
    compressed_size: int = 0

    @property
    def is_directory(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "type": "directory",
            "size": self.size,
            "compressed_size": self.compressed_size,
            "children": [child.to_dict() for child in self.children],
        }


FileTreeNode = Union[DirectoryNode, FileNode]


@dataclass
class SearchMatch:
    """A single occurrence of a search pattern inside a file."""

    file_id: str
    file_path: str
    line_number: int  # 1-indexed
    column_number: int  # 1-indexed, in characters
    match_start: int  # absolute character offset into the file content
    match_end: int
    match_text: str
    line_content: str
    context_before: list[str] = field(default_factory=list)
    context_after: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file_path,
            "line": self.line_number,
            "column": self.column_number,
            "match_start": self.match_start,
            "match_end": self.match_end,
            "match": self.match_text,
            "line_content": self.line_content,
            "context": {"before": list(self.context_before), "after": list(self.context_after)},
        }


@dataclass
class FileSearchResult:
    """All matches of a pattern within one file."""

    file_path: str
    file_id: str = ""
    matches: list[SearchMatch] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "file_id": self.file_id,
            "match_count": self.match_count,
            "matches": [m.to_dict() for m in self.matches],
        }


@dataclass(frozen=True)
class CompiledPattern:
    """A search query compiled once and threaded through every search call."""

    query: str
    regex: re.Pattern[str]
    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False


@dataclass(frozen=True)
class FilterCriteria:
    """Selection rules for the file filter. Every active rule must pass."""

    name_pattern: str | None = None
    use_regex: bool = False
    case_sensitive: bool = False
    categories: frozenset[FileCategory] = frozenset()
    min_size: int | None = None
    max_size: int | None = None

    def __post_init__(self):
        """Normalize categories given as wire strings or any iterable."""
        cats = self.categories
        if isinstance(cats, (str, FileCategory)):
            cats = [cats]
        object.__setattr__(self, "categories", frozenset(FileCategory(c) for c in cats))

    @property
    def is_empty(self) -> bool:
        return (
            not self.name_pattern and not self.categories and self.min_size is None and self.max_size is None
        )
