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
Select files from a tree by name, category and size.

Name patterns are either simple globs (``*`` and ``?`` only) or regular
expressions. A glob without a ``/`` is matched against the file name, one
containing ``/`` against the full path. Regular expressions are searched
anywhere in the full path, so ``^`` and ``$`` anchor to the path.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from .exceptions import ErrorKind, Result
from .models import DirectoryNode, FileNode, FileTreeNode, FilterCriteria
from .tree_builder import iter_files


def glob_to_regex(pattern: str) -> str:
    """Translate a ``*``/``?`` glob into an anchored regular expression source."""
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return "^" + "".join(parts) + "$"


def compile_name_pattern(
    pattern: str | None, use_regex: bool = False, case_sensitive: bool = False
) -> Result[re.Pattern[str] | None]:
    """Compile a name pattern; ``None`` means no name constraint."""
    if not pattern:
        return Result.success(None)

    flags = 0 if case_sensitive else re.IGNORECASE
    source = pattern if use_regex else glob_to_regex(pattern)
    try:
        return Result.success(re.compile(source, flags))
    except re.error as e:
        return Result.failure(ErrorKind.PATTERN_ERROR, f"Invalid name pattern: {e}", pattern=pattern)


_Predicate = Callable[[FileNode], bool]


def _build_predicate(criteria: FilterCriteria) -> Result[_Predicate]:
    compiled = compile_name_pattern(criteria.name_pattern, criteria.use_regex, criteria.case_sensitive)
    if not compiled.ok:
        return Result(error=compiled.error)

    name_regex = compiled.value
    match_full_path = criteria.use_regex or (criteria.name_pattern is not None and "/" in criteria.name_pattern)

    def predicate(node: FileNode) -> bool:
        if name_regex is not None:
            if criteria.use_regex:
                if name_regex.search(node.path) is None:
                    return False
            elif name_regex.match(node.path if match_full_path else node.name) is None:
                return False
        if criteria.categories and node.category not in criteria.categories:
            return False
        if criteria.min_size is not None and node.size < criteria.min_size:
            return False
        if criteria.max_size is not None and node.size > criteria.max_size:
            return False
        return True

    return Result.success(predicate)


def matches(node: FileNode, criteria: FilterCriteria) -> Result[bool]:
    """Whether a single file satisfies *criteria*."""
    predicate = _build_predicate(criteria)
    if not predicate.ok:
        return Result(error=predicate.error)
    return Result.success(predicate.value(node))


def _prune(node: DirectoryNode, predicate: _Predicate) -> DirectoryNode | None:
    kept: list[FileTreeNode] = []
    for child in node.children:
        if isinstance(child, DirectoryNode):
            pruned = _prune(child, predicate)
            if pruned is not None:
                kept.append(pruned)
        elif predicate(child):
            kept.append(child)
    if not kept:
        return None
    return DirectoryNode(
        name=node.name,
        path=node.path,
        children=tuple(kept),
        size=node.size,
        compressed_size=node.compressed_size,
    )


def filter_tree(root: DirectoryNode, criteria: FilterCriteria) -> Result[DirectoryNode]:
    """
    Return a new tree holding only the files that satisfy *criteria*.

    Empty criteria return *root* unchanged, explicit empty directories
    included. Otherwise directories left without any surviving descendant are
    removed. The root is always returned, with no children when nothing
    matched. The input tree is not modified.
    """
    if criteria.is_empty:
        return Result.success(root)

    predicate = _build_predicate(criteria)
    if not predicate.ok:
        return Result(error=predicate.error)

    filtered = _prune(root, predicate.value)
    if filtered is None:
        filtered = DirectoryNode(name=root.name, path=root.path)
    return Result.success(filtered)


def matching_nodes(root: DirectoryNode, criteria: FilterCriteria) -> Result[list[FileNode]]:
    """Files that satisfy *criteria*, in tree order."""
    predicate = _build_predicate(criteria)
    if not predicate.ok:
        return Result(error=predicate.error)
    return Result.success([node for node in iter_files(root) if predicate.value(node)])


def matching_paths(root: DirectoryNode, criteria: FilterCriteria) -> Result[list[str]]:
    """Paths of the files that satisfy *criteria*, in tree order."""
    nodes = matching_nodes(root, criteria)
    if not nodes.ok:
        return Result(error=nodes.error)
    return Result.success([node.path for node in nodes.value])
