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
Full-text search over decoded file contents.

Patterns are compiled once into a :class:`CompiledPattern` and passed to
every :func:`search` call. Matching runs over the whole content rather than
line by line, so multi-line regular expressions work; match offsets are
then mapped back to 1-indexed line/column positions through a table of
line-start offsets computed on the original, unsplit string.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ErrorKind, Result
from .models import CompiledPattern, FileSearchResult, SearchMatch


def compile_pattern(
    query: str,
    case_sensitive: bool = False,
    whole_word: bool = False,
    use_regex: bool = False,
) -> Result[CompiledPattern | None]:
    """
    Compile a search query.

    Args:
        query: Text (or regular expression when ``use_regex``) to look for
        case_sensitive: Match case exactly
        whole_word: Wrap a literal query in word boundaries; ignored for
            regular expressions, which control their own boundaries
        use_regex: Treat ``query`` as a regular expression

    Returns:
        Result holding the compiled pattern, ``None`` for an empty query, or
        a ``PATTERN_ERROR``
    """
    if not query:
        return Result.success(None)

    if use_regex:
        source = query
    else:
        source = re.escape(query)
        if whole_word:
            source = rf"\b{source}\b"

    flags = re.MULTILINE
    if not case_sensitive:
        flags |= re.IGNORECASE

    try:
        regex = re.compile(source, flags)
    except re.error as e:
        return Result.failure(ErrorKind.PATTERN_ERROR, f"Invalid search pattern: {e}", query=query, position=e.pos)

    return Result.success(
        CompiledPattern(
            query=query,
            regex=regex,
            case_sensitive=case_sensitive,
            whole_word=whole_word and not use_regex,
            use_regex=use_regex,
        )
    )


def _line_starts(content: str) -> list[int]:
    """Offsets at which each line begins; the newline itself belongs to the previous line."""
    starts = [0]
    index = content.find("\n")
    while index != -1:
        starts.append(index + 1)
        index = content.find("\n", index + 1)
    return starts


def search(
    file_id: str,
    file_path: str,
    content: str,
    pattern: CompiledPattern,
    context_lines: int = 2,
) -> list[SearchMatch]:
    """
    Find every non-overlapping match of *pattern* in *content*, in document order.

    Empty matches are skipped. Context is clipped at the start and end of
    the content.
    """
    lines = content.split("\n")
    starts = _line_starts(content)
    context_lines = max(0, context_lines)
    matches: list[SearchMatch] = []

    for m in pattern.regex.finditer(content):
        start, end = m.span()
        if start == end:
            continue

        line_index = bisect_right(starts, start) - 1
        column = start - starts[line_index]

        before_start = max(0, line_index - context_lines)
        after_end = min(len(lines), line_index + context_lines + 1)

        matches.append(
            SearchMatch(
                file_id=file_id,
                file_path=file_path,
                line_number=line_index + 1,
                column_number=column + 1,
                match_start=start,
                match_end=end,
                match_text=m.group(0),
                line_content=lines[line_index],
                context_before=lines[before_start:line_index],
                context_after=lines[line_index + 1 : after_end],
            )
        )

    return matches


@dataclass
class SearchReport:
    """Results of searching many files with one pattern."""

    results: list[FileSearchResult] = field(default_factory=list)
    files_searched: int = 0
    truncated: bool = False

    @property
    def total_matches(self) -> int:
        return sum(r.match_count for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "files_searched": self.files_searched,
            "files_with_matches": len(self.results),
            "total_matches": self.total_matches,
            "truncated": self.truncated,
        }


def search_files(
    files: Iterable[tuple[str, str]],
    pattern: CompiledPattern,
    context_lines: int = 2,
    max_results: int | None = None,
) -> SearchReport:
    """
    Search ``(path, content)`` pairs, keeping only files with at least one match.

    The file path doubles as the file id. Once *max_results* matches have
    been collected the report is marked truncated and no further files are
    searched.
    """
    report = SearchReport()
    remaining = max_results

    for path, content in files:
        if remaining is not None and remaining <= 0:
            report.truncated = True
            break

        report.files_searched += 1
        matches = search(path, path, content, pattern, context_lines)
        if not matches:
            continue

        if remaining is not None:
            if len(matches) > remaining:
                matches = matches[:remaining]
                report.truncated = True
            remaining -= len(matches)

        report.results.append(FileSearchResult(file_path=path, file_id=path, matches=matches))

    return report


def sort_search_results(results: Iterable[FileSearchResult]) -> list[FileSearchResult]:
    """Most matches first, then by path."""
    return sorted(results, key=lambda r: (-r.match_count, r.file_path))


def search_statistics(results: Iterable[FileSearchResult]) -> dict[str, float]:
    results = list(results)
    total = sum(r.match_count for r in results)
    files = len(results)
    return {
        "total_matches": total,
        "files_with_matches": files,
        "average_matches_per_file": total / files if files else 0.0,
    }


def match_preview(match: SearchMatch, max_length: int = 100) -> str:
    """A short excerpt of the matched line around the match, with ellipses where cut."""
    line = match.line_content
    column = match.column_number - 1
    start = max(0, column - 20)
    end = min(len(line), column + 80)

    preview = line[start:end]
    if start > 0:
        preview = f"...{preview}"
    if end < len(line):
        preview = f"{preview}..."
    return preview[:max_length]
