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
Inspector service: the entry point used by the API and the CLI.

Opening a package runs the whole pipeline once (header, archive slice,
listing, tree, manifest) and keeps the results on an
:class:`InspectedPackage`. Later reads, searches and filters reuse them.
Unlike the engine modules, this layer raises :class:`CrxInspectorError`
subclasses instead of returning results.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config.config import Config
from .exceptions import EngineError, ErrorKind, Result, error_to_exception
from .extension_id import derive_extension_id
from .extractors.archive_extractor import (
    decode_text,
    list_entries,
    read_entry,
    read_manifest,
    read_text_entries,
)
from .file_filter import filter_tree, matching_nodes, matching_paths
from .file_magic import is_text_path
from .header_parser import extract_archive_bytes, parse_header
from .models import ArchiveEntry, ContainerHeader, DirectoryNode, FileNode, FilterCriteria
from .search import SearchReport, compile_pattern, search_files
from .tree_builder import build_tree, find_node

logger = logging.getLogger(__name__)


@dataclass
class ExtractionLimits:
    """Bounds checked before a package is expanded."""

    max_container_bytes: int
    max_entries: int
    max_uncompressed_bytes: int

    @classmethod
    def from_config(cls, config: Config) -> ExtractionLimits:
        return cls(
            max_container_bytes=config.max_upload_bytes,
            max_entries=config.max_entries,
            max_uncompressed_bytes=config.max_uncompressed_bytes,
        )

    def check_container(self, size: int) -> Result[None]:
        if size > self.max_container_bytes:
            return Result.failure(
                ErrorKind.LIMIT_EXCEEDED,
                f"Package is {size} bytes, limit is {self.max_container_bytes}",
                limit="max_container_bytes",
                value=size,
            )
        return Result.success(None)

    def check_entries(self, entries: list[ArchiveEntry]) -> Result[None]:
        if len(entries) > self.max_entries:
            return Result.failure(
                ErrorKind.LIMIT_EXCEEDED,
                f"Archive has {len(entries)} entries, limit is {self.max_entries}",
                limit="max_entries",
                value=len(entries),
            )
        total = sum(e.uncompressed_size for e in entries)
        if total > self.max_uncompressed_bytes:
            return Result.failure(
                ErrorKind.LIMIT_EXCEEDED,
                f"Archive expands to {total} bytes, limit is {self.max_uncompressed_bytes}",
                limit="max_uncompressed_bytes",
                value=total,
            )
        return Result.success(None)


@dataclass
class InspectedPackage:
    """An opened CRX package and everything derived from it."""

    data: bytes
    header: ContainerHeader
    entries: list[ArchiveEntry]
    skipped_entries: list[EngineError]
    tree: DirectoryNode
    manifest: dict[str, Any]
    sha256: str
    extension_id: str | None = None
    filename: str | None = None
    opened_at: float = field(default_factory=time.time)

    @property
    def archive(self) -> memoryview:
        return memoryview(self.data)[self.header.archive_offset :]

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def manifest_version(self) -> int | None:
        value = self.manifest.get("manifest_version")
        return value if isinstance(value, int) else None

    @property
    def version(self) -> str | None:
        value = self.manifest.get("version")
        return str(value) if value is not None else None

    @property
    def name(self) -> str | None:
        return self._localized("name")

    @property
    def description(self) -> str | None:
        return self._localized("description")

    @property
    def permissions(self) -> list[str]:
        return [p for p in self.manifest.get("permissions", []) or [] if isinstance(p, str)]

    @property
    def host_permissions(self) -> list[str]:
        hosts = [p for p in self.manifest.get("host_permissions", []) or [] if isinstance(p, str)]
        if self.manifest_version == 2:
            # Manifest V2 mixes host patterns into "permissions"
            hosts.extend(p for p in self.permissions if "://" in p or p == "<all_urls>")
        return hosts

    def _localized(self, key: str) -> str | None:
        value = self.manifest.get(key)
        if not isinstance(value, str):
            return None
        if not (value.startswith("__MSG_") and value.endswith("__")):
            return value

        locale = self.manifest.get("default_locale")
        if not isinstance(locale, str):
            return value
        raw = read_entry(self.archive, f"_locales/{locale}/messages.json")
        text = decode_text(raw.value) if raw.ok else None
        if text is None:
            return value
        try:
            messages = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Unparseable messages.json for locale %s", locale)
            return value
        if not isinstance(messages, dict):
            return value

        wanted = value[len("__MSG_") : -2].lower()
        for message_key, entry in messages.items():
            if message_key.lower() == wanted and isinstance(entry, dict) and isinstance(entry.get("message"), str):
                return entry["message"]
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "extension_id": self.extension_id,
            "name": self.name,
            "version": self.version,
            "manifest_version": self.manifest_version,
            "description": self.description,
            "permissions": self.permissions,
            "host_permissions": self.host_permissions,
            "crx_version": self.header.version,
            "size": self.size,
            "sha256": self.sha256,
            "filename": self.filename,
            "file_count": sum(1 for e in self.entries if not e.is_directory),
            "skipped_entries": [e.to_dict() for e in self.skipped_entries],
        }


class CrxInspector:
    """Open CRX packages and answer questions about their contents."""

    def __init__(self, config: Config | None = None, limits: ExtractionLimits | None = None):
        self.config = config or Config()
        self.limits = limits or ExtractionLimits.from_config(self.config)

    def open(self, data: bytes, filename: str | None = None) -> InspectedPackage:
        """
        Parse a CRX container and index its archive.

        Args:
            data: Raw container bytes
            filename: Optional original file name, kept for display

        Returns:
            The inspected package

        Raises:
            ContainerParseError: If the header or archive signature is invalid
            ArchiveExtractionError: If the archive is corrupt, exceeds the
                extraction limits or has no usable manifest.json
        """
        data = bytes(data)
        self.limits.check_container(len(data)).unwrap()

        header = parse_header(data).unwrap()
        archive = extract_archive_bytes(data, header).unwrap()

        listing = list_entries(archive).unwrap()
        self.limits.check_entries(listing.entries).unwrap()
        for skipped in listing.skipped:
            logger.warning("%s", skipped.message)

        manifest = read_manifest(archive).unwrap()
        tree = build_tree(listing.entries)

        package = InspectedPackage(
            data=data,
            header=header,
            entries=listing.entries,
            skipped_entries=listing.skipped,
            tree=tree,
            manifest=manifest,
            sha256=hashlib.sha256(data).hexdigest(),
            extension_id=derive_extension_id(manifest, header),
            filename=filename,
        )
        logger.info(
            "Opened CRX%d package %s (%d bytes, %d entries)",
            header.version,
            filename or package.sha256[:12],
            package.size,
            len(listing.entries),
        )
        return package

    def open_file(self, path: str | Path) -> InspectedPackage:
        path = Path(path)
        return self.open(path.read_bytes(), filename=path.name)

    def read_file(self, package: InspectedPackage, path: str) -> bytes:
        """Decompressed bytes of one file shown in the tree.

        Raises:
            ArchiveExtractionError: If the path is not a file of the tree or
                the member cannot be decompressed
        """
        path = path.strip("/")
        if not isinstance(find_node(package.tree, path), FileNode):
            raise error_to_exception(
                EngineError(ErrorKind.ENTRY_NOT_FOUND, f"File not found: {path}", {"path": path})
            )
        return read_entry(package.archive, path).unwrap()

    def read_text(self, package: InspectedPackage, path: str) -> str | None:
        return decode_text(self.read_file(package, path))

    def search(
        self,
        package: InspectedPackage,
        query: str,
        case_sensitive: bool = False,
        whole_word: bool = False,
        use_regex: bool = False,
        context_lines: int | None = None,
        file_pattern: str | None = None,
        max_results: int | None = None,
    ) -> SearchReport:
        """
        Search the text files of a package.

        Only files that look like text (by name) and decode as UTF-8 are
        searched. ``file_pattern`` is a name glob applied before reading.
        ``max_results`` is clamped to the configured limit.

        Raises:
            PatternError: If the query or the file pattern does not compile
        """
        pattern = compile_pattern(query, case_sensitive, whole_word, use_regex).unwrap()
        if pattern is None:
            return SearchReport()

        if context_lines is None:
            context_lines = self.config.default_context_lines
        if max_results is None:
            max_results = self.config.default_max_results
        max_results = max(1, min(max_results, self.config.max_results_limit))

        if file_pattern:
            paths = matching_paths(package.tree, FilterCriteria(name_pattern=file_pattern)).unwrap()
        else:
            paths = [node.path for node in matching_nodes(package.tree, FilterCriteria()).unwrap()]
        paths = [p for p in paths if is_text_path(p)]

        report = search_files(read_text_entries(package.archive, paths), pattern, context_lines, max_results)
        logger.debug(
            "Search %r matched %d times in %d/%d files",
            query,
            report.total_matches,
            len(report.results),
            report.files_searched,
        )
        return report

    def filter(self, package: InspectedPackage, criteria: FilterCriteria) -> list[FileNode]:
        """Files matching *criteria*, in tree order."""
        return matching_nodes(package.tree, criteria).unwrap()

    def filter_tree(self, package: InspectedPackage, criteria: FilterCriteria) -> DirectoryNode:
        return filter_tree(package.tree, criteria).unwrap()

    def export_zip(self, package: InspectedPackage) -> bytes:
        """The embedded ZIP archive, without the CRX header."""
        return bytes(package.archive)


