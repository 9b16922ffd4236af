# Copyright 2026 Cisco Systems, Inc. and its affiliates
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
Adapter over :mod:`zipfile` for the archive embedded in a CRX container.

Turns the archive's central directory into :class:`ArchiveEntry` values,
reads individual members, and loads ``manifest.json``. Entries whose paths
could escape a storage root or that do not name a single tree path
(``..`` or empty components, absolute or drive-rooted paths) are dropped
and reported, never fatal.
"""

import io
import json
import re
import stat
import zipfile
import zlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ...config.constants import CrxInspectorConstants
from ..exceptions import EngineError, ErrorKind, Result
from ..models import ArchiveEntry

_DRIVE_LETTER = re.compile(r"^[A-Za-z]:")

ArchiveBytes = bytes | bytearray | memoryview


@dataclass
class ArchiveListing:
    """Entries of an archive plus the records that were rejected."""

    entries: list[ArchiveEntry] = field(default_factory=list)
    skipped: list[EngineError] = field(default_factory=list)

    @property
    def file_entries(self) -> list[ArchiveEntry]:
        return [e for e in self.entries if not e.is_directory]


def unsafe_path_reason(path: str) -> str | None:
    """Return why *path* is unsafe to join onto a storage root, or None if it is safe."""
    if not path:
        return "empty path"
    if "\x00" in path:
        return "null byte in path"
    if path.startswith("/") or path.startswith("\\"):
        return "absolute path"
    if _DRIVE_LETTER.match(path):
        return "drive-qualified path"
    for part in re.split(r"[\\/]", path.rstrip("/")):
        if part in (".", ".."):
            return f"path component {part!r}"
        if not part:
            return "empty path component"
    return None


def _is_zip_symlink(info: zipfile.ZipInfo) -> bool:
    """ZIP archives store Unix mode bits in the upper 16 bits of ``external_attr``."""
    unix_mode = (info.external_attr >> 16) & 0xFFFF
    return unix_mode != 0 and stat.S_ISLNK(unix_mode)


def _modified_at(info: zipfile.ZipInfo) -> datetime:
    try:
        return datetime(*info.date_time)
    except ValueError:
        # Some writers store a zeroed DOS timestamp
        return datetime(1980, 1, 1)


def _open(archive: ArchiveBytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(archive), "r")


def list_entries(archive: ArchiveBytes) -> Result[ArchiveListing]:
    """
    List the entries of a ZIP archive in the order the library reports them.

    Args:
        archive: ZIP bytes (typically the view returned by
            :func:`crx_inspector.core.header_parser.extract_archive_bytes`)

    Returns:
        Result holding an :class:`ArchiveListing`, or an ``ARCHIVE_ERROR``
        carrying the library's message
    """
    listing = ArchiveListing()
    try:
        with _open(archive) as zf:
            for info in zf.infolist():
                path = info.filename
                reason = unsafe_path_reason(path)
                if reason is None and _is_zip_symlink(info):
                    reason = "symbolic link entry"
                if reason is not None:
                    listing.skipped.append(
                        EngineError(
                            kind=ErrorKind.UNSAFE_PATH,
                            message=f"Skipped unsafe archive entry {path!r}: {reason}",
                            details={"path": path, "reason": reason},
                        )
                    )
                    continue

                is_directory = info.is_dir() or path.endswith("/")
                listing.entries.append(
                    ArchiveEntry(
                        path=path.rstrip("/") if is_directory else path,
                        is_directory=is_directory,
                        uncompressed_size=0 if is_directory else info.file_size,
                        compressed_size=0 if is_directory else info.compress_size,
                        modified_at=_modified_at(info),
                    )
                )
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError, EOFError) as e:
        return Result.failure(ErrorKind.ARCHIVE_ERROR, f"Failed to read ZIP archive: {e}", library_error=str(e))

    return Result.success(listing)


def read_entry(archive: ArchiveBytes, path: str) -> Result[bytes]:
    """Read the decompressed bytes of a single file entry."""
    reason = unsafe_path_reason(path)
    if reason is not None:
        return Result.failure(ErrorKind.UNSAFE_PATH, f"Refusing to read {path!r}: {reason}", path=path)

    try:
        with _open(archive) as zf:
            try:
                info = zf.getinfo(path)
            except KeyError:
                return Result.failure(ErrorKind.ENTRY_NOT_FOUND, f"File not found: {path}", path=path)
            if info.is_dir():
                return Result.failure(ErrorKind.ENTRY_NOT_FOUND, f"Not a file: {path}", path=path)
            return Result.success(zf.read(info))
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
        OSError,
        ValueError,
        EOFError,
        NotImplementedError,
        RuntimeError,
    ) as e:
        return Result.failure(
            ErrorKind.ARCHIVE_ERROR, f"Failed to read {path}: {e}", path=path, library_error=str(e)
        )


def decode_text(data: bytes) -> str | None:
    """Decode UTF-8 (BOM tolerated); None when the bytes are not valid UTF-8."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return None


def read_manifest(archive: ArchiveBytes) -> Result[dict[str, Any]]:
    """Load and parse ``manifest.json`` from the archive root."""
    manifest_file = CrxInspectorConstants.MANIFEST_FILE
    raw = read_entry(archive, manifest_file)
    if not raw.ok:
        if raw.error.kind == ErrorKind.ENTRY_NOT_FOUND:
            return Result.failure(ErrorKind.ENTRY_NOT_FOUND, "manifest.json not found in archive", path=manifest_file)
        return Result(error=raw.error)

    text = decode_text(raw.value)
    if text is None:
        return Result.failure(ErrorKind.INVALID_MANIFEST, "manifest.json is not valid UTF-8")
    try:
        manifest = json.loads(text)
    except json.JSONDecodeError as e:
        return Result.failure(
            ErrorKind.INVALID_MANIFEST, f"manifest.json is not valid JSON: {e.msg}", line=e.lineno, column=e.colno
        )
    if not isinstance(manifest, dict):
        return Result.failure(ErrorKind.INVALID_MANIFEST, "manifest.json must contain a JSON object")
    return Result.success(manifest)


def read_text_entries(archive: ArchiveBytes, paths: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Yield ``(path, text)`` for each readable UTF-8 file among *paths*.

    Missing, unsafe or undecodable files are skipped. The archive is opened
    once for the whole batch.
    """
    try:
        zf = _open(archive)
    except (zipfile.BadZipFile, OSError, ValueError, EOFError):
        return
    with zf:
        for path in paths:
            if unsafe_path_reason(path) is not None:
                continue
            try:
                data = zf.read(path)
            except (
                KeyError,
                zipfile.BadZipFile,
                zlib.error,
                OSError,
                ValueError,
                EOFError,
                NotImplementedError,
                RuntimeError,
            ):
                # Encrypted or corrupt members are left out of the search
                continue
            text = decode_text(data)
            if text is not None:
                yield path, text
