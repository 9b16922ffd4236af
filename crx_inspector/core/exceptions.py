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

"""CRX Inspector errors.

The analysis engine reports expected failures as :class:`EngineError` values
wrapped in a :class:`Result`.  Callers that prefer exceptions use
:meth:`Result.unwrap`, which raises the :class:`CrxInspectorError` subclass
matching the error kind.

Example:
    >>> from crx_inspector.core.header_parser import parse_header
    >>> from crx_inspector.core.exceptions import ContainerParseError
    >>>
    >>> result = parse_header(b"not a crx")
    >>> result.ok
    False
    >>> result.error.kind.value
    'bad_magic'
    >>>
    >>> try:
    ...     parse_header(b"short").unwrap()
    ... except ContainerParseError as e:
    ...     print(e.error.kind.value)
    too_small
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kinds of expected failure reported by the engine and service layer."""

    # Container header
    TOO_SMALL = "too_small"
    BAD_MAGIC = "bad_magic"
    UNSUPPORTED_VERSION = "unsupported_version"
    INVALID_FIELD_LENGTH = "invalid_field_length"
    ARCHIVE_NOT_FOUND = "archive_not_found"
    # Container -> archive
    INVALID_ARCHIVE_SIGNATURE = "invalid_archive_signature"
    # Archive adapter
    UNSAFE_PATH = "unsafe_path"
    ARCHIVE_ERROR = "archive_error"
    ENTRY_NOT_FOUND = "entry_not_found"
    INVALID_MANIFEST = "invalid_manifest"
    LIMIT_EXCEEDED = "limit_exceeded"
    # Search / filter
    PATTERN_ERROR = "pattern_error"
    # Acquisition
    INVALID_EXTENSION_ID = "invalid_extension_id"
    DOWNLOAD_FAILED = "download_failed"


@dataclass(frozen=True)
class EngineError:
    """A failure value: what went wrong, a readable message and structured details."""

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": dict(self.details)}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success value or :class:`EngineError`, never both."""

    value: T | None = None
    error: EngineError | None = None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **details: Any) -> Result[T]:
        return cls(error=EngineError(kind=kind, message=message, details=details))

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the exception matching the error kind."""
        if self.error is not None:
            raise error_to_exception(self.error)
        return self.value  # type: ignore[return-value]


class CrxInspectorError(Exception):
    """Base exception for all CRX Inspector errors."""

    def __init__(self, message: str, error: EngineError | None = None):
        super().__init__(message)
        self.error = error

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None


class ContainerParseError(CrxInspectorError):
    """Raised when the uploaded file is not a usable CRX container.

    This can indicate:
    - A truncated upload
    - A file that is not a CRX (wrong magic bytes)
    - An unsupported CRX format version
    - Header length fields that do not fit the file
    - A payload that does not start with a ZIP signature
    """

    pass


class ArchiveExtractionError(CrxInspectorError):
    """Raised when the embedded archive cannot be read.

    This typically indicates:
    - A corrupt ZIP central directory
    - A missing or unparseable manifest.json
    - A requested entry that does not exist
    - An archive exceeding the configured extraction limits
    """

    pass


class PatternError(CrxInspectorError):
    """Raised when a search or filter pattern does not compile."""

    pass


class DownloadError(CrxInspectorError):
    """Raised when a package cannot be fetched from the update service."""

    pass


class SessionNotFoundError(CrxInspectorError):
    """Raised when an inspection session is unknown or expired."""

    pass


_KIND_TO_EXCEPTION: dict[ErrorKind, type[CrxInspectorError]] = {
    ErrorKind.TOO_SMALL: ContainerParseError,
    ErrorKind.BAD_MAGIC: ContainerParseError,
    ErrorKind.UNSUPPORTED_VERSION: ContainerParseError,
    ErrorKind.INVALID_FIELD_LENGTH: ContainerParseError,
    ErrorKind.ARCHIVE_NOT_FOUND: ContainerParseError,
    ErrorKind.INVALID_ARCHIVE_SIGNATURE: ContainerParseError,
    ErrorKind.UNSAFE_PATH: ArchiveExtractionError,
    ErrorKind.ARCHIVE_ERROR: ArchiveExtractionError,
    ErrorKind.ENTRY_NOT_FOUND: ArchiveExtractionError,
    ErrorKind.INVALID_MANIFEST: ArchiveExtractionError,
    ErrorKind.LIMIT_EXCEEDED: ArchiveExtractionError,
    ErrorKind.PATTERN_ERROR: PatternError,
    ErrorKind.INVALID_EXTENSION_ID: DownloadError,
    ErrorKind.DOWNLOAD_FAILED: DownloadError,
}


def error_to_exception(error: EngineError) -> CrxInspectorError:
    """Build the exception that represents *error*."""
    exc_type = _KIND_TO_EXCEPTION.get(error.kind, CrxInspectorError)
    return exc_type(error.message, error)
