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
CRX container header parsing.

Layouts (all integers little-endian u32):

    CRX2: "Cr24" | version=2 | public key length | signature length
          | public key | signature | ZIP
    CRX3: "Cr24" | version=3 | header length | protobuf header | ZIP

Every failure is returned as a :class:`Result` error; nothing here raises
for malformed input.
"""

from __future__ import annotations

import struct

from ..config.constants import CrxInspectorConstants as C
from .exceptions import ErrorKind, Result
from .models import ContainerHeader

_U32 = struct.Struct("<I")


def _read_u32(data: bytes | memoryview, offset: int) -> int:
    return _U32.unpack_from(data, offset)[0]


def parse_header(data: bytes | bytearray | memoryview) -> Result[ContainerHeader]:
    """Validate a CRX header and locate the embedded archive.

    Args:
        data: Raw container bytes

    Returns:
        Result holding a :class:`ContainerHeader` or the first validation error
    """
    size = len(data)
    if size < C.MIN_HEADER_SIZE:
        return Result.failure(
            ErrorKind.TOO_SMALL,
            f"Buffer too small: minimum {C.MIN_HEADER_SIZE} bytes required",
            size=size,
            required=C.MIN_HEADER_SIZE,
        )

    if bytes(data[0:4]) != C.CRX_MAGIC:
        return Result.failure(ErrorKind.BAD_MAGIC, 'Invalid magic number: expected "Cr24"')

    version = _read_u32(data, 4)
    if version == C.CRX2_VERSION:
        return _parse_crx2(data)
    if version == C.CRX3_VERSION:
        return _parse_crx3(data)
    return Result.failure(ErrorKind.UNSUPPORTED_VERSION, f"Unsupported CRX version: {version}", version=version)


def _parse_crx2(data: bytes | bytearray | memoryview) -> Result[ContainerHeader]:
    size = len(data)
    if size < C.CRX2_PREAMBLE_SIZE:
        return Result.failure(
            ErrorKind.TOO_SMALL,
            f"CRX2: buffer too small, minimum {C.CRX2_PREAMBLE_SIZE} bytes required",
            size=size,
            required=C.CRX2_PREAMBLE_SIZE,
        )

    public_key_length = _read_u32(data, 8)
    signature_length = _read_u32(data, 12)

    for field_name, value in (("public_key_length", public_key_length), ("signature_length", signature_length)):
        if value == 0 or value > C.CRX2_MAX_FIELD_LENGTH:
            return Result.failure(
                ErrorKind.INVALID_FIELD_LENGTH,
                f"CRX2: invalid {field_name.replace('_', ' ')}: {value}",
                field=field_name,
                value=value,
                maximum=C.CRX2_MAX_FIELD_LENGTH,
            )

    archive_offset = C.CRX2_PREAMBLE_SIZE + public_key_length + signature_length
    if archive_offset >= size:
        return Result.failure(
            ErrorKind.ARCHIVE_NOT_FOUND,
            "CRX2: invalid lengths, ZIP data not found",
            archive_offset=archive_offset,
            size=size,
        )

    public_key = bytes(data[C.CRX2_PREAMBLE_SIZE : C.CRX2_PREAMBLE_SIZE + public_key_length])
    return Result.success(
        ContainerHeader(version=C.CRX2_VERSION, archive_offset=archive_offset, public_key=public_key)
    )


def _parse_crx3(data: bytes | bytearray | memoryview) -> Result[ContainerHeader]:
    size = len(data)
    if size < C.CRX3_PREAMBLE_SIZE:
        return Result.failure(
            ErrorKind.TOO_SMALL,
            f"CRX3: buffer too small, minimum {C.CRX3_PREAMBLE_SIZE} bytes required",
            size=size,
            required=C.CRX3_PREAMBLE_SIZE,
        )

    header_length = _read_u32(data, 8)
    if header_length == 0 or header_length > C.CRX3_MAX_HEADER_LENGTH:
        return Result.failure(
            ErrorKind.INVALID_FIELD_LENGTH,
            f"CRX3: invalid header length: {header_length}",
            field="header_length",
            value=header_length,
            maximum=C.CRX3_MAX_HEADER_LENGTH,
        )

    archive_offset = C.CRX3_PREAMBLE_SIZE + header_length
    if archive_offset >= size:
        return Result.failure(
            ErrorKind.ARCHIVE_NOT_FOUND,
            "CRX3: invalid header length, ZIP data not found",
            archive_offset=archive_offset,
            size=size,
        )

    return Result.success(ContainerHeader(version=C.CRX3_VERSION, archive_offset=archive_offset))


def extract_archive_bytes(data: bytes | bytearray | memoryview, header: ContainerHeader) -> Result[memoryview]:
    """Return a zero-copy view of the archive embedded at ``header.archive_offset``.

    Only the ZIP signature is checked here; entry parsing belongs to the
    archive extractor.
    """
    archive = memoryview(data)[header.archive_offset :]
    if len(archive) < C.MIN_ARCHIVE_SIZE or bytes(archive[0:2]) != C.ZIP_SIGNATURE:
        return Result.failure(
            ErrorKind.INVALID_ARCHIVE_SIGNATURE,
            "Invalid ZIP data in CRX file",
            archive_offset=header.archive_offset,
            archive_size=len(archive),
        )
    return Result.success(archive)


def open_container(data: bytes | bytearray | memoryview) -> Result[memoryview]:
    """Parse the header and slice out the archive in one step."""
    header_result = parse_header(data)
    if not header_result.ok:
        return Result(error=header_result.error)
    return extract_archive_bytes(data, header_result.value)
