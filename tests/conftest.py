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
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest before running tests.
All fixtures defined here are available to every test module without
explicit imports.
"""

from __future__ import annotations

import io
import json
import struct
import zipfile
from pathlib import Path

import pytest
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

project_root = Path(__file__).parent.parent
env_file = project_root / ".env"

if env_file.exists():
    load_dotenv(env_file)


# ---------------------------------------------------------------------------
# Container builders
# ---------------------------------------------------------------------------

SAMPLE_MANIFEST = {
    "manifest_version": 3,
    "name": "Sample Extension",
    "version": "1.2.3",
    "description": "Extension used by the test-suite",
    "permissions": ["storage", "tabs"],
    "host_permissions": ["https://*.example.com/*"],
}

SAMPLE_FILES: dict[str, str | bytes] = {
    "manifest.json": json.dumps(SAMPLE_MANIFEST),
    "background.js": "chrome.runtime.onInstalled.addListener(() => {\n  console.log('installed');\n});\n",
    "src/content.js": "// TODO: remove debug\nconst token = 'abc';\nconsole.log(token);\n",
    "src/util.ts": "export const add = (a: number, b: number) => a + b;\n",
    "styles/main.css": "body { color: red; }\n",
    "images/icon.png": b"\x89PNG\r\n\x1a\n" + b"\x00" * 64,
    "README.md": "# Sample\n\nTODO: write docs\n",
    "_locales/en/messages.json": json.dumps({"appName": {"message": "Localized Name"}}),
}


def build_zip(files: dict[str, str | bytes], directories: tuple[str, ...] = ()) -> bytes:
    """Build an in-memory ZIP; *directories* adds explicit directory records."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for directory in directories:
            zf.writestr(directory.rstrip("/") + "/", "")
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def corrupt_member(archive: bytes, name: str) -> bytes:
    """Overwrite the compressed body of *name* with 0xFF, leaving the directory intact.

    0xFF starts a DEFLATE block of the reserved type, so decompressing fails.
    """
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        info = zf.getinfo(name)
    data = bytearray(archive)
    # Local file header: 30 fixed bytes, then name and extra field
    name_len, extra_len = struct.unpack_from("<HH", data, info.header_offset + 26)
    start = info.header_offset + 30 + name_len + extra_len
    data[start : start + info.compress_size] = b"\xff" * info.compress_size
    return bytes(data)


def build_crx2(archive: bytes, public_key: bytes = b"K" * 32, signature: bytes = b"S" * 16) -> bytes:
    return (
        b"Cr24"
        + struct.pack("<III", 2, len(public_key), len(signature))
        + public_key
        + signature
        + archive
    )


def build_crx3(archive: bytes, header: bytes = b"\x0a\x04test") -> bytes:
    return b"Cr24" + struct.pack("<II", 3, len(header)) + header + archive


@pytest.fixture
def make_zip():
    """Factory fixture: ``make_zip({"a.js": "..."}, directories=("src",))`` -> ZIP bytes."""
    return build_zip


@pytest.fixture
def make_crx():
    """Factory fixture for CRX containers.

    Usage::

        data = make_crx({"manifest.json": "{}"}, version=2)
    """

    def _make(files: dict[str, str | bytes] | None = None, version: int = 3, **kwargs) -> bytes:
        archive = build_zip(SAMPLE_FILES if files is None else files)
        if version == 2:
            return build_crx2(archive, **kwargs)
        return build_crx3(archive, **kwargs)

    return _make


@pytest.fixture
def sample_zip() -> bytes:
    return build_zip(SAMPLE_FILES)


@pytest.fixture
def sample_crx3(sample_zip) -> bytes:
    return build_crx3(sample_zip)


@pytest.fixture
def sample_crx2(sample_zip) -> bytes:
    return build_crx2(sample_zip)


@pytest.fixture
def damage_member():
    """Factory fixture: ``damage_member(zip_bytes, "a.js")`` -> ZIP with a.js undecompressable."""
    return corrupt_member


@pytest.fixture
def corrupt_crx3(sample_zip) -> bytes:
    """The sample package with the DEFLATE body of src/content.js destroyed."""
    return build_crx3(corrupt_member(sample_zip, "src/content.js"))


@pytest.fixture
def sample_crx_file(tmp_path, sample_crx3) -> Path:
    path = tmp_path / "sample.crx"
    path.write_bytes(sample_crx3)
    return path
