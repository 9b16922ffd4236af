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
Tests for file categories, MIME lookup and content sniffing (Magika-powered + legacy fallback).
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from crx_inspector.core import file_magic
from crx_inspector.core.file_magic import (
    DEFAULT_MIME_TYPE,
    MagicMatch,
    categorize,
    detect_content_type,
    get_extension,
    guess_mime_type,
    is_text_path,
    resolve_mime_type,
)
from crx_inspector.core.models import FileCategory

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _magika_result(group="code", label="javascript", score=0.99, mime="application/javascript", ok=True):
    output = SimpleNamespace(group=group, label=label, description=f"{label} source", mime_type=mime)
    return SimpleNamespace(ok=ok, output=output, score=score)


def _fake_magika(result):
    magika = MagicMock()
    magika.identify_bytes.return_value = result
    return magika


# ── Categories ──────────────────────────────────────────────────────────


class TestCategorize:
    @pytest.mark.parametrize(
        "name,category",
        [
            ("background.js", FileCategory.CODE),
            ("popup.HTML", FileCategory.CODE),
            ("styles/main.css", FileCategory.CODE),
            ("module.wasm", FileCategory.CODE),
            ("manifest.json", FileCategory.CONFIG),
            (".eslintrc", FileCategory.CONFIG),
            (".npmrc", FileCategory.CONFIG),
            ("src", FileCategory.OTHER),
            ("arc", FileCategory.OTHER),
            ("rc", FileCategory.OTHER),
            ("webpack.config.js", FileCategory.CODE),
            ("Dockerfile", FileCategory.CONFIG),
            (".env.local", FileCategory.CONFIG),
            ("settings.yaml", FileCategory.CONFIG),
            ("README", FileCategory.DOCUMENTATION),
            ("LICENSE.txt", FileCategory.DOCUMENTATION),
            ("notes.md", FileCategory.DOCUMENTATION),
            ("icon.png", FileCategory.ASSET),
            ("font.woff2", FileCategory.ASSET),
            ("bundle.zip", FileCategory.RESOURCE),
            ("nested.crx", FileCategory.RESOURCE),
            ("data.bin", FileCategory.OTHER),
            ("noextension", FileCategory.OTHER),
        ],
    )
    def test_categories(self, name, category):
        assert categorize(name) == category

    def test_only_final_segment_counts(self):
        assert categorize("docs.md/script.js") == FileCategory.CODE

    def test_get_extension(self):
        assert get_extension("a/b/c.TAR.GZ") == "gz"
        assert get_extension("Makefile") == ""
        assert get_extension("dir.d/file") == ""


# ── MIME types ──────────────────────────────────────────────────────────


class TestMimeTypes:
    def test_known_extensions(self):
        assert guess_mime_type("app.js") == "application/javascript"
        assert guess_mime_type("icon.PNG") == "image/png"
        assert guess_mime_type("manifest.json") == "application/json"

    def test_unknown_extension(self):
        assert guess_mime_type("blob.xyz") == DEFAULT_MIME_TYPE

    @pytest.mark.parametrize("name", ["a.js", "b.ts", "c.json", "d.html", "e.css", "README", "f.svg", "g.txt"])
    def test_text_paths(self, name):
        assert is_text_path(name)

    @pytest.mark.parametrize("name", ["a.png", "b.woff2", "c.zip", "d.wasm", "unknown.bin"])
    def test_binary_paths(self, name):
        assert not is_text_path(name)

    def test_resolve_prefers_extension(self):
        with patch.object(file_magic, "_get_magika") as get_magika:
            assert resolve_mime_type("a.css", PNG_BYTES) == "text/css"
            get_magika.assert_not_called()

    def test_resolve_sniffs_unknown_extension(self):
        with patch.object(file_magic, "_get_magika", return_value=_fake_magika(_magika_result(ok=False))):
            assert resolve_mime_type("icon", PNG_BYTES) == "image/png"


# ── Content sniffing ────────────────────────────────────────────────────


class TestDetectContentType:
    def test_empty(self):
        assert detect_content_type(b"") is None

    def test_confident_magika_result_wins(self):
        with patch.object(file_magic, "_get_magika", return_value=_fake_magika(_magika_result())):
            match = detect_content_type(b"console.log(1)")
        assert match == MagicMatch("code/javascript", "code", "javascript source", 0.99, "application/javascript")

    def test_low_confidence_falls_back_to_signatures(self):
        weak = _magika_result(group="text", label="txt", score=0.3, mime="text/plain")
        with patch.object(file_magic, "_get_magika", return_value=_fake_magika(weak)):
            match = detect_content_type(PNG_BYTES)
        assert match.content_type == "image/png"
        assert match.score == 1.0

    def test_low_confidence_kept_without_signature(self):
        weak = _magika_result(group="text", label="txt", score=0.3, mime="text/plain")
        with patch.object(file_magic, "_get_magika", return_value=_fake_magika(weak)):
            match = detect_content_type(b"plain words")
        assert match.content_type == "text/txt"

    def test_magika_failure_uses_signatures(self):
        broken = MagicMock()
        broken.identify_bytes.side_effect = RuntimeError("model missing")
        with patch.object(file_magic, "_get_magika", return_value=broken):
            assert detect_content_type(b"Cr24\x03\x00\x00\x00").content_type == "archive/crx"

    def test_unknown_group_is_ignored(self):
        unknown = _magika_result(group="unknown", label="unknown")
        with patch.object(file_magic, "_get_magika", return_value=_fake_magika(unknown)):
            assert detect_content_type(b"\x01\x02\x03") is None

    @pytest.mark.parametrize(
        "data,content_type",
        [
            (b"PK\x03\x04rest", "archive/zip"),
            (b"\x1f\x8b\x08", "archive/gzip"),
            (b"GIF89a....", "image/gif"),
            (b"wOF2....", "font/woff2"),
            (b"\x00asm\x01\x00\x00\x00", "executable/wasm"),
            (b"%PDF-1.7", "document/pdf"),
        ],
    )
    def test_legacy_signatures(self, data, content_type):
        assert file_magic._match_magic_bytes(data).content_type == content_type
