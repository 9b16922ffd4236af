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

"""End-to-end tests for the inspector service."""

import base64
import hashlib
import json

import pytest

from crx_inspector.config.config import Config
from crx_inspector.core.exceptions import ArchiveExtractionError, ContainerParseError, ErrorKind, PatternError
from crx_inspector.core.extension_id import extension_id_from_public_key
from crx_inspector.core.inspector import CrxInspector, ExtractionLimits
from crx_inspector.core.models import FileCategory, FilterCriteria


@pytest.fixture
def inspector():
    return CrxInspector(Config(max_upload_bytes=10 * 1024 * 1024, max_entries=100, max_uncompressed_bytes=1024 * 1024))


class TestOpen:
    def test_crx3_metadata(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3, filename="sample.crx")

        assert package.header.version == 3
        assert package.name == "Sample Extension"
        assert package.version == "1.2.3"
        assert package.manifest_version == 3
        assert package.permissions == ["storage", "tabs"]
        assert package.host_permissions == ["https://*.example.com/*"]
        assert package.size == len(sample_crx3)
        assert package.sha256 == hashlib.sha256(sample_crx3).hexdigest()
        assert package.extension_id is None
        assert package.skipped_entries == []

    def test_crx2_extension_id_from_header(self, inspector, sample_crx2):
        package = inspector.open(sample_crx2)
        assert package.header.version == 2
        assert package.extension_id == extension_id_from_public_key(b"K" * 32)

    def test_extension_id_from_manifest_key(self, inspector, make_crx):
        manifest = {"name": "Keyed", "version": "1", "key": base64.b64encode(b"my-key").decode()}
        package = inspector.open(make_crx({"manifest.json": json.dumps(manifest)}))
        assert package.extension_id == extension_id_from_public_key(b"my-key")

    def test_localized_name(self, inspector, make_crx):
        files = {
            "manifest.json": json.dumps({"name": "__MSG_appName__", "version": "1", "default_locale": "en"}),
            "_locales/en/messages.json": json.dumps({"APPNAME": {"message": "Hello App"}}),
        }
        assert inspector.open(make_crx(files)).name == "Hello App"

    def test_unresolved_message_kept(self, inspector, make_crx):
        files = {"manifest.json": json.dumps({"name": "__MSG_missing__", "version": "1"})}
        assert inspector.open(make_crx(files)).name == "__MSG_missing__"

    def test_mv2_host_permissions(self, inspector, make_crx):
        manifest = {"manifest_version": 2, "name": "x", "version": "1", "permissions": ["tabs", "<all_urls>"]}
        package = inspector.open(make_crx({"manifest.json": json.dumps(manifest)}))
        assert package.host_permissions == ["<all_urls>"]

    def test_to_dict(self, inspector, sample_crx3):
        data = inspector.open(sample_crx3).to_dict()
        assert data["name"] == "Sample Extension"
        assert data["crx_version"] == 3
        assert data["file_count"] == 8

    def test_unsafe_entries_reported(self, inspector, make_crx):
        package = inspector.open(make_crx({"manifest.json": "{}", "../evil.js": "x"}))
        assert len(package.skipped_entries) == 1
        assert [n.path for n in package.tree.children] == ["manifest.json"]

    def test_open_file(self, inspector, sample_crx_file):
        package = inspector.open_file(sample_crx_file)
        assert package.filename == "sample.crx"


class TestOpenFailures:
    def test_not_a_crx(self, inspector, sample_zip):
        with pytest.raises(ContainerParseError) as exc_info:
            inspector.open(sample_zip)
        assert exc_info.value.kind == ErrorKind.BAD_MAGIC

    def test_missing_manifest(self, inspector, make_crx):
        with pytest.raises(ArchiveExtractionError) as exc_info:
            inspector.open(make_crx({"a.js": "1"}))
        assert exc_info.value.kind == ErrorKind.ENTRY_NOT_FOUND

    def test_container_size_limit(self, sample_crx3):
        limits = ExtractionLimits(max_container_bytes=10, max_entries=100, max_uncompressed_bytes=10**6)
        with pytest.raises(ArchiveExtractionError) as exc_info:
            CrxInspector(limits=limits).open(sample_crx3)
        assert exc_info.value.kind == ErrorKind.LIMIT_EXCEEDED

    def test_entry_count_limit(self, sample_crx3):
        limits = ExtractionLimits(max_container_bytes=10**6, max_entries=2, max_uncompressed_bytes=10**6)
        with pytest.raises(ArchiveExtractionError) as exc_info:
            CrxInspector(limits=limits).open(sample_crx3)
        assert exc_info.value.error.details["limit"] == "max_entries"

    def test_uncompressed_size_limit(self, make_crx):
        limits = ExtractionLimits(max_container_bytes=10**6, max_entries=100, max_uncompressed_bytes=1000)
        data = make_crx({"manifest.json": "{}", "big.txt": "a" * 5000})
        with pytest.raises(ArchiveExtractionError) as exc_info:
            CrxInspector(limits=limits).open(data)
        assert exc_info.value.error.details["limit"] == "max_uncompressed_bytes"


class TestOperations:
    def test_read_file(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        assert inspector.read_file(package, "src/util.ts").startswith(b"export const add")
        assert inspector.read_file(package, "/src/util.ts").startswith(b"export const add")
        assert inspector.read_text(package, "README.md").startswith("# Sample")

    def test_read_missing_file(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        with pytest.raises(ArchiveExtractionError) as exc_info:
            inspector.read_file(package, "nope.js")
        assert exc_info.value.kind == ErrorKind.ENTRY_NOT_FOUND

    def test_read_directory_or_skipped_entry(self, inspector, make_crx):
        package = inspector.open(make_crx({"manifest.json": "{}", "js//app.js": "x", "src/a.js": "1"}))
        for path in ("src", "js/app.js", "js//app.js"):
            with pytest.raises(ArchiveExtractionError) as exc_info:
                inspector.read_file(package, path)
            assert exc_info.value.kind == ErrorKind.ENTRY_NOT_FOUND
        assert [n.path for n in package.tree.children] == ["src", "manifest.json"]

    def test_read_corrupt_member(self, inspector, corrupt_crx3):
        package = inspector.open(corrupt_crx3)
        with pytest.raises(ArchiveExtractionError) as exc_info:
            inspector.read_file(package, "src/content.js")
        assert exc_info.value.kind == ErrorKind.ARCHIVE_ERROR

    def test_search_skips_corrupt_member(self, inspector, corrupt_crx3):
        package = inspector.open(corrupt_crx3)
        report = inspector.search(package, "todo")
        assert [r.file_path for r in report.results] == ["README.md"]

    def test_search_text_files(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        report = inspector.search(package, "todo")
        assert sorted(r.file_path for r in report.results) == ["README.md", "src/content.js"]

    def test_search_skips_binary_files(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        report = inspector.search(package, "PNG")
        assert all(r.file_path != "images/icon.png" for r in report.results)

    def test_search_with_file_pattern(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        report = inspector.search(package, "console", file_pattern="*.js")
        assert sorted(r.file_path for r in report.results) == ["background.js", "src/content.js"]
        report = inspector.search(package, "console", file_pattern="src/*")
        assert [r.file_path for r in report.results] == ["src/content.js"]

    def test_search_max_results(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        report = inspector.search(package, "o", max_results=2)
        assert report.total_matches == 2
        assert report.truncated

    def test_search_empty_query(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        assert inspector.search(package, "").results == []

    def test_search_bad_regex(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        with pytest.raises(PatternError):
            inspector.search(package, "(", use_regex=True)

    def test_filter(self, inspector, sample_crx3):
        package = inspector.open(sample_crx3)
        nodes = inspector.filter(package, FilterCriteria(categories={FileCategory.ASSET}))
        assert [n.path for n in nodes] == ["images/icon.png"]

        tree = inspector.filter_tree(package, FilterCriteria(name_pattern="*.ts"))
        assert [c.name for c in tree.children] == ["src"]

    def test_export_zip(self, inspector, sample_crx3, sample_zip):
        package = inspector.open(sample_crx3)
        assert inspector.export_zip(package) == sample_zip
