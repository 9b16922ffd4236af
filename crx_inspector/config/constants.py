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
Constants for CRX Inspector.
"""

try:
    from .._version import __version__ as PACKAGE_VERSION
except ImportError:  # pragma: no cover
    PACKAGE_VERSION = "0.0.0-dev"


class CrxInspectorConstants:
    """Constants used throughout the inspector."""

    # Version written by the hatch version build hook at install time.
    VERSION = PACKAGE_VERSION

    # CRX container format
    CRX_MAGIC = b"Cr24"
    CRX2_VERSION = 2
    CRX3_VERSION = 3
    MIN_HEADER_SIZE = 8
    CRX2_PREAMBLE_SIZE = 16
    CRX3_PREAMBLE_SIZE = 12
    CRX2_MAX_FIELD_LENGTH = 16 * 1024
    CRX3_MAX_HEADER_LENGTH = 1024 * 1024

    # ZIP payload
    ZIP_SIGNATURE = b"PK"
    MIN_ARCHIVE_SIZE = 4
    MANIFEST_FILE = "manifest.json"

    # Default values
    DEFAULT_MAX_UPLOAD_MB = 50
    DEFAULT_MAX_ENTRIES = 10_000
    DEFAULT_MAX_UNCOMPRESSED_MB = 500
    DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60
    DEFAULT_MAX_SESSIONS = 100
    DEFAULT_CONTEXT_LINES = 2
    DEFAULT_MAX_RESULTS = 100
    MAX_RESULTS_LIMIT = 1000
    DEFAULT_DOWNLOAD_TIMEOUT = 30

    # Chrome update service
    UPDATE_SERVICE_URL = "https://clients2.google.com/service/update2/crx"
    UPDATE_SERVICE_PRODVERSION = "119.0"
