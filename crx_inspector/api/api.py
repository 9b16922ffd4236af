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

"""FastAPI application serving CRX package inspection sessions.

A client uploads a ``.crx`` file (or names an extension for the server to
fetch from the Chrome update service) and receives a session id. Every
other endpoint under ``/api/v1/extensions/{session_id}`` reads from that
session: metadata, ``manifest.json``, the file tree, raw files, the embedded
ZIP, content search and file filtering.
"""

from fastapi import FastAPI

from .. import __version__ as PACKAGE_VERSION
from .router import router as api_router

API_PREFIX = "/api/v1"

_DESCRIPTION = """
Inspect Chrome extension packages (CRX2 and CRX3) without installing them.

1. `POST /api/v1/extensions/upload` or `POST /api/v1/extensions/download` opens a session.
2. Browse with `/files`, read single files with `/files/{path}`, and fetch `manifest.json`.
3. Search file contents with `/search` and select files by name, category or size with `/filter`.

Sessions are held in memory and expire after the configured TTL.
"""

app = FastAPI(
    title="CRX Inspector API",
    description=_DESCRIPTION,
    version=PACKAGE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(api_router, prefix=API_PREFIX)
