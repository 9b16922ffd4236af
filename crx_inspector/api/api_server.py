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
Uvicorn launcher for the inspection API, used by ``crx-inspector serve``.

The application object itself is built in :mod:`crx_inspector.api.api`;
sessions only live as long as this process, so ``reload`` (which restarts
the worker on code changes) drops every open session.
"""

import logging

logger = logging.getLogger("crx_inspector.api")

APP_IMPORT_PATH = "crx_inspector.api.api:app"


def run_server(host: str = "localhost", port: int = 8000, reload: bool = False, log_level: str = "info") -> None:
    """Serve the inspection API until interrupted.

    Args:
        host: Interface to bind; use ``0.0.0.0`` to accept remote clients.
        port: TCP port to listen on.
        reload: Restart on source changes (development only; clears sessions).
        log_level: Uvicorn log level, lower-case (``"debug"``, ``"info"``, ...).
    """
    import uvicorn

    logger.info("Serving CRX Inspector API on http://%s:%d/api/v1 (docs at /docs)", host, port)
    uvicorn.run(APP_IMPORT_PATH, host=host, port=port, reload=reload, log_level=log_level)


if __name__ == "__main__":
    run_server()
