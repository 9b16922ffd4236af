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
Download CRX packages from the Chrome update service.

The update service answers either with the package itself (after
redirects) or with an ``gupdate`` XML document whose ``updatecheck``
element carries the package URL in its ``codebase`` attribute. Both are
handled.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from urllib.parse import quote

import httpx

from ..config.constants import CrxInspectorConstants
from .exceptions import ErrorKind, Result
from .extension_id import is_valid_extension_id, parse_extension_id

logger = logging.getLogger(__name__)


class CrxDownloader:
    """Fetch a CRX container by extension ID or store URL."""

    def __init__(
        self,
        timeout: float = CrxInspectorConstants.DEFAULT_DOWNLOAD_TIMEOUT,
        max_bytes: int = CrxInspectorConstants.DEFAULT_MAX_UPLOAD_MB * 1024 * 1024,
        update_service_url: str = CrxInspectorConstants.UPDATE_SERVICE_URL,
        client: httpx.Client | None = None,
    ):
        """
        Initialize the downloader.

        Args:
            timeout: Per-request timeout in seconds
            max_bytes: Largest package accepted; bigger downloads are aborted
            update_service_url: Base URL of the update service
            client: Optional preconfigured ``httpx.Client`` (mainly for tests)
        """
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.update_service_url = update_service_url
        self.client = client or httpx.Client(follow_redirects=True, timeout=timeout)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> CrxDownloader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def build_update_url(self, extension_id: str) -> str:
        if not is_valid_extension_id(extension_id):
            raise ValueError(f"Invalid extension ID: {extension_id}")
        x = quote(f"id={extension_id}&installsource=ondemand&uc", safe="")
        return (
            f"{self.update_service_url}?os=linux&arch=x86-64&os_arch=x86_64"
            f"&acceptformat=crx2,crx3&prodversion={CrxInspectorConstants.UPDATE_SERVICE_PRODVERSION}"
            f"&x={x}"
        )

    def download(self, value: str) -> Result[bytes]:
        """
        Download the package for an extension ID or store URL.

        Returns:
            Result holding the raw container bytes, ``INVALID_EXTENSION_ID``
            for unusable input, or ``DOWNLOAD_FAILED``
        """
        parsed = parse_extension_id(value)
        if not parsed.ok:
            return Result(error=parsed.error)
        extension_id = parsed.value

        logger.info("Requesting update metadata for %s", extension_id)
        first = self._fetch(self.build_update_url(extension_id), extension_id)
        if not first.ok:
            return first

        body = first.value
        if body.startswith(CrxInspectorConstants.CRX_MAGIC):
            return first

        codebase = extract_codebase(body)
        if codebase is None:
            return Result.failure(
                ErrorKind.DOWNLOAD_FAILED,
                "Could not find download URL in update metadata",
                extension_id=extension_id,
            )

        logger.info("Downloading package for %s from %s", extension_id, codebase)
        return self._fetch(codebase, extension_id)

    def _fetch(self, url: str, extension_id: str) -> Result[bytes]:
        try:
            with self.client.stream("GET", url, timeout=self.timeout) as response:
                if response.status_code != 200:
                    logger.warning("Update service returned status %d for %s", response.status_code, extension_id)
                    return Result.failure(
                        ErrorKind.DOWNLOAD_FAILED,
                        f"Failed to download extension: HTTP {response.status_code}",
                        extension_id=extension_id,
                        status_code=response.status_code,
                    )

                chunks: list[bytes] = []
                received = 0
                for chunk in response.iter_bytes():
                    received += len(chunk)
                    if received > self.max_bytes:
                        return Result.failure(
                            ErrorKind.DOWNLOAD_FAILED,
                            f"Download exceeds maximum size of {self.max_bytes} bytes",
                            extension_id=extension_id,
                            max_bytes=self.max_bytes,
                        )
                    chunks.append(chunk)
        except httpx.HTTPError as e:
            logger.warning("Download request failed for %s: %s", extension_id, e)
            return Result.failure(
                ErrorKind.DOWNLOAD_FAILED, f"Network error downloading extension: {e}", extension_id=extension_id
            )

        data = b"".join(chunks)
        if not data:
            return Result.failure(ErrorKind.DOWNLOAD_FAILED, "Downloaded file is empty", extension_id=extension_id)
        return Result.success(data)


def extract_codebase(xml_body: bytes) -> str | None:
    """Return the ``codebase`` attribute of the first ``updatecheck`` element, if any."""
    try:
        root = ET.fromstring(xml_body)
    except ET.ParseError as e:
        logger.debug("Update metadata is not XML: %s", e)
        return None
    for element in root.iter():
        # Tags are namespaced, e.g. "{http://www.google.com/update2/response}updatecheck"
        if element.tag.rsplit("}", 1)[-1] == "updatecheck":
            codebase = element.get("codebase")
            if codebase:
                return codebase
    return None
