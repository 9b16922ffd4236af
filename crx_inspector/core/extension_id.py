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
Chrome extension identifiers.

An extension ID is 32 characters from ``a``-``p``: the first 16 bytes of the
SHA-256 of the extension's DER public key, with each hex digit ``0``-``f``
shifted to ``a``-``p``.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import re
from typing import Any

from .exceptions import ErrorKind, Result
from .models import ContainerHeader

logger = logging.getLogger(__name__)

_RAW_ID = re.compile(r"^[a-z]{32}$")

# Checked in order; the first capture group is the ID
_URL_PATTERNS = (
    # chromewebstore.google.com/detail/<slug>/<id>
    re.compile(r"^https?://chromewebstore\.google\.com/detail/[^/]+/([a-z]{32})(?:[/?#]|$)"),
    re.compile(r"^https?://chromewebstore\.google\.com/detail/([a-z]{32})(?:[/?#]|$)"),
    # Legacy chrome.google.com/webstore/detail/<slug>/<id>
    re.compile(r"^https?://chrome\.google\.com/webstore/detail/[^/]+/([a-z]{32})(?:[/?#]|$)"),
    re.compile(r"^https?://chrome\.google\.com/webstore/detail/([a-z]{32})(?:[/?#]|$)"),
    # Update service link
    re.compile(r"^https?://clients2\.google\.com/service/update2/crx\?(?:.*&)?id=([a-z]{32})(?:&|$)"),
)

_HEX_TO_ID = str.maketrans("0123456789abcdef", "abcdefghijklmnop")


def is_valid_extension_id(value: Any) -> bool:
    return isinstance(value, str) and _RAW_ID.match(value) is not None


def parse_extension_id(value: str) -> Result[str]:
    """
    Extract an extension ID from a raw ID or a Chrome Web Store / update service URL.

    Args:
        value: User input; surrounding whitespace is ignored and a bare ID
            is accepted in any case

    Returns:
        Result holding the lower-case ID, or ``INVALID_EXTENSION_ID``
    """
    if not isinstance(value, str) or not value.strip():
        return Result.failure(ErrorKind.INVALID_EXTENSION_ID, "Input must be a non-empty string")

    text = value.strip()
    if is_valid_extension_id(text.lower()):
        return Result.success(text.lower())

    for pattern in _URL_PATTERNS:
        m = pattern.match(text)
        if m:
            return Result.success(m.group(1))

    return Result.failure(
        ErrorKind.INVALID_EXTENSION_ID, f"Invalid extension ID or URL format: {text}", input=text
    )


def extension_id_from_public_key(public_key: bytes) -> str:
    """Derive the extension ID from a DER-encoded public key."""
    digest = hashlib.sha256(public_key).hexdigest()[:32]
    return digest.translate(_HEX_TO_ID)


def derive_extension_id(manifest: dict[str, Any] | None, header: ContainerHeader | None) -> str | None:
    """ID from the manifest ``key`` (base64 public key) or, failing that, the CRX2 header key."""
    key = (manifest or {}).get("key")
    if isinstance(key, str) and key.strip():
        try:
            return extension_id_from_public_key(base64.b64decode("".join(key.split()), validate=True))
        except (binascii.Error, ValueError) as e:
            logger.debug("Ignoring undecodable manifest key: %s", e)
    if header is not None and header.public_key:
        return extension_id_from_public_key(header.public_key)
    return None
