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

"""In-memory inspection sessions with bounded LRU eviction and TTL.

In production, use Redis or a database instead.
"""

import logging
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable

from ..config.constants import CrxInspectorConstants
from ..core.exceptions import SessionNotFoundError
from ..core.inspector import InspectedPackage

logger = logging.getLogger("crx_inspector.api")


class SessionStore(OrderedDict[str, tuple[float, InspectedPackage]]):
    """OrderedDict of session id -> (stored_at, package) with max-size eviction and per-entry TTL."""

    def __init__(
        self,
        max_entries: int = CrxInspectorConstants.DEFAULT_MAX_SESSIONS,
        ttl_seconds: float = CrxInspectorConstants.DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def create(self, package: InspectedPackage) -> str:
        session_id = str(uuid.uuid4())
        self.set(session_id, package)
        return session_id

    def set(self, key: str, package: InspectedPackage) -> None:
        self[key] = (self._clock(), package)
        self.move_to_end(key)
        # Evict oldest entries beyond max size
        while len(self) > self.max_entries:
            evicted, _ = self.popitem(last=False)
            logger.info("Evicted session %s", evicted)

    def get_valid(self, key: str) -> InspectedPackage | None:
        entry = self.get(key)
        if entry is None:
            return None
        stored_at, package = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self[key]
            logger.info("Session %s expired", key)
            return None
        self.move_to_end(key)
        return package

    def require(self, key: str) -> InspectedPackage:
        package = self.get_valid(key)
        if package is None:
            raise SessionNotFoundError(f"Session not found or expired: {key}")
        return package

    def discard(self, key: str) -> bool:
        return self.pop(key, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (stored_at, _) in self.items() if now - stored_at > self.ttl_seconds]
        for key in expired:
            del self[key]
        return len(expired)
