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
Configuration class for CRX Inspector.

Values left at their defaults are overridden from ``CRX_INSPECTOR_*``
environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .constants import CrxInspectorConstants

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer value for %s: %r", name, raw)
        return None


@dataclass
class Config:
    """
    Configuration for CRX Inspector.
    """

    # Upload / extraction limits
    max_upload_bytes: int = CrxInspectorConstants.DEFAULT_MAX_UPLOAD_MB * _MB
    max_entries: int = CrxInspectorConstants.DEFAULT_MAX_ENTRIES
    max_uncompressed_bytes: int = CrxInspectorConstants.DEFAULT_MAX_UNCOMPRESSED_MB * _MB

    # Sessions
    session_ttl_seconds: int = CrxInspectorConstants.DEFAULT_SESSION_TTL_SECONDS
    max_sessions: int = CrxInspectorConstants.DEFAULT_MAX_SESSIONS

    # Search
    default_context_lines: int = CrxInspectorConstants.DEFAULT_CONTEXT_LINES
    default_max_results: int = CrxInspectorConstants.DEFAULT_MAX_RESULTS
    max_results_limit: int = CrxInspectorConstants.MAX_RESULTS_LIMIT

    # Download
    download_timeout_seconds: int = CrxInspectorConstants.DEFAULT_DOWNLOAD_TIMEOUT
    update_service_url: str = CrxInspectorConstants.UPDATE_SERVICE_URL

    # Logging
    log_level: str = "WARNING"

    def __post_init__(self):
        """Load configuration from environment variables if not provided."""
        defaults = Config.__dataclass_fields__

        int_settings = {
            "max_upload_bytes": "CRX_INSPECTOR_MAX_UPLOAD_BYTES",
            "max_entries": "CRX_INSPECTOR_MAX_ENTRIES",
            "max_uncompressed_bytes": "CRX_INSPECTOR_MAX_UNCOMPRESSED_BYTES",
            "session_ttl_seconds": "CRX_INSPECTOR_SESSION_TTL",
            "max_sessions": "CRX_INSPECTOR_MAX_SESSIONS",
            "default_context_lines": "CRX_INSPECTOR_CONTEXT_LINES",
            "default_max_results": "CRX_INSPECTOR_MAX_RESULTS",
            "download_timeout_seconds": "CRX_INSPECTOR_DOWNLOAD_TIMEOUT",
        }
        for attr, env_name in int_settings.items():
            # Explicit constructor arguments win over the environment
            if getattr(self, attr) != defaults[attr].default:
                continue
            if (value := _env_int(env_name)) is not None:
                setattr(self, attr, value)

        if self.update_service_url == CrxInspectorConstants.UPDATE_SERVICE_URL:
            if env_url := os.getenv("CRX_INSPECTOR_UPDATE_URL"):
                self.update_service_url = env_url

        if self.log_level == "WARNING":
            if env_level := os.getenv("CRX_INSPECTOR_LOG_LEVEL"):
                self.log_level = env_level.upper()

        self.default_max_results = min(self.default_max_results, self.max_results_limit)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create configuration from environment variables.

        Returns:
            Config instance with values from environment
        """
        return cls()

    @classmethod
    def from_file(cls, config_file: Path) -> "Config":
        """
        Load configuration from a .env file.

        Args:
            config_file: Path to .env file

        Returns:
            Config instance
        """
        if config_file.exists():
            load_dotenv(config_file, override=True)

        return cls.from_env()

    @classmethod
    def from_yaml(cls, config_file: Path) -> "Config":
        """
        Load configuration from a YAML mapping of field names to values.

        Unknown keys are ignored with a warning.
        """
        with open(config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping")

        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key in known:
                kwargs[key] = value
            else:
                logger.warning("Unknown config key in %s: %s", config_file, key)
        return cls(**kwargs)
