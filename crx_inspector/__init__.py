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
CRX Inspector - Browse, search and filter the contents of Chrome extension packages.
"""

try:
    from ._version import __version__
except ImportError:
    __version__ = "0.0.0+unknown"

__author__ = "Cisco Systems, Inc."


def __getattr__(name: str):
    """Lazy-load public API symbols on first access.

    Keeps ``import crx_inspector`` cheap: Magika, httpx and FastAPI are only
    imported when the symbols that need them are used.
    """
    _lazy_map = {
        "Config": (".config.config", "Config"),
        "CrxInspectorConstants": (".config.constants", "CrxInspectorConstants"),
        "CrxInspector": (".core.inspector", "CrxInspector"),
        "InspectedPackage": (".core.inspector", "InspectedPackage"),
        "ExtractionLimits": (".core.inspector", "ExtractionLimits"),
        "CrxDownloader": (".core.downloader", "CrxDownloader"),
        "parse_header": (".core.header_parser", "parse_header"),
        "open_container": (".core.header_parser", "open_container"),
        "build_tree": (".core.tree_builder", "build_tree"),
        "compile_pattern": (".core.search", "compile_pattern"),
        "search": (".core.search", "search"),
        "filter_tree": (".core.file_filter", "filter_tree"),
        "parse_extension_id": (".core.extension_id", "parse_extension_id"),
        "FileCategory": (".core.models", "FileCategory"),
        "FilterCriteria": (".core.models", "FilterCriteria"),
        "SearchMatch": (".core.models", "SearchMatch"),
        "Result": (".core.exceptions", "Result"),
        "ErrorKind": (".core.exceptions", "ErrorKind"),
        "CrxInspectorError": (".core.exceptions", "CrxInspectorError"),
    }
    if name in _lazy_map:
        module_path, attr = _lazy_map[name]
        import importlib

        mod = importlib.import_module(module_path, __package__)
        val = getattr(mod, attr)
        # Cache on the module so __getattr__ is only called once per symbol
        globals()[name] = val
        return val
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "CrxInspector",
    "InspectedPackage",
    "ExtractionLimits",
    "CrxDownloader",
    "parse_header",
    "open_container",
    "build_tree",
    "compile_pattern",
    "search",
    "filter_tree",
    "parse_extension_id",
    "FileCategory",
    "FilterCriteria",
    "SearchMatch",
    "Result",
    "ErrorKind",
    "CrxInspectorError",
    "Config",
    "CrxInspectorConstants",
]
