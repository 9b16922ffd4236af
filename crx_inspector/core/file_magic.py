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
File classification for extension packages.

Three concerns live here:

* :func:`categorize` - a pure, name-based :class:`FileCategory` used by the
  file tree and the filter engine.
* :func:`guess_mime_type` / :func:`is_text_path` - extension-based MIME
  lookup used when serving raw files and choosing what to search.
* :func:`detect_content_type` - content sniffing with Google Magika, with a
  fallback to classic magic byte signatures for low-confidence results.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple

from .models import FileCategory

logger = logging.getLogger(__name__)


class MagicMatch(NamedTuple):
    """Result of a content type detection."""

    content_type: str  # e.g., "image/png", "archive/zip", "code/javascript"
    content_family: str  # e.g., "image", "archive", "code", "text"
    description: str  # e.g., "PNG image"
    score: float = 1.0  # confidence score (0.0-1.0), 1.0 for legacy fallback
    mime_type: str = ""


# ---------------------------------------------------------------------------
# Name-based categories
# ---------------------------------------------------------------------------

_CODE_EXTENSIONS = frozenset(
    {
        "js",
        "jsx",
        "ts",
        "tsx",
        "mjs",
        "cjs",
        "py",
        "rb",
        "java",
        "go",
        "rs",
        "c",
        "cpp",
        "h",
        "hpp",
        "swift",
        "kt",
        "sh",
        "bash",
        "sql",
        "css",
        "scss",
        "sass",
        "less",
        "html",
        "htm",
        "vue",
        "wasm",
    }
)

_CONFIG_EXTENSIONS = frozenset({"json", "yml", "yaml", "toml", "conf", "cfg", "ini", "properties"})

_CONFIG_NAME_PATTERNS = (
    re.compile(r"^\..+rc(\.json|\.js)?$"),
    re.compile(r"^.*\.config\.(js|ts|json)$"),
    re.compile(r"^(Dockerfile|Makefile|\.env.*)$"),
)

_DOCUMENTATION_NAME_PATTERNS = (
    re.compile(r"^README(\.[A-Za-z]+)?$", re.IGNORECASE),
    re.compile(r"^CHANGELOG(\.[A-Za-z]+)?$", re.IGNORECASE),
    re.compile(r"^LICEN[CS]E(\.[A-Za-z]+)?$", re.IGNORECASE),
    re.compile(r"^CONTRIBUTING(\.[A-Za-z]+)?$", re.IGNORECASE),
)

_DOCUMENTATION_EXTENSIONS = frozenset({"md", "markdown", "txt", "rst"})

_IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "bmp", "tiff", "tif", "avif"})
_FONT_EXTENSIONS = frozenset({"woff", "woff2", "ttf", "otf", "eot"})
_ARCHIVE_EXTENSIONS = frozenset({"zip", "rar", "7z", "tar", "gz", "bz2", "xz", "crx", "xpi"})


def get_extension(name: str) -> str:
    """Lower-cased text after the last dot of *name*, or ``""`` when there is none."""
    base = name.rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def categorize(name: str) -> FileCategory:
    """Classify a file by its final path segment.

    Rules are checked in order: source code, configuration, documentation,
    images and fonts, archives. Anything else is ``OTHER``.
    """
    base = name.rsplit("/", 1)[-1]
    ext = get_extension(base)

    if ext in _CODE_EXTENSIONS:
        return FileCategory.CODE
    if ext in _CONFIG_EXTENSIONS or any(p.match(base) for p in _CONFIG_NAME_PATTERNS):
        return FileCategory.CONFIG
    if ext in _DOCUMENTATION_EXTENSIONS or any(p.match(base) for p in _DOCUMENTATION_NAME_PATTERNS):
        return FileCategory.DOCUMENTATION
    if ext in _IMAGE_EXTENSIONS or ext in _FONT_EXTENSIONS:
        return FileCategory.ASSET
    if ext in _ARCHIVE_EXTENSIONS:
        return FileCategory.RESOURCE
    return FileCategory.OTHER


# ---------------------------------------------------------------------------
# Extension -> MIME type
# ---------------------------------------------------------------------------

_MIME_TYPES: dict[str, str] = {
    # Code
    "js": "application/javascript",
    "mjs": "application/javascript",
    "cjs": "application/javascript",
    "jsx": "text/jsx",
    "ts": "application/typescript",
    "tsx": "text/tsx",
    "wasm": "application/wasm",
    "py": "text/x-python",
    "sh": "text/x-shellscript",
    "bash": "text/x-shellscript",
    # Markup & config
    "html": "text/html",
    "htm": "text/html",
    "xml": "application/xml",
    "json": "application/json",
    "yaml": "text/yaml",
    "yml": "text/yaml",
    "toml": "application/toml",
    # Styles
    "css": "text/css",
    "scss": "text/x-scss",
    "sass": "text/x-sass",
    "less": "text/x-less",
    # Images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "avif": "image/avif",
    # Fonts
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "eot": "application/vnd.ms-fontobject",
    # Media
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    # Documents
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/markdown",
    "markdown": "text/markdown",
    "rst": "text/x-rst",
    "csv": "text/csv",
    "log": "text/plain",
    "conf": "text/plain",
    "cfg": "text/plain",
    "ini": "text/plain",
    # Archives & packages
    "zip": "application/zip",
    "gz": "application/gzip",
    "tar": "application/x-tar",
    "7z": "application/x-7z-compressed",
    "crx": "application/x-chrome-extension",
    "xpi": "application/x-xpinstall",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(name: str) -> str:
    """MIME type for *name* based on its extension."""
    return _MIME_TYPES.get(get_extension(name), DEFAULT_MIME_TYPE)


def is_text_mime_type(mime_type: str) -> bool:
    return (
        mime_type.startswith("text/")
        or "javascript" in mime_type
        or "typescript" in mime_type
        or "json" in mime_type
        or "xml" in mime_type
        or mime_type == "application/toml"
    )


def is_text_path(name: str) -> bool:
    """True if a file with this name is expected to hold searchable text."""
    base = name.rsplit("/", 1)[-1]
    if categorize(base) == FileCategory.DOCUMENTATION:
        return True
    return is_text_mime_type(guess_mime_type(base))


# ---------------------------------------------------------------------------
# Content sniffing
# ---------------------------------------------------------------------------

_magika_instance = None


def _get_magika():
    """Lazy-init singleton Magika instance (~100ms first call, ~5ms/file after)."""
    global _magika_instance
    if _magika_instance is None:
        from magika import Magika

        _magika_instance = Magika()
    return _magika_instance


_MAGIC_SIGNATURES: list[tuple[int, bytes, MagicMatch]] = [
    # Archives
    (0, b"Cr24", MagicMatch("archive/crx", "archive", "Chrome extension package", 1.0, "application/x-chrome-extension")),
    (0, b"PK\x03\x04", MagicMatch("archive/zip", "archive", "ZIP archive", 1.0, "application/zip")),
    (0, b"PK\x05\x06", MagicMatch("archive/zip_empty", "archive", "ZIP archive (empty)", 1.0, "application/zip")),
    (0, b"\x1f\x8b", MagicMatch("archive/gzip", "archive", "GZIP compressed", 1.0, "application/gzip")),
    # Images
    (0, b"\x89PNG\r\n\x1a\n", MagicMatch("image/png", "image", "PNG image", 1.0, "image/png")),
    (0, b"\xff\xd8\xff", MagicMatch("image/jpeg", "image", "JPEG image", 1.0, "image/jpeg")),
    (0, b"GIF87a", MagicMatch("image/gif", "image", "GIF image (87a)", 1.0, "image/gif")),
    (0, b"GIF89a", MagicMatch("image/gif", "image", "GIF image (89a)", 1.0, "image/gif")),
    (0, b"\x00\x00\x01\x00", MagicMatch("image/ico", "image", "ICO image", 1.0, "image/x-icon")),
    # Fonts
    (0, b"wOFF", MagicMatch("font/woff", "font", "WOFF font", 1.0, "font/woff")),
    (0, b"wOF2", MagicMatch("font/woff2", "font", "WOFF2 font", 1.0, "font/woff2")),
    (0, b"OTTO", MagicMatch("font/otf", "font", "OpenType font", 1.0, "font/otf")),
    # WebAssembly
    (0, b"\x00asm", MagicMatch("executable/wasm", "executable", "WebAssembly module", 1.0, "application/wasm")),
    # Documents
    (0, b"%PDF", MagicMatch("document/pdf", "document", "PDF document", 1.0, "application/pdf")),
]

# Below this score legacy signatures are preferred over Magika.
_MAGIKA_CONFIDENCE_FLOOR: float = 0.85


def _match_magic_bytes(data: bytes) -> MagicMatch | None:
    """Match raw bytes against known magic signatures."""
    for offset, signature, match in _MAGIC_SIGNATURES:
        if len(data) >= offset + len(signature):
            if data[offset : offset + len(signature)] == signature:
                return match
    return None


def _magika_result_to_match(result) -> MagicMatch | None:
    """Convert a Magika result to a MagicMatch, or None if unusable."""
    if not result.ok:
        return None
    group = result.output.group
    if group in ("unknown", "inode"):
        return None
    label = result.output.label
    return MagicMatch(
        content_type=f"{group}/{label}",
        content_family=group,
        description=result.output.description,
        score=result.score,
        mime_type=result.output.mime_type,
    )


def detect_content_type(data: bytes) -> MagicMatch | None:
    """
    Detect content type from raw bytes.

    Uses Magika as the primary engine. When its confidence is below the
    floor, classic magic byte signatures take priority; a low-confidence
    Magika result is returned only if no signature matches.

    Args:
        data: File content bytes

    Returns:
        MagicMatch if a content type was identified, None otherwise
    """
    if not data:
        return None

    magika_match: MagicMatch | None = None
    try:
        result = _get_magika().identify_bytes(data)
        magika_match = _magika_result_to_match(result)
    except Exception:
        logger.debug("Magika identify_bytes failed, falling back to legacy")

    if magika_match is not None and magika_match.score >= _MAGIKA_CONFIDENCE_FLOOR:
        return magika_match

    legacy = _match_magic_bytes(data)
    if legacy is not None:
        return legacy

    return magika_match


def resolve_mime_type(name: str, data: bytes) -> str:
    """MIME type from the extension, sniffing the content when the extension is unknown."""
    mime_type = guess_mime_type(name)
    if mime_type != DEFAULT_MIME_TYPE:
        return mime_type
    match = detect_content_type(data)
    if match is not None and match.mime_type:
        return match.mime_type
    return DEFAULT_MIME_TYPE
