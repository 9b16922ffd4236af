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

"""API router for CRX Inspector endpoints.

Packages are uploaded (or downloaded from the Chrome update service) once,
kept in an in-memory session, and then browsed, searched and filtered by
session id. The router is mounted under ``/api/v1`` by :mod:`.api`.
"""

import logging
from typing import Literal

try:
    from fastapi import APIRouter, File, HTTPException, Query, Response, UploadFile
    from fastapi.concurrency import run_in_threadpool
    from pydantic import BaseModel, Field
except ImportError:
    raise ImportError("API server requires FastAPI. Install with: pip install fastapi uvicorn python-multipart")

from .. import __version__ as PACKAGE_VERSION
from ..config.config import Config
from ..core.downloader import CrxDownloader
from ..core.exceptions import (
    ArchiveExtractionError,
    ContainerParseError,
    CrxInspectorError,
    DownloadError,
    ErrorKind,
    PatternError,
    SessionNotFoundError,
)
from ..core.extension_id import parse_extension_id
from ..core.file_magic import resolve_mime_type
from ..core.inspector import CrxInspector, InspectedPackage
from ..core.models import FileCategory, FilterCriteria
from ..core.search import search_statistics, sort_search_results
from ..core.tree_builder import aggregate_sizes, flatten, tree_stats
from .sessions import SessionStore

logger = logging.getLogger("crx_inspector.api")

router = APIRouter()

config = Config()
inspector = CrxInspector(config)
sessions = SessionStore(max_entries=config.max_sessions, ttl_seconds=config.session_ttl_seconds)

UPLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MB chunks


def _create_downloader() -> CrxDownloader:
    return CrxDownloader(
        timeout=config.download_timeout_seconds,
        max_bytes=config.max_upload_bytes,
        update_service_url=config.update_service_url,
    )


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    active_sessions: int


class SessionResponse(BaseModel):
    """Metadata of an inspection session."""

    session_id: str
    extension_id: str | None
    name: str | None
    version: str | None
    manifest_version: int | None
    description: str | None
    permissions: list[str]
    host_permissions: list[str]
    crx_version: int
    size: int
    sha256: str
    filename: str | None
    file_count: int
    skipped_entries: list[dict]
    expires_in_seconds: int


class DownloadRequest(BaseModel):
    """Request to fetch a package from the Chrome update service."""

    input: str = Field(..., min_length=1, description="Extension ID or Chrome Web Store URL")


class SearchRequest(BaseModel):
    """Request model for searching file contents."""

    query: str = Field(..., min_length=1, description="Text or regular expression to look for")
    case_sensitive: bool = False
    use_regex: bool = False
    whole_word: bool = Field(False, description="Match whole words only (ignored for regular expressions)")
    context_lines: int | None = Field(None, ge=0, le=20, description="Lines of context around each match")
    file_pattern: str | None = Field(None, description="Glob restricting which files are searched, e.g. *.js")
    max_results: int | None = Field(None, ge=1, description="Page size")
    offset: int = Field(0, ge=0, description="Number of matches to skip")


class FilterRequest(BaseModel):
    """Request model for filtering the file tree."""

    name_pattern: str | None = Field(None, description="Glob (* and ?) or regular expression")
    use_regex: bool = False
    case_sensitive: bool = False
    categories: list[FileCategory] = Field(default_factory=list)
    min_size: int | None = Field(None, ge=0)
    max_size: int | None = Field(None, ge=0)
    as_tree: bool = Field(False, description="Return a pruned tree instead of a flat list")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NOT_FOUND_KINDS = {ErrorKind.ENTRY_NOT_FOUND, ErrorKind.UNSAFE_PATH}


def _http_error(exc: CrxInspectorError, *, missing_entry_status: int = 400) -> HTTPException:
    """Translate an inspector error into an HTTP error.

    ``missing_entry_status`` applies to missing or unsafe archive entries: a
    404 when the client asked for a specific file, a 400 when the package
    itself is unusable (e.g. no manifest.json).
    """
    detail = exc.error.to_dict() if exc.error else {"kind": None, "message": str(exc), "details": {}}

    if isinstance(exc, SessionNotFoundError):
        status = 404
    elif isinstance(exc, PatternError):
        status = 422
    elif isinstance(exc, DownloadError):
        status = 400 if exc.kind == ErrorKind.INVALID_EXTENSION_ID else 502
    elif exc.kind == ErrorKind.LIMIT_EXCEEDED:
        status = 413
    elif isinstance(exc, ArchiveExtractionError) and exc.kind in _NOT_FOUND_KINDS:
        status = missing_entry_status
    elif isinstance(exc, (ContainerParseError, ArchiveExtractionError)):
        status = 400
    else:
        status = 500
    return HTTPException(status_code=status, detail=detail)


def _session_response(session_id: str, package: InspectedPackage) -> SessionResponse:
    return SessionResponse(
        session_id=session_id,
        expires_in_seconds=int(sessions.ttl_seconds),
        **package.to_dict(),
    )


def _get_package(session_id: str) -> InspectedPackage:
    try:
        return sessions.require(session_id)
    except SessionNotFoundError as e:
        raise _http_error(e) from e


async def _open_and_store(data: bytes, filename: str | None) -> SessionResponse:
    try:
        package = await run_in_threadpool(inspector.open, data, filename)
    except CrxInspectorError as e:
        logger.warning("Rejected package %s: %s", filename, e)
        raise _http_error(e) from e

    session_id = sessions.create(package)
    logger.info("Created session %s for %s", session_id, package.extension_id or filename)
    return _session_response(session_id, package)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_model=dict)
async def root():
    """Root endpoint."""
    return {"service": "CRX Inspector API", "version": PACKAGE_VERSION, "docs": "/docs", "health": "/api/v1/health"}


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    sessions.purge_expired()
    return HealthResponse(status="healthy", version=PACKAGE_VERSION, active_sessions=len(sessions))


@router.post("/extensions/upload", response_model=SessionResponse)
async def upload_extension(file: UploadFile = File(..., description="CRX package")):
    """Upload a CRX package and open an inspection session."""
    if not file.filename or not file.filename.lower().endswith(".crx"):
        raise HTTPException(status_code=400, detail="File must be a CRX package")

    # Stream upload with size limit to avoid memory exhaustion
    buffer = bytearray()
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > config.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Upload exceeds maximum size of {config.max_upload_bytes // (1024 * 1024)} MB",
            )

    return await _open_and_store(bytes(buffer), file.filename)


@router.post("/extensions/download", response_model=SessionResponse)
async def download_extension(request: DownloadRequest):
    """Fetch a package from the Chrome update service and open an inspection session."""
    downloader = _create_downloader()
    try:
        result = await run_in_threadpool(downloader.download, request.input)
        data = result.unwrap()
    except DownloadError as e:
        logger.warning("Download failed for %r: %s", request.input, e)
        raise _http_error(e) from e
    finally:
        downloader.close()

    extension_id = parse_extension_id(request.input).value
    return await _open_and_store(data, f"{extension_id}.crx")


@router.get("/extensions/{session_id}", response_model=SessionResponse)
async def get_extension(session_id: str):
    """Metadata of an inspection session."""
    return _session_response(session_id, _get_package(session_id))


@router.delete("/extensions/{session_id}")
async def delete_extension(session_id: str):
    """Drop an inspection session."""
    if not sessions.discard(session_id):
        raise _http_error(SessionNotFoundError(f"Session not found or expired: {session_id}"))
    logger.info("Deleted session %s", session_id)
    return {"session_id": session_id, "deleted": True}


@router.get("/extensions/{session_id}/manifest")
async def get_manifest(session_id: str):
    """The parsed manifest.json."""
    return _get_package(session_id).manifest


@router.get("/extensions/{session_id}/files")
async def list_files(
    session_id: str,
    format: Literal["tree", "flat"] = Query("tree", description="Nested tree or flat list"),
    aggregate: bool = Query(False, description="Roll file sizes up into directories"),
):
    """The package's file tree, nested or flattened."""
    package = _get_package(session_id)
    tree = aggregate_sizes(package.tree) if aggregate else package.tree
    body = {"format": format, "stats": tree_stats(package.tree).to_dict()}
    if format == "flat":
        body["files"] = flatten(tree)
    else:
        body["tree"] = tree.to_dict()
    return body


@router.get("/extensions/{session_id}/files/{file_path:path}")
async def get_file(session_id: str, file_path: str):
    """Raw bytes of one file, served with a MIME type guessed from its name or content."""
    package = _get_package(session_id)
    try:
        data = inspector.read_file(package, file_path)
    except CrxInspectorError as e:
        raise _http_error(e, missing_entry_status=404) from e

    name = file_path.rsplit("/", 1)[-1]
    return Response(
        content=data,
        media_type=resolve_mime_type(name, data),
        headers={"Content-Disposition": f'inline; filename="{name}"'},
    )


@router.get("/extensions/{session_id}/download-zip")
async def download_zip(session_id: str):
    """The embedded ZIP archive, without the CRX header."""
    package = _get_package(session_id)
    stem = package.extension_id or (package.filename or "extension").rsplit(".", 1)[0]
    return Response(
        content=inspector.export_zip(package),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{stem}.zip"'},
    )


@router.post("/extensions/{session_id}/search")
async def search_extension(session_id: str, request: SearchRequest):
    """Search the text files of a package and return one page of matches."""
    package = _get_package(session_id)
    try:
        report = await run_in_threadpool(
            inspector.search,
            package,
            request.query,
            case_sensitive=request.case_sensitive,
            whole_word=request.whole_word,
            use_regex=request.use_regex,
            context_lines=request.context_lines,
            file_pattern=request.file_pattern,
            max_results=config.max_results_limit,
        )
    except CrxInspectorError as e:
        raise _http_error(e) from e

    page_size = min(request.max_results or config.default_max_results, config.max_results_limit)
    matches = [m for result in report.results for m in result.matches]
    page = matches[request.offset : request.offset + page_size]

    return {
        "query": request.query,
        "total_matches": len(matches),
        "files_searched": report.files_searched,
        "truncated": report.truncated,
        "offset": request.offset,
        "limit": page_size,
        "has_more": request.offset + page_size < len(matches),
        "statistics": search_statistics(report.results),
        "files": [{"file_path": r.file_path, "match_count": r.match_count} for r in sort_search_results(report.results)],
        "matches": [m.to_dict() for m in page],
    }


@router.post("/extensions/{session_id}/filter")
async def filter_extension(session_id: str, request: FilterRequest):
    """Select files by name, category and size."""
    package = _get_package(session_id)
    criteria = FilterCriteria(
        name_pattern=request.name_pattern,
        use_regex=request.use_regex,
        case_sensitive=request.case_sensitive,
        categories=frozenset(request.categories),
        min_size=request.min_size,
        max_size=request.max_size,
    )
    try:
        files = inspector.filter(package, criteria)
        body = {"count": len(files)}
        if request.as_tree:
            body["tree"] = inspector.filter_tree(package, criteria).to_dict()
        else:
            body["files"] = [node.to_dict() for node in files]
    except CrxInspectorError as e:
        raise _http_error(e) from e
    return body
