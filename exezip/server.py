"""Static file server over a virtual filesystem."""

import logging
import mimetypes
import os
import posixpath
import re
from datetime import timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse, Response

from .files import EPOCH, FileInfo, RegularFile

if TYPE_CHECKING:
    from .filesystem import VirtualFileSystem

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


class RangeNotSatisfiable(Exception):
    """Requested byte range lies outside the file."""

    pass


def create_file_server(fs: "VirtualFileSystem") -> FastAPI:
    """
    Create an ASGI application serving every file of ``fs``.

    Args:
        fs: Filesystem to serve; must not be modified afterwards

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="exezip file server",
        description="Serves files embedded in an exezip container",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    def serve(path: str, request: Request) -> Response:
        return serve_path(fs, path, request)

    return app


def serve_path(fs: "VirtualFileSystem", path: str, request: Request) -> Response:
    """
    Answer one request for ``path``.

    Files are served without a trailing slash and directories with one;
    requests for the other form are redirected.
    """
    url_path = request.url.path
    with fs.open(path) as f:
        if not f.stat().is_dir:
            if url_path.endswith("/"):
                return _redirect(request, url_path.rstrip("/"))
            return _file_response(f, request)

    # Implicit directories have no listing; fall back to their index page.
    with fs.open(posixpath.join(path, INDEX_FILE)) as index:
        if isinstance(index, RegularFile):
            if not url_path.endswith("/"):
                return _redirect(request, f"{url_path}/")
            return _file_response(index, request)

    logger.debug(f"Not found: /{path}")
    return Response(
        content="404 page not found\n", status_code=404, media_type="text/plain"
    )


def _redirect(request: Request, url_path: str) -> RedirectResponse:
    query = request.url.query
    location = f"{url_path}?{query}" if query else url_path
    return RedirectResponse(location, status_code=301)


def _file_response(f: RegularFile, request: Request) -> Response:
    info = f.stat()
    headers: Dict[str, str] = {"Accept-Ranges": "bytes"}
    if info.mod_time != EPOCH:
        headers["Last-Modified"] = format_datetime(info.mod_time, usegmt=True)
        if _not_modified(request, info):
            return Response(status_code=304, headers=headers)

    media_type = mimetypes.guess_type(info.name)[0] or "application/octet-stream"
    size = f.seek(0, os.SEEK_END)
    f.seek(0)

    status_code = 200
    start, length = 0, size
    try:
        byte_range = _parse_range(request.headers.get("range"), size)
    except RangeNotSatisfiable:
        headers["Content-Range"] = f"bytes */{size}"
        return Response(status_code=416, headers=headers)
    if byte_range is not None:
        start, end = byte_range
        length = end - start + 1
        status_code = 206
        headers["Content-Range"] = f"bytes {start}-{end}/{size}"

    headers["Content-Length"] = str(length)
    if request.method == "HEAD":
        return Response(
            status_code=status_code, headers=headers, media_type=media_type
        )

    f.seek(start)
    body = f.read(length)
    return Response(
        content=body, status_code=status_code, headers=headers, media_type=media_type
    )


def _not_modified(request: Request, info: FileInfo) -> bool:
    header = request.headers.get("if-modified-since")
    if not header or request.headers.get("range"):
        return False
    try:
        since = parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return False
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return info.mod_time.replace(microsecond=0) <= since


def _parse_range(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """
    Parse a single ``bytes`` range into inclusive offsets.

    Returns:
        ``(start, end)``, or None when the whole file should be served

    Raises:
        RangeNotSatisfiable: If the range does not overlap the file
    """
    if not header:
        return None
    m = _RANGE_RE.match(header.strip())
    if m is None:
        # Multiple ranges or other units; serve everything.
        return None

    first, last = m.group(1), m.group(2)
    if first == "" and last == "":
        raise RangeNotSatisfiable(header)

    if first == "":
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(header)
        return max(size - suffix, 0), size - 1

    start = int(first)
    if start >= size:
        raise RangeNotSatisfiable(header)
    end = size - 1 if last == "" else min(int(last), size - 1)
    if end < start:
        raise RangeNotSatisfiable(header)
    return start, end
