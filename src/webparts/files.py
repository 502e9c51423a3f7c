"""
=============================================================================
FILE SERVING
=============================================================================

Serves files from a root directory.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          FLOW                                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /css/site.css                                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   local_file("css/site.css", root)   ── escapes root? ──► 403        │
    │        │                                                             │
    │        ▼                                                             │
    │   is a file?  ── no ──► NoMatch (next candidate, usually a 404)     │
    │        │                                                             │
    │        ▼                                                             │
    │   If-None-Match == ETag?  ── yes ──► 304 Not Modified               │
    │        │                                                             │
    │        ▼                                                             │
    │   200 + Content-Type + ETag + Last-Modified                         │
    │   body = deferred read (optionally gzip/deflate encoded)            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Routing only stats the file. Opening and reading it happens inside the
deferred write, on a worker thread (``asyncio.to_thread``), so no request
pins the event loop while the disk works.

=============================================================================
SECURITY
=============================================================================

``local_file`` resolves ``..`` segments and symlinks, then checks the
result is still inside the root. ``GET /../../etc/passwd`` never reaches
the filesystem read.

=============================================================================
"""

import asyncio
import html
import logging
import zlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from .combinators import NoMatch, RouteResult, WebPart, compose
from .http.context import HttpContext, ResponseStream, StreamContent
from .http.mime_types import mime_type_for
from .http.response import format_http_date, respond_with, respond_with_bytes, set_header
from .http.status_codes import HttpCode
from .responses import forbidden, not_modified


logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class PathTraversalError(ValueError):
    """A requested name resolved to a location outside the serving root."""

    def __init__(self, name: str, root: Path):
        super().__init__(f"{name!r} resolves outside of {str(root)!r}")
        self.name = name
        self.root = root


# =============================================================================
# PATH RESOLUTION
# =============================================================================

def local_file(name: str, root_dir: Union[str, Path]) -> Path:
    """
    Resolve ``name`` against ``root_dir`` and return the absolute path.

    Leading slashes are stripped so that URL paths can be passed as-is.

    Raises:
        PathTraversalError: if the resolved path is not inside ``root_dir``
            or the name contains a NUL byte.
    """
    root = Path(root_dir).resolve()
    if "\x00" in name:
        raise PathTraversalError(name, root)
    relative = name.replace("\\", "/").lstrip("/")
    full_path = (root / relative).resolve()
    try:
        full_path.relative_to(root)
    except ValueError:
        raise PathTraversalError(name, root) from None
    return full_path


def _root(ctx: HttpContext, root_path: Optional[Union[str, Path]]) -> Path:
    return Path(root_path) if root_path is not None else ctx.runtime.home_directory


# =============================================================================
# SENDING FILES
# =============================================================================

def _accepted_codings(header: str) -> dict:
    """Map each coding in an Accept-Encoding header to its q value."""
    codings = {}
    for token in header.split(","):
        coding, _, params = token.partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = 1.0
        for param in params.split(";"):
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        codings[coding] = q
    return codings


def _negotiate_encoding(ctx: HttpContext) -> Optional[str]:
    codings = _accepted_codings(ctx.request.get_header("accept-encoding"))
    wildcard = codings.get("*", 0.0)
    best, best_q = None, 0.0
    for coding in ("gzip", "deflate"):
        q = codings.get(coding, wildcard)
        if q > best_q:
            best, best_q = coding, q
    return best


def _etag_matches(header: str, etag: str) -> bool:
    """Weak comparison against an If-None-Match list, ``*`` matches anything."""
    if header.strip() == "*":
        return True
    for tag in header.split(","):
        tag = tag.strip()
        if tag.startswith("W/"):
            tag = tag[2:]
        if tag == etag:
            return True
    return False


def _file_writer(path: Path, encoding: Optional[str]):
    async def write(ctx: HttpContext, stream: ResponseStream) -> None:
        if encoding == "gzip":
            compressor = zlib.compressobj(6, zlib.DEFLATED, 16 + zlib.MAX_WBITS)
        elif encoding == "deflate":
            compressor = zlib.compressobj(6, zlib.DEFLATED, zlib.MAX_WBITS)
        else:
            compressor = None

        handle = await asyncio.to_thread(path.open, "rb")
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, CHUNK_SIZE)
                if not chunk:
                    break
                if compressor is not None:
                    chunk = compressor.compress(chunk)
                    if not chunk:
                        continue
                stream.write(chunk)
                await stream.drain()
            if compressor is not None:
                stream.write(compressor.flush())
                await stream.drain()
        finally:
            await asyncio.to_thread(handle.close)

    return write


def send_file(path: Union[str, Path], compression: bool) -> WebPart:
    """
    Serve the file at ``path`` (already resolved) with status 200.

    Content-Type comes from the runtime's MIME table; an unmapped
    extension sends no Content-Type. The body is gzip/deflate encoded
    only when ``compression`` is on, the MIME descriptor allows it, the
    client accepts it (q > 0) and the file is at least
    ``compression_min_size``.

    Only the ``stat`` call runs while routing; opening and reading the file
    are left to the deferred write on a worker thread.
    """
    path = Path(path)

    def serve(ctx: HttpContext) -> RouteResult:
        try:
            stat = path.stat()
        except FileNotFoundError:
            return NoMatch
        except PermissionError:
            return forbidden("Permission denied")(ctx)

        mime = mime_type_for(path, ctx.runtime.mime_types_map)
        etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'
        last_modified = format_http_date(datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc))

        if _etag_matches(ctx.request.get_header("if-none-match"), etag):
            return compose(set_header("ETag", etag), not_modified())(ctx)

        parts = [
            set_header("ETag", etag),
            set_header("Last-Modified", last_modified),
        ]
        if mime is not None:
            parts.append(set_header("Content-Type", mime.name))

        encoding = None
        if (compression and mime is not None and mime.compression
                and stat.st_size >= ctx.runtime.compression_min_size):
            encoding = _negotiate_encoding(ctx)

        if encoding is not None:
            parts.append(set_header("Content-Encoding", encoding))
            parts.append(set_header("Vary", "Accept-Encoding"))
        else:
            parts.append(set_header("Content-Length", str(stat.st_size)))

        parts.append(respond_with(HttpCode.OK, StreamContent(_file_writer(path, encoding))))
        return compose(*parts)(ctx)

    return WebPart(serve, name=f"send_file({path.name})")


def file(name: Union[str, Path]) -> WebPart:
    """
    Serve a file by filesystem path, compression per runtime config.

    A missing file is NoMatch, so a later candidate can answer.
    """
    path = Path(name)

    def serve(ctx: HttpContext) -> RouteResult:
        if not path.is_file():
            return NoMatch
        return send_file(path, ctx.runtime.compression)(ctx)
    return WebPart(serve, name=f"file({path.name})")


def _guarded(name: str, root: Path, ctx: HttpContext) -> Optional[Path]:
    try:
        return local_file(name, root)
    except PathTraversalError:
        logger.warning("Path traversal attempt: %r from %s", name, ctx.request.client_address[0])
        return None


def browse_file(name: str, root_path: Optional[Union[str, Path]] = None) -> WebPart:
    """Serve ``name`` relative to ``root_path`` (default: runtime home)."""
    def serve(ctx: HttpContext) -> RouteResult:
        resolved = _guarded(name, _root(ctx, root_path), ctx)
        if resolved is None:
            return forbidden("Access denied")(ctx)
        return file(resolved)(ctx)
    return WebPart(serve, name=f"browse_file({name})")


def browse_file_home(name: str) -> WebPart:
    return browse_file(name)


def browse(root_path: Optional[Union[str, Path]] = None) -> WebPart:
    """
    Serve the file named by the request path.

    A directory is served through its index file when it has one;
    anything else that isn't a regular file is NoMatch.
    """
    def serve(ctx: HttpContext) -> RouteResult:
        resolved = _guarded(ctx.request.path, _root(ctx, root_path), ctx)
        if resolved is None:
            return forbidden("Access denied")(ctx)
        if resolved.is_dir():
            resolved = resolved / ctx.runtime.index_file
        logger.debug("browse %s -> %s", ctx.request.path, resolved)
        return file(resolved)(ctx)
    return WebPart(serve, name="browse")


def browse_home() -> WebPart:
    return browse()


# =============================================================================
# DIRECTORY LISTING
# =============================================================================

def _listing_entry(href: str, label: str) -> str:
    href = html.escape(quote(href), quote=True)
    return f'        <li><a href="{href}">{html.escape(label)}</a></li>'


_LISTING_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>Index of {title}</title>
    <style>
        body {{ font-family: monospace; padding: 20px; }}
        ul {{ list-style: none; padding: 0; }}
        li {{ padding: 3px 0; }}
    </style>
</head>
<body>
    <h1>Index of {title}</h1>
    <ul>
{entries}
    </ul>
</body>
</html>
"""


def render_listing(directory: Path, url_path: str, at_root: bool) -> str:
    """
    HTML index of ``directory``.

    Links are absolute, built from ``url_path``, so they resolve the same
    whether or not the request had a trailing slash.
    """
    base = url_path.rstrip("/") + "/"
    entries = []
    if not at_root:
        parent = base.rstrip("/").rsplit("/", 1)[0] + "/"
        entries.append(_listing_entry(parent, "../"))
    for entry in sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
        name = entry.name + ("/" if entry.is_dir() else "")
        entries.append(_listing_entry(base + name, name))
    return _LISTING_PAGE.format(title=html.escape(url_path), entries="\n".join(entries))


def dir_listing(root_path: Optional[Union[str, Path]] = None) -> WebPart:
    """
    Generated HTML index for a directory that has no index file.

    NoMatch for files, missing paths and directories that do have an
    index (``browse`` serves those).
    """
    def serve(ctx: HttpContext) -> RouteResult:
        root = _root(ctx, root_path)
        resolved = _guarded(ctx.request.path, root, ctx)
        if resolved is None:
            return forbidden("Access denied")(ctx)
        if not resolved.is_dir() or (resolved / ctx.runtime.index_file).is_file():
            return NoMatch
        page = render_listing(resolved, ctx.request.path, resolved == root.resolve())
        data = page.encode("utf-8")
        return compose(
            set_header("Content-Type", "text/html; charset=utf-8"),
            respond_with_bytes(HttpCode.OK, data),
        )(ctx)
    return WebPart(serve, name="dir_listing")


def dir_home() -> WebPart:
    return dir_listing()
