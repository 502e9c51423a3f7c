"""
=============================================================================
WEB SERVER
=============================================================================

An asyncio transport that runs a WebPart application.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       REQUEST LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. READ       head up to \r\n\r\n, then Content-Length body bytes │
    │        │                                                             │
    │   2. PARSE      RequestParser → HttpRequest                         │
    │        │        HTTPParseError → 400 / 405 / 413 / 505, close        │
    │        ▼                                                             │
    │   3. ROUTE      run_web_part(app, ctx)                              │
    │        │        NoMatch → 404, exception → 500                      │
    │        ▼                                                             │
    │   4. EXECUTE    status line + headers, then the deferred write      │
    │        │        (HEAD: headers only)                                │
    │        ▼                                                             │
    │   5. LOG        one access line on "webparts.access"                │
    │        │                                                             │
    │        ▼                                                             │
    │   keep-alive?  ── yes ──► back to 1 (idle timeout applies)          │
    │        │                                                             │
    │        no ──► close                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Routing (step 3) is plain synchronous function calls. Everything that
touches the network or the disk happens in step 4, inside coroutines.

Usage:

    from webparts import GET, choose, path, ok, not_found
    from webparts.config import ServerConfig
    from webparts.server import WebServer

    app = choose([GET >> path("/") >> ok("Hello"), not_found()])
    WebServer(app, ServerConfig(port=8080)).run()

=============================================================================
"""

import asyncio
import logging
from typing import Dict, Optional, Tuple

from .combinators import Handler, WebPart
from .config import ServerConfig
from .http.context import (
    BytesContent, HttpContext, HttpRequest, ResponseStream, StreamContent,
)
from .http.request import HTTPParseError, RequestParser
from .http.response import render_head, set_header
from .matchers import log_format, log_format_json
from .responses import (
    bad_request, internal_error, invalid_http_version, method_not_allowed,
    not_found, request_entity_too_large,
)


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("webparts.access")


_PARSE_ERROR_RESPONSES: Dict[int, WebPart] = {
    400: bad_request(),
    405: method_not_allowed(),
    413: request_entity_too_large(),
    505: invalid_http_version(),
}


# =============================================================================
# EXECUTION
# =============================================================================

def run_web_part(app: Handler, ctx: HttpContext) -> HttpContext:
    """
    Route ``ctx`` through ``app`` and return the context to send.

    Never raises: an exhausted route becomes 404 Not Found and an
    exception from the application becomes 500 Internal Server Error
    (logged with traceback).
    """
    try:
        result = app(ctx)
    except Exception:
        logger.exception(
            "Unhandled error routing %s %s", ctx.request.method, ctx.request.path,
        )
        return internal_error()(ctx).value

    if not result:
        return not_found()(ctx).value
    return result.value


async def execute(
    ctx: HttpContext,
    stream: ResponseStream,
    include_body: bool = True,
    version: str = "HTTP/1.1",
) -> None:
    """
    Write the response held by ``ctx``: head first, then the deferred
    write (skipped when ``include_body`` is false, e.g. for HEAD).
    """
    stream.write(render_head(ctx, version))
    content = ctx.response.content
    if include_body:
        if isinstance(content, BytesContent):
            stream.write(content.data)
        elif isinstance(content, StreamContent):
            await content.writer(ctx, stream)
    await stream.drain()


def _closes_after(ctx: HttpContext, include_body: bool) -> bool:
    # A streamed body without Content-Length is delimited by closing.
    return (
        include_body
        and isinstance(ctx.response.content, StreamContent)
        and ctx.response.get_header("Content-Length") is None
    )


# =============================================================================
# SERVER
# =============================================================================

class WebServer:
    """
    Serves one WebPart application over HTTP/1.x with keep-alive.

    Args:
        app: the application handler (usually a ``choose([...])``).
        config: server settings; defaults to ``ServerConfig()``.
    """

    def __init__(self, app: Handler, config: Optional[ServerConfig] = None):
        self.app = app
        self.config = config or ServerConfig()
        self.runtime = self.config.to_runtime()
        self.parser = RequestParser(max_request_size=self.config.max_request_size)
        self._format = log_format_json if self.config.log_format == "json" else log_format
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def port(self) -> int:
        """The bound port (useful when configured with port 0)."""
        if self._server is None or not self._server.sockets:
            return self.config.port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> asyncio.AbstractServer:
        self._server = await asyncio.start_server(
            self.handle_connection, self.config.host, self.config.port,
        )
        logger.info(
            "%s serving %s on http://%s:%d",
            self.config.server_name, self.runtime.home_directory,
            self.config.host, self.port,
        )
        return self._server

    async def serve(self) -> None:
        """Start listening and serve until cancelled."""
        server = await self.start()
        async with server:
            await server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def run(self) -> None:
        """Blocking entry point; Ctrl+C stops the server."""
        try:
            asyncio.run(self.serve())
        except KeyboardInterrupt:
            logger.info("Shutting down")

    # -------------------------------------------------------------------------
    # Connection handling
    # -------------------------------------------------------------------------

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
    ) -> None:
        peer = writer.get_extra_info("peername") or ("", 0)
        client_address = (str(peer[0]), int(peer[1]))
        is_secure = writer.get_extra_info("sslcontext") is not None
        logger.debug("Connection opened from %s:%d", *client_address)

        try:
            while True:
                try:
                    data = await asyncio.wait_for(
                        self._read_request(reader), timeout=self.config.keep_alive_timeout,
                    )
                except asyncio.TimeoutError:
                    break
                except HTTPParseError as exc:
                    await self._reject(exc, client_address, writer)
                    break

                if data is None:
                    break
                if not await self._handle_request(data, client_address, is_secure, writer):
                    break
        except (ConnectionResetError, BrokenPipeError) as exc:
            logger.debug("Connection from %s lost: %s", client_address[0], exc)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass
            logger.debug("Connection closed from %s:%d", *client_address)

    async def _read_request(self, reader: asyncio.StreamReader) -> Optional[bytes]:
        """
        One request's raw bytes, or None when the client hung up between
        requests.
        """
        try:
            head = await reader.readuntil(b"\r\n\r\n")
        except asyncio.IncompleteReadError:
            return None
        except asyncio.LimitOverrunError:
            raise HTTPParseError("Request head too large", status_code=413) from None

        length = self.parser.expected_body_length(head)
        if len(head) + length > self.config.max_request_size:
            raise HTTPParseError(f"Request too large: {len(head) + length} bytes", status_code=413)

        try:
            body = await reader.readexactly(length)
        except asyncio.IncompleteReadError as exc:
            raise HTTPParseError(
                f"Incomplete body: expected {length} bytes, got {len(exc.partial)}"
            ) from None
        return head + body

    async def _handle_request(
        self,
        data: bytes,
        client_address: Tuple[str, int],
        is_secure: bool,
        writer: asyncio.StreamWriter,
    ) -> bool:
        """Route and answer one request; True if the connection stays open."""
        try:
            request = self.parser.parse(data, client_address, is_secure)
        except HTTPParseError as exc:
            await self._reject(exc, client_address, writer)
            return False

        ctx = run_web_part(self.app, HttpContext(request=request, runtime=self.runtime))

        include_body = request.method != "HEAD"
        keep_alive = request.is_keep_alive and not _closes_after(ctx, include_body)
        ctx = set_header("Connection", "keep-alive" if keep_alive else "close")(ctx).value

        try:
            await execute(ctx, writer, include_body=include_body, version=request.version)
        except (ConnectionResetError, BrokenPipeError):
            raise
        except Exception:
            # Head is already on the wire; all that is left is to drop the connection.
            logger.exception("Deferred write failed for %s %s", request.method, request.path)
            return False

        access_logger.info(self._format(ctx))
        return keep_alive

    async def _reject(
        self,
        exc: HTTPParseError,
        client_address: Tuple[str, int],
        writer: asyncio.StreamWriter,
    ) -> None:
        logger.warning("Rejected request from %s: %s", client_address[0], exc)
        responder = _PARSE_ERROR_RESPONSES.get(exc.status_code, bad_request())
        request = HttpRequest(method="-", path="-", client_address=client_address)
        ctx = (responder >> set_header("Connection", "close"))(
            HttpContext(request=request, runtime=self.runtime)
        ).value
        await execute(ctx, writer)
        access_logger.info(self._format(ctx))


def start_web_server(config: ServerConfig, app: Handler) -> None:
    """Validate ``config`` and serve ``app`` until interrupted."""
    config.validate()
    WebServer(app, config).run()
