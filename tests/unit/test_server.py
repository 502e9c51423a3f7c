"""
Unit tests for the transport: execute, run_web_part and WebServer.
"""

import asyncio
import gzip
import logging

import pytest

from conftest import FakeStream, split_response
from webparts.combinators import NoMatch, choose
from webparts.config import ServerConfig
from webparts.files import browse_home
from webparts.http.response import respond_with
from webparts.http.status_codes import HttpCode
from webparts.matchers import GET, POST, path, url_scan
from webparts.responses import ok
from webparts.server import WebServer, execute, run_web_part


class TestRunWebPart:
    """Tests for routing outcome handling."""

    def test_matched_context_returned(self, ctx):
        result = run_web_part(ok("hi"), ctx)
        assert result.response.status == HttpCode.OK

    def test_no_match_becomes_404(self, ctx):
        result = run_web_part(lambda c: NoMatch, ctx)
        assert result.response.status == HttpCode.NOT_FOUND
        assert result.response.body == HttpCode.NOT_FOUND.message.encode()

    def test_exception_becomes_500_and_is_logged(self, ctx, caplog):
        def broken(c):
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="webparts.server"):
            result = run_web_part(broken, ctx)

        assert result.response.status == HttpCode.INTERNAL_SERVER_ERROR
        assert "boom" in caplog.text


class TestExecute:
    """Tests for writing a context to a stream."""

    def test_bytes_body(self, ctx):
        stream = FakeStream()
        asyncio.run(execute(ok("hello")(ctx).value, stream))

        status_line, headers, body = split_response(stream.data)
        assert status_line == "HTTP/1.1 200 OK"
        assert headers["content-length"] == "5"
        assert body == b"hello"
        assert stream.drains >= 1

    def test_head_skips_body(self, ctx):
        stream = FakeStream()
        asyncio.run(execute(ok("hello")(ctx).value, stream, include_body=False))

        _, headers, body = split_response(stream.data)
        assert headers["content-length"] == "5"
        assert body == b""

    def test_streamed_body_runs_after_head(self, ctx):
        order = []

        async def producer(c, stream):
            order.append("body")
            stream.write(b"chunk")

        stream = FakeStream()
        asyncio.run(execute(respond_with(HttpCode.OK, producer)(ctx).value, stream))

        assert order == ["body"]
        assert stream.chunks[0].startswith(b"HTTP/1.1 200 OK")
        assert stream.data.endswith(b"\r\n\r\nchunk")

    def test_head_does_not_run_producer(self, ctx):
        called = []

        async def producer(c, stream):
            called.append(1)

        asyncio.run(execute(
            respond_with(HttpCode.OK, producer)(ctx).value, FakeStream(), include_body=False,
        ))
        assert called == []


# =============================================================================
# End-to-end over a real socket
# =============================================================================

def make_app():
    return choose([
        GET >> path("/") >> ok("root"),
        GET >> url_scan("/items/%d", lambda item_id: ok(f"item {item_id}")),
        POST >> path("/echo") >> (lambda ctx: ok(ctx.request.get_form("name") or "")(ctx)),
        GET >> path("/crash") >> (lambda ctx: 1 / 0),
        browse_home(),
    ])


async def exchange(server: WebServer, raw: bytes) -> bytes:
    reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
    writer.write(raw)
    await writer.drain()
    data = await reader.read()
    writer.close()
    return data


def serve_and_send(config: ServerConfig, *requests: bytes):
    """Start a server on a free port, send each request on its own connection."""
    async def scenario():
        server = WebServer(make_app(), config)
        await server.start()
        try:
            return [await exchange(server, raw) for raw in requests]
        finally:
            await server.close()
    return asyncio.run(scenario())


@pytest.fixture
def config(web_root) -> ServerConfig:
    return ServerConfig(host="127.0.0.1", port=0, home_dir=str(web_root), log_level="WARNING")


class TestWebServer:
    """Tests against a live asyncio server."""

    def test_get_route(self, config):
        (raw,) = serve_and_send(config, b"GET / HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n")
        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.1 200 OK"
        assert headers["connection"] == "close"
        assert body == b"root"

    def test_scan_route(self, config):
        (raw,) = serve_and_send(config, b"GET /items/7 HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert split_response(raw)[2] == b"item 7"

    def test_form_post(self, config):
        body = b"name=alice"
        request = (
            b"POST /echo HTTP/1.1\r\nConnection: close\r\n"
            b"Content-Type: application/x-www-form-urlencoded\r\n"
            + f"Content-Length: {len(body)}\r\n\r\n".encode()
        ) + body
        (raw,) = serve_and_send(config, request)
        assert split_response(raw)[2] == b"alice"

    def test_not_found(self, config):
        (raw,) = serve_and_send(config, b"GET /missing HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert split_response(raw)[0] == "HTTP/1.1 404 Not Found"

    def test_handler_crash_is_500(self, config):
        (raw,) = serve_and_send(config, b"GET /crash HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert split_response(raw)[0] == "HTTP/1.1 500 Internal Server Error"

    def test_static_file(self, config):
        (raw,) = serve_and_send(config, b"GET /docs/readme.txt HTTP/1.1\r\nConnection: close\r\n\r\n")
        _, headers, body = split_response(raw)
        assert headers["content-type"] == "text/plain"
        assert body == b"read me"

    def test_gzip_file(self, config, web_root):
        request = b"GET /style.css HTTP/1.1\r\nAccept-Encoding: gzip\r\n\r\n"
        (raw,) = serve_and_send(config, request)
        _, headers, body = split_response(raw)
        assert headers["content-encoding"] == "gzip"
        assert headers["connection"] == "close"
        assert gzip.decompress(body) == (web_root / "style.css").read_bytes()

    def test_head_has_no_body(self, config):
        (raw,) = serve_and_send(config, b"HEAD /docs/readme.txt HTTP/1.1\r\nConnection: close\r\n\r\n")
        _, headers, body = split_response(raw)
        assert headers["content-length"] == "7"
        assert body == b""

    def test_traversal_forbidden(self, config):
        (raw,) = serve_and_send(config, b"GET /../../etc/passwd HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert split_response(raw)[0] == "HTTP/1.1 403 Forbidden"

    @pytest.mark.parametrize("request_line,status_line", [
        (b"NONSENSE", "HTTP/1.1 400 Bad Request"),
        (b"FOO / HTTP/1.1", "HTTP/1.1 405 Method Not Allowed"),
        (b"GET / HTTP/3.0", "HTTP/1.1 505 HTTP Version Not Supported"),
    ])
    def test_parse_errors(self, config, request_line, status_line):
        (raw,) = serve_and_send(config, request_line + b"\r\n\r\n")
        assert split_response(raw)[0] == status_line

    def test_too_large(self, config):
        config.max_request_size = 2048
        request = b"POST /echo HTTP/1.1\r\nContent-Length: 5000\r\n\r\n"
        (raw,) = serve_and_send(config, request)
        assert split_response(raw)[0] == "HTTP/1.1 413 Request Entity Too Large"

    def test_keep_alive_serves_two_requests(self, config):
        async def scenario():
            server = WebServer(make_app(), config)
            await server.start()
            try:
                reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
                writer.write(b"GET / HTTP/1.1\r\n\r\n")
                writer.write(b"GET /items/2 HTTP/1.1\r\nConnection: close\r\n\r\n")
                await writer.drain()
                data = await reader.read()
                writer.close()
                return data
            finally:
                await server.close()

        data = asyncio.run(scenario())
        assert data.count(b"HTTP/1.1 200 OK") == 2
        assert b"Connection: keep-alive" in data
        assert data.endswith(b"item 2")

    def test_access_log(self, config, caplog):
        with caplog.at_level(logging.INFO, logger="webparts.access"):
            serve_and_send(config, b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert '"GET / HTTP/1.1" 200 4' in caplog.text
