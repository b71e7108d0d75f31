"""Tests for flightdeck.server.livereload — reload script injection."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from flightdeck.server.livereload import (
    RELOAD_ENDPOINT,
    RELOAD_EVENT,
    RELOAD_SCRIPT,
    SCRIPT_MARKER,
    inject_reload_script,
    livereload_middleware,
)


@dataclass(frozen=True, slots=True)
class FakeResponse:
    body: str | bytes
    content_type: str


class FakeStream:
    """A streaming response: no body attribute."""

    content_type = "text/event-stream"


class TestReloadScript:
    """The client script listens on the reload endpoint."""

    def test_endpoint_constant(self) -> None:
        assert RELOAD_ENDPOINT == "/__flightdeck/reload"

    def test_script_contents(self) -> None:
        assert RELOAD_ENDPOINT in RELOAD_SCRIPT
        assert RELOAD_EVENT in RELOAD_SCRIPT
        assert "EventSource" in RELOAD_SCRIPT
        assert "location.reload()" in RELOAD_SCRIPT
        assert SCRIPT_MARKER in RELOAD_SCRIPT


class TestInjectReloadScript:
    """Injection position and idempotence."""

    def test_before_body_close(self) -> None:
        html = inject_reload_script("<html><body><p>hi</p></body></html>")
        assert html.index(SCRIPT_MARKER) < html.index("</body>")
        assert html.endswith("</body></html>")

    def test_before_html_close_without_body(self) -> None:
        html = inject_reload_script("<html><p>hi</p></html>")
        assert html.index(SCRIPT_MARKER) < html.index("</html>")

    def test_appended_to_fragment(self) -> None:
        html = inject_reload_script("<p>fragment</p>")
        assert html.startswith("<p>fragment</p>")
        assert SCRIPT_MARKER in html

    def test_idempotent(self) -> None:
        once = inject_reload_script("<body></body>")
        assert inject_reload_script(once) == once

    def test_only_first_body_close(self) -> None:
        html = inject_reload_script("<body></body><!-- </body> -->")
        assert html.count(SCRIPT_MARKER) == 1

    def test_bytes_keep_their_encoding(self) -> None:
        page = "<html><body>été</body></html>".encode("latin-1")
        html = inject_reload_script(page)
        assert isinstance(html, bytes)
        assert html.startswith(b"<html><body>\xe9t\xe9<script")
        assert html.endswith(b"</body></html>")

    def test_bytes_idempotent(self) -> None:
        once = inject_reload_script(b"<body></body>")
        assert inject_reload_script(once) == once


class TestLivereloadMiddleware:
    """Only HTML responses are rewritten."""

    @pytest.mark.asyncio
    async def test_html_response(self) -> None:
        async def next_(request: object) -> FakeResponse:
            return FakeResponse(body=b"<body>hi</body>", content_type="text/html; charset=utf-8")

        response = await livereload_middleware(object(), next_)  # type: ignore[arg-type]
        assert SCRIPT_MARKER.encode() in response.body

    @pytest.mark.asyncio
    async def test_non_utf8_body_preserved(self) -> None:
        page = "<body>café</body>".encode("latin-1")

        async def next_(request: object) -> FakeResponse:
            return FakeResponse(body=page, content_type="text/html")

        response = await livereload_middleware(object(), next_)  # type: ignore[arg-type]
        assert response.body.startswith(b"<body>caf\xe9<script")
        assert SCRIPT_MARKER.encode() in response.body

    @pytest.mark.asyncio
    async def test_non_html_untouched(self) -> None:
        original = FakeResponse(body="body{}", content_type="text/css")

        async def next_(request: object) -> FakeResponse:
            return original

        assert await livereload_middleware(object(), next_) is original  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_streaming_untouched(self) -> None:
        stream = FakeStream()

        async def next_(request: object) -> FakeStream:
            return stream

        assert await livereload_middleware(object(), next_) is stream  # type: ignore[arg-type]
