"""Tests for flightdeck.server.app — serving the output directory with chirp."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from flightdeck.config import FlightDeckConfig
from flightdeck.observability.collector import StackCollector
from flightdeck.reactive.channel import ReloadChannel
from flightdeck.server.livereload import SCRIPT_MARKER, STATS_ENDPOINT

from .conftest import write

pytest.importorskip("chirp")

from flightdeck.server.app import create_server_app, register_reload_endpoint  # noqa: E402


def _body(response: object) -> str:
    body = response.body  # type: ignore[attr-defined]
    return body.decode() if isinstance(body, bytes) else body


@pytest.fixture
def site(tmp_path: Path) -> FlightDeckConfig:
    config = FlightDeckConfig(root=tmp_path)
    write(config.output_path / "index.html", "<html><body>home</body></html>")
    write(config.output_path / "posts" / "index.html", "<html><body>posts</body></html>")
    write(config.output_path / "site.css", "body{}")
    return config


class TestReloadEndpoint:
    """Route registration on the chirp app."""

    def test_registered(self, tmp_path: Path) -> None:
        from chirp import App, AppConfig

        app = App(config=AppConfig(template_dir=tmp_path))
        register_reload_endpoint(app, ReloadChannel())
        route_names = [r.name for r in app._pending_routes if hasattr(r, "name")]
        assert "flightdeck:reload" in route_names


class TestServerApp:
    """Output files served with the reload script injected into HTML."""

    @pytest.mark.asyncio
    async def test_index_for_root(self, site: FlightDeckConfig) -> None:
        from chirp.testing.client import TestClient

        app = create_server_app(site, ReloadChannel(), StackCollector())
        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200
            body = _body(response)
            assert "home" in body
            assert SCRIPT_MARKER in body

    @pytest.mark.asyncio
    async def test_index_for_directory(self, site: FlightDeckConfig) -> None:
        from chirp.testing.client import TestClient

        app = create_server_app(site, ReloadChannel(), StackCollector())
        async with TestClient(app) as client:
            response = await client.get("/posts/")
            assert response.status == 200
            assert "posts" in _body(response)

    @pytest.mark.asyncio
    async def test_index_bytes_served_unchanged(self, site: FlightDeckConfig) -> None:
        from chirp.testing.client import TestClient

        page = "<html><body>café</body></html>".encode("latin-1")
        (site.output_path / "latin").mkdir()
        (site.output_path / "latin" / "index.html").write_bytes(page)
        app = create_server_app(site, ReloadChannel(), StackCollector())
        async with TestClient(app) as client:
            response = await client.get("/latin/")
            assert response.status == 200
            body = response.body
            if isinstance(body, str):
                body = body.encode("latin-1")
            assert body.startswith(b"<html><body>caf\xe9")
            assert SCRIPT_MARKER.encode() in body

    @pytest.mark.asyncio
    async def test_static_file(self, site: FlightDeckConfig) -> None:
        from chirp.testing.client import TestClient

        app = create_server_app(site, ReloadChannel(), StackCollector())
        async with TestClient(app) as client:
            response = await client.get("/site.css")
            assert response.status == 200
            assert SCRIPT_MARKER not in _body(response)

    @pytest.mark.asyncio
    async def test_missing_file(self, site: FlightDeckConfig) -> None:
        from chirp.testing.client import TestClient

        app = create_server_app(site, ReloadChannel(), StackCollector())
        async with TestClient(app) as client:
            response = await client.get("/nope/")
            assert response.status == 404

    @pytest.mark.asyncio
    async def test_stats_endpoint(self, site: FlightDeckConfig) -> None:
        from chirp.testing.client import TestClient

        collector = StackCollector()
        collector.record_pass("full", files_written=2)
        app = create_server_app(site, ReloadChannel(), collector)
        async with TestClient(app) as client:
            response = await client.get(STATS_ENDPOINT)
            assert response.status == 200
            data = json.loads(_body(response))
            assert data["event_log"]["by_type"] == {"PassCompleted": 1}
            assert data["passes"] == {"count": 0}
