"""Shared test fixtures for flightdeck."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from flightdeck.config import FlightDeckConfig
from flightdeck.routes.config import GeneratorConfig, RouteConfig
from flightdeck.routes.outputs import ChangeExtension
from flightdeck.routes.triggers import OnFileExt

PAGES_LOADER = '''\
from dataclasses import dataclass


@dataclass(frozen=True)
class Page:
    title: str
    source: str


def loader(project_root, store):
    for path in sorted(project_root.glob("*.md")):
        store.add(Page(title=path.stem, source=path.name))
'''

POST_GENERATOR = '''\
def generate(store, project_root, page):
    text = (project_root / page).read_text(encoding="utf-8")
    return f"<html><body>{text}</body></html>"
'''

INDEX_GENERATOR = '''\
from flightdeck_loaders.pages import Page


def generate(store, project_root, page):
    items = "".join(f"<li>{p.title}</li>" for p in store.values(Page))
    return f"<ul>{items}</ul>"
'''

CONFIG_PY = '''\
from flightdeck import (
    ChangeExtension, GeneratorConfig, NewFileName, Once, OnFileExt, RouteConfig,
)

config = RouteConfig(generators=[
    GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension(".html")),
    GeneratorConfig("index.py", Once(), NewFileName("index.html")),
])
'''


def write(path: Path, text: str) -> Path:
    """Write *text* to *path*, creating parents."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def edit(path: Path, text: str) -> Path:
    """Rewrite *path* and push its mtime forward so the change is always visible."""
    write(path, text)
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 2_000_000_000))
    return path


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a project with two markdown pages, a text note, a loader and generators.

    Layout::

        a.md, b.md, notes.txt
        config.py                (post.py on *.md, index.py once)
        loaders/pages.py         (one Page per *.md)
        generators/post.py
        generators/index.py

    """
    write(tmp_path / "a.md", "Alpha")
    write(tmp_path / "b.md", "Beta")
    write(tmp_path / "notes.txt", "not a page")
    write(tmp_path / "config.py", CONFIG_PY)
    write(tmp_path / "loaders" / "pages.py", PAGES_LOADER)
    write(tmp_path / "generators" / "post.py", POST_GENERATOR)
    write(tmp_path / "generators" / "index.py", INDEX_GENERATOR)
    return tmp_path


@pytest.fixture
def config(tmp_path: Path) -> FlightDeckConfig:
    """A FlightDeckConfig rooted at a temp directory."""
    return FlightDeckConfig(root=tmp_path)


class CallRecorder:
    """A producer step that records every invocation."""

    def __init__(self, render: Callable[[Any, Path, str | None], Any] | None = None) -> None:
        self.calls: list[str | None] = []
        self._render = render

    def __call__(self, store: Any, project_root: Path, page: str | None) -> Any:
        self.calls.append(page)
        if self._render is not None:
            return self._render(store, project_root, page)
        return f"<p>{(project_root / page).read_text()}</p>" if page else "<p>once</p>"

    def count(self, page: str | None) -> int:
        return self.calls.count(page)


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


def md_routes(step: Callable[..., Any]) -> RouteConfig:
    """RouteConfig with one ``*.md -> *.html`` step."""
    return RouteConfig(generators=[GeneratorConfig(step, OnFileExt(".md"), ChangeExtension("html"))])
