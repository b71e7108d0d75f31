"""Tests for flightdeck.routes — triggers, output policies and RouteConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from flightdeck._errors import ConfigError
from flightdeck.routes.config import GeneratorConfig, RouteConfig, step_name
from flightdeck.routes.outputs import (
    ChangeExtension,
    Custom,
    MultipleFiles,
    NewFileName,
    OutputPathError,
    SameFileName,
    clean_output_path,
)
from flightdeck.routes.triggers import (
    Once,
    OnFile,
    OnFileExt,
    OnFilePredicate,
    normalize_extension,
)


def render(store: object, project_root: Path, page: str | None) -> str:
    return ""


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class TestTriggers:
    """Trigger matching against project-relative POSIX paths."""

    def test_once_matches_no_file(self, tmp_path: Path) -> None:
        assert not Once().matches(tmp_path, "a.md")

    def test_on_file_exact(self, tmp_path: Path) -> None:
        trigger = OnFile("pages/about.md")
        assert trigger.matches(tmp_path, "pages/about.md")
        assert not trigger.matches(tmp_path, "about.md")

    def test_on_file_normalises_path(self, tmp_path: Path) -> None:
        assert OnFile("./pages\\about.md").path == "pages/about.md"

    def test_on_file_ext(self, tmp_path: Path) -> None:
        trigger = OnFileExt(".md")
        assert trigger.matches(tmp_path, "posts/a.md")
        assert not trigger.matches(tmp_path, "notes.txt")

    def test_on_file_ext_case_sensitive(self, tmp_path: Path) -> None:
        assert not OnFileExt(".md").matches(tmp_path, "README.MD")

    def test_on_file_ext_without_dot(self, tmp_path: Path) -> None:
        assert OnFileExt("md").extension == ".md"

    def test_on_file_ext_only_last_suffix(self, tmp_path: Path) -> None:
        assert not OnFileExt(".md").matches(tmp_path, "a.md.bak")

    def test_predicate(self, tmp_path: Path) -> None:
        (tmp_path / "a.md").write_text("draft: true")
        (tmp_path / "b.md").write_text("published")

        def is_draft(root: Path, rel: str) -> bool:
            return "draft" in (root / rel).read_text()

        trigger = OnFilePredicate(is_draft)
        assert trigger.matches(tmp_path, "a.md")
        assert not trigger.matches(tmp_path, "b.md")

    @pytest.mark.parametrize("ext", ["", ".", "  "])
    def test_empty_extension_rejected(self, ext: str) -> None:
        with pytest.raises(ConfigError):
            normalize_extension(ext)


# ---------------------------------------------------------------------------
# Output policies
# ---------------------------------------------------------------------------


class TestOutputPolicies:
    """Output path resolution."""

    def test_same_file_name(self) -> None:
        assert SameFileName().resolve("css/site.css") == "css/site.css"

    def test_change_extension(self) -> None:
        assert ChangeExtension("html").resolve("posts/a.md") == "posts/a.html"
        assert ChangeExtension(".html").resolve("a.md") == "a.html"

    def test_new_file_name(self) -> None:
        assert NewFileName("index.html").resolve(None) == "index.html"
        assert NewFileName("feed/rss.xml").resolve("a.md") == "feed/rss.xml"

    def test_custom(self) -> None:
        policy = Custom(lambda rel: f"{Path(rel).stem}/index.html")
        assert policy.resolve("posts/hello.md") == "hello/index.html"

    def test_custom_unsafe_path(self) -> None:
        with pytest.raises(OutputPathError):
            Custom(lambda rel: "../escape.html").resolve("a.md")

    def test_multiple_files_identity(self) -> None:
        pairs = MultipleFiles().split([("a.html", "A"), ("b/c.html", b"C")])
        assert pairs == (("a.html", "A"), ("b/c.html", b"C"))

    def test_multiple_files_mapper(self) -> None:
        policy = MultipleFiles(lambda result: [(f"{k}.txt", v) for k, v in result.items()])
        assert policy.split({"x": "1"}) == (("x.txt", "1"),)

    def test_multiple_files_empty(self) -> None:
        assert MultipleFiles().split([]) == ()

    def test_multiple_files_rejects_string(self) -> None:
        with pytest.raises(TypeError, match="sequence"):
            MultipleFiles().split("not pairs")

    def test_multiple_files_rejects_bad_pair(self) -> None:
        with pytest.raises(TypeError, match="pair"):
            MultipleFiles().split([("only-a-path",)])

    def test_multiple_files_rejects_bad_content(self) -> None:
        with pytest.raises(TypeError, match="str or bytes"):
            MultipleFiles().split([("a.html", 42)])


class TestCleanOutputPath:
    """Output paths must stay inside the output directory."""

    def test_normalises_separators(self) -> None:
        assert clean_output_path("a\\b.html") == "a/b.html"

    @pytest.mark.parametrize("path", ["", ".", "/etc/passwd", "../x.html", "a/../../x"])
    def test_rejects_unsafe(self, path: str) -> None:
        with pytest.raises(OutputPathError):
            clean_output_path(path)

    def test_is_value_error(self) -> None:
        assert issubclass(OutputPathError, ValueError)


# ---------------------------------------------------------------------------
# RouteConfig
# ---------------------------------------------------------------------------


class TestRouteConfig:
    """Validation, ordering and step identities."""

    def test_declaration_order(self) -> None:
        routes = RouteConfig(
            generators=[
                GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension("html")),
                GeneratorConfig("index.py", Once(), NewFileName("index.html")),
                GeneratorConfig("raw.py", OnFileExt(".md"), SameFileName()),
            ]
        )
        assert [r.step_id for r in routes.routes] == ["post.py", "index.py", "raw.py"]
        assert [r.step_id for r in routes.global_routes] == ["index.py"]
        assert [r.step_id for r in routes.file_routes] == ["post.py", "raw.py"]
        assert len(routes) == 3

    def test_all_matching_routes_returned(self, tmp_path: Path) -> None:
        routes = RouteConfig(
            generators=[
                GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension("html")),
                GeneratorConfig("about.py", OnFile("about.md"), NewFileName("about/index.html")),
            ]
        )
        assert [r.step_id for r in routes.matching(tmp_path, "about.md")] == [
            "post.py",
            "about.py",
        ]
        assert [r.step_id for r in routes.matching(tmp_path, "a.md")] == ["post.py"]
        assert routes.matching(tmp_path, "a.txt") == ()

    def test_duplicate_step_names_get_suffix(self) -> None:
        routes = RouteConfig(
            generators=[
                GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension("html")),
                GeneratorConfig("post.py", OnFileExt(".md"), ChangeExtension("txt")),
            ]
        )
        assert [r.step_id for r in routes.routes] == ["post.py", "post.py#2"]
        assert routes.get("post.py#2") is routes.routes[1]
        assert routes.get("missing") is None

    def test_callable_step_name(self) -> None:
        gen = GeneratorConfig(render, OnFileExt(".md"), ChangeExtension("html"))
        assert gen.name == f"{__name__}.render"
        assert step_name("post.py") == "post.py"

    def test_empty_is_valid(self) -> None:
        assert len(RouteConfig()) == 0

    def test_rejects_non_descriptor(self) -> None:
        with pytest.raises(ConfigError, match="generators\\[0\\]"):
            RouteConfig(generators=["post.py"])  # type: ignore[list-item]

    def test_rejects_empty_step(self) -> None:
        with pytest.raises(ConfigError, match="empty"):
            RouteConfig(generators=[GeneratorConfig(" ", OnFileExt("md"), SameFileName())])

    def test_rejects_non_callable_step(self) -> None:
        with pytest.raises(ConfigError, match="callable"):
            RouteConfig(generators=[GeneratorConfig(42, OnFileExt("md"), SameFileName())])  # type: ignore[arg-type]

    def test_rejects_unknown_trigger(self) -> None:
        with pytest.raises(ConfigError, match="trigger"):
            RouteConfig(generators=[GeneratorConfig("p.py", "*.md", SameFileName())])  # type: ignore[arg-type]

    def test_rejects_unknown_policy(self) -> None:
        with pytest.raises(ConfigError, match="output policy"):
            RouteConfig(generators=[GeneratorConfig("p.py", OnFileExt("md"), "out.html")])  # type: ignore[arg-type]

    @pytest.mark.parametrize("policy", [SameFileName(), ChangeExtension("html")])
    def test_once_needs_global_policy(self, policy: object) -> None:
        with pytest.raises(ConfigError, match="Once"):
            RouteConfig(generators=[GeneratorConfig("i.py", Once(), policy)])  # type: ignore[arg-type]

    def test_once_with_multiple_files(self) -> None:
        routes = RouteConfig(generators=[GeneratorConfig("feeds.py", Once(), MultipleFiles())])
        assert routes.routes[0].is_global
