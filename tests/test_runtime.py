"""Tests for flightdeck.runtime — step module loading and invocation."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from flightdeck._errors import ConfigError, LoaderError
from flightdeck.config import FlightDeckConfig
from flightdeck.content.store import BuildInfo, ContentStore
from flightdeck.routes.config import GeneratorConfig, RouteConfig
from flightdeck.routes.outputs import ChangeExtension, MultipleFiles, NewFileName
from flightdeck.routes.triggers import Once, OnFileExt
from flightdeck.runtime.modules import load_module, module_name_for
from flightdeck.runtime.steps import StepRuntime, encode_payload, normalize_result

from .conftest import edit, write


def _runtime(root: Path, *generators: GeneratorConfig) -> StepRuntime:
    return StepRuntime(FlightDeckConfig(root=root), RouteConfig(generators=generators))


# ---------------------------------------------------------------------------
# Module loading
# ---------------------------------------------------------------------------


class TestLoadModule:
    """Project scripts import under synthetic package names."""

    def test_module_name_for(self, tmp_path: Path) -> None:
        name = module_name_for("flightdeck_generators", tmp_path / "blog" / "post.py", tmp_path)
        assert name == "flightdeck_generators.blog.post"

    def test_registers_module_and_parent(self, tmp_path: Path) -> None:
        script = write(tmp_path / "thing.py", "VALUE = 42\n")
        module = load_module(script, "flightdeck_test_pkg.thing")
        assert module.VALUE == 42
        assert sys.modules["flightdeck_test_pkg.thing"] is module
        assert sys.modules["flightdeck_test_pkg"].thing is module

    def test_failure_restores_previous(self, tmp_path: Path) -> None:
        good = load_module(write(tmp_path / "ok.py", "VALUE = 1\n"), "flightdeck_test_pkg.swap")
        bad = write(tmp_path / "bad.py", "raise ValueError('broken')\n")
        with pytest.raises(ConfigError, match="broken"):
            load_module(bad, "flightdeck_test_pkg.swap")
        assert sys.modules["flightdeck_test_pkg.swap"] is good

    def test_custom_error_type(self, tmp_path: Path) -> None:
        bad = write(tmp_path / "bad.py", "1/0\n")
        with pytest.raises(LoaderError, match="Failed to load"):
            load_module(bad, "flightdeck_test_pkg.bad", error=LoaderError)


# ---------------------------------------------------------------------------
# Result normalisation
# ---------------------------------------------------------------------------


class TestNormalizeResult:
    """Step results become (path | None, bytes) pairs."""

    def test_encode_str(self) -> None:
        assert encode_payload("héllo") == "héllo".encode()

    def test_encode_bytes(self) -> None:
        assert encode_payload(b"\x00\x01") == b"\x00\x01"
        assert encode_payload(bytearray(b"ab")) == b"ab"

    def test_encode_rejects_other(self) -> None:
        with pytest.raises(TypeError, match="str or bytes"):
            encode_payload(None)  # type: ignore[arg-type]

    def test_single_output(self) -> None:
        route = RouteConfig([GeneratorConfig("p.py", OnFileExt("md"), ChangeExtension("html"))]).routes[0]
        assert normalize_result(route, "<p>") == ((None, b"<p>"),)

    def test_multiple_files(self) -> None:
        route = RouteConfig([GeneratorConfig("f.py", Once(), MultipleFiles())]).routes[0]
        assert normalize_result(route, [("a.xml", "A"), ("b.xml", b"B")]) == (
            ("a.xml", b"A"),
            ("b.xml", b"B"),
        )


# ---------------------------------------------------------------------------
# StepRuntime
# ---------------------------------------------------------------------------


class TestStepResolution:
    """Script-backed and callable steps."""

    def test_callable_step(self, tmp_path: Path) -> None:
        def step(store: ContentStore, root: Path, page: str | None) -> str:
            return f"{root.name}:{page}"

        runtime = _runtime(tmp_path, GeneratorConfig(step, OnFileExt("md"), ChangeExtension("html")))
        route = runtime.routes.routes[0]
        assert runtime.script_path(route) is None
        assert runtime.invoke(route, ContentStore(), "a.md") == f"{tmp_path.name}:a.md"

    def test_script_step(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project, GeneratorConfig("post", OnFileExt("md"), ChangeExtension("html")))
        route = runtime.routes.routes[0]
        assert runtime.script_path(route) == tmp_project / "generators" / "post.py"
        assert runtime.invoke(route, ContentStore(), "a.md") == "<html><body>Alpha</body></html>"

    def test_missing_script(self, tmp_path: Path) -> None:
        runtime = _runtime(tmp_path, GeneratorConfig("nope.py", OnFileExt("md"), ChangeExtension("html")))
        with pytest.raises(ConfigError, match="not found"):
            runtime.prepare()

    def test_script_without_generate(self, tmp_path: Path) -> None:
        write(tmp_path / "generators" / "empty.py", "x = 1\n")
        runtime = _runtime(tmp_path, GeneratorConfig("empty.py", OnFileExt("md"), ChangeExtension("html")))
        with pytest.raises(ConfigError, match="generate"):
            runtime.prepare()

    def test_script_reimported_on_change(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project, GeneratorConfig("post.py", OnFileExt("md"), ChangeExtension("html")))
        route = runtime.routes.routes[0]
        assert runtime.invoke(route, ContentStore(), "a.md").startswith("<html>")

        edit(
            tmp_project / "generators" / "post.py",
            "def generate(store, project_root, page):\n    return 'v2'\n",
        )
        assert runtime.invoke(route, ContentStore(), "a.md") == "v2"

    def test_unchanged_script_not_reimported(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project, GeneratorConfig("post.py", OnFileExt("md"), ChangeExtension("html")))
        route = runtime.routes.routes[0]
        assert runtime.resolve(route) is runtime.resolve(route)

    def test_scripts_for(self, tmp_project: Path) -> None:
        runtime = _runtime(
            tmp_project,
            GeneratorConfig("post.py", OnFileExt("md"), ChangeExtension("html")),
            GeneratorConfig("index.py", Once(), NewFileName("index.html")),
            GeneratorConfig("post.py", OnFileExt("txt"), ChangeExtension("html")),
        )
        found = runtime.scripts_for(tmp_project / "generators" / "post.py")
        assert [r.step_id for r in found] == ["post.py", "post.py#2"]
        assert runtime.scripts_for(tmp_project / "a.md") == ()


class TestLoaders:
    """Loaders run in sorted order against a fresh store."""

    def test_build_info_first(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project)
        store = ContentStore()
        count = runtime.run_loaders(store, watch=True)
        assert count == 1
        assert store.types[0] is BuildInfo
        info = store.try_get_value(BuildInfo)
        assert info is not None
        assert info.project_root == tmp_project
        assert info.watch is True

    def test_loader_populates_store(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project)
        store = ContentStore()
        runtime.run_loaders(store)
        page_type = sys.modules["flightdeck_loaders.pages"].Page
        assert [p.title for p in store.values(page_type)] == ["a", "b"]

    def test_loader_order_and_private_skipped(self, tmp_path: Path) -> None:
        write(tmp_path / "loaders" / "b_second.py", "def loader(root, store):\n    store.add('second')\n")
        write(tmp_path / "loaders" / "a_first.py", "def loader(root, store):\n    store.add('first')\n")
        write(tmp_path / "loaders" / "_helpers.py", "raise RuntimeError('never imported')\n")
        runtime = _runtime(tmp_path)
        assert [p.name for p in runtime.loader_paths()] == ["a_first.py", "b_second.py"]
        store = ContentStore()
        runtime.run_loaders(store)
        assert store.values(str) == ("first", "second")

    def test_no_loader_directory(self, tmp_path: Path) -> None:
        runtime = _runtime(tmp_path)
        store = ContentStore()
        assert runtime.run_loaders(store) == 0
        assert len(store) == 1

    def test_loader_exception_wrapped(self, tmp_path: Path) -> None:
        write(tmp_path / "loaders" / "bad.py", "def loader(root, store):\n    raise KeyError('slug')\n")
        with pytest.raises(LoaderError, match="bad.py failed"):
            _runtime(tmp_path).run_loaders(ContentStore())

    def test_loader_import_error(self, tmp_path: Path) -> None:
        write(tmp_path / "loaders" / "bad.py", "import not_a_real_module_xyz\n")
        with pytest.raises(LoaderError):
            _runtime(tmp_path).prepare()

    def test_loader_without_entry_point(self, tmp_path: Path) -> None:
        write(tmp_path / "loaders" / "bad.py", "x = 1\n")
        with pytest.raises(LoaderError, match="must define"):
            _runtime(tmp_path).run_loaders(ContentStore())

    def test_changed_loader_drops_generator_modules(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project, GeneratorConfig("index.py", Once(), NewFileName("index.html")))
        runtime.prepare()
        route = runtime.routes.routes[0]
        first = runtime.resolve(route)

        assert runtime.refresh_loaders() is False
        edit(tmp_project / "loaders" / "pages.py", (tmp_project / "loaders" / "pages.py").read_text())
        assert runtime.refresh_loaders() is True
        assert runtime.resolve(route) is not first

    def test_generator_sees_loader_types(self, tmp_project: Path) -> None:
        runtime = _runtime(tmp_project, GeneratorConfig("index.py", Once(), NewFileName("index.html")))
        runtime.prepare()
        store = ContentStore()
        runtime.run_loaders(store)
        html = runtime.invoke(runtime.routes.routes[0], store, None)
        assert html == "<ul><li>a</li><li>b</li></ul>"
