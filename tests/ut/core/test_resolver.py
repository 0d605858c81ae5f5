"""import 图解析器单元测试（注入合成包图）"""

from __future__ import annotations

import threading
from pathlib import Path

from gotrash.core.constraints import Platform
from gotrash.core.resolver import ImportGraphResolver

ROOT = "example.com/proj"
LINUX = Platform.parse("linux/amd64")
WINDOWS = Platform.parse("windows/amd64")


class FakeScanner:
    """按 (包名, 平台) 返回预设 import 的扫描器

    graph 的键为包名，值为 {平台 label 或 "*": imports}。
    """

    def __init__(self, graph: dict[str, dict[str, set[str]]], package_dirs=()) -> None:
        self.graph = graph
        self.package_dirs = {Path(p) for p in package_dirs}
        self.calls: list[tuple[str, str]] = []
        self.includes: dict[str, object] = {}
        self._lock = threading.Lock()

    def scan(self, directory, package, platform, include=None):
        with self._lock:
            self.calls.append((package, platform.label))
            self.includes[package] = include
        edges = self.graph.get(package, {})
        return set(edges.get("*", set())) | set(edges.get(platform.label, set()))

    def is_package_dir(self, directory) -> bool:
        return Path(directory) in self.package_dirs


def _resolver(tmp_path, graph, platforms=None, **kwargs) -> ImportGraphResolver:
    return ImportGraphResolver(
        ROOT, tmp_path, tmp_path / "vendor",
        platforms=platforms, scanner=FakeScanner(graph), **kwargs,
    )


class TestCollect:
    def test_transitive_closure(self, tmp_path) -> None:
        graph = {
            ROOT: {"*": {"fmt", "a.io/a", f"{ROOT}/internal"}},
            "a.io/a": {"*": {"b.io/b", "os"}},
            "b.io/b": {"*": set()},
        }
        r = _resolver(tmp_path, graph)
        assert r.collect({ROOT}) == {ROOT, "a.io/a", "b.io/b"}

    def test_cycle_terminates(self, tmp_path) -> None:
        graph = {
            ROOT: {"*": {"a.io/a"}},
            "a.io/a": {"*": {"b.io/b"}},
            "b.io/b": {"*": {"a.io/a"}},
        }
        r = _resolver(tmp_path, graph)
        assert r.collect({ROOT}) == {ROOT, "a.io/a", "b.io/b"}
        scanned = [pkg for pkg, _ in r.scanner.calls]
        assert sorted(scanned) == sorted({ROOT, "a.io/a", "b.io/b"})

    def test_platform_union(self, tmp_path) -> None:
        """只在某个平台出现的边也会被收集"""
        graph = {
            ROOT: {"linux/amd64": {"l.io/l"}, "windows/amd64": {"w.io/w"}},
            "w.io/w": {"windows/amd64": {"ww.io/dep"}},
        }
        r = _resolver(tmp_path, graph, platforms=[LINUX, WINDOWS])
        assert r.collect({ROOT}) == {ROOT, "l.io/l", "w.io/w", "ww.io/dep"}

    def test_single_platform_misses_other_edges(self, tmp_path) -> None:
        graph = {ROOT: {"linux/amd64": {"l.io/l"}, "windows/amd64": {"w.io/w"}}}
        r = _resolver(tmp_path, graph, platforms=[LINUX])
        assert r.collect({ROOT}) == {ROOT, "l.io/l"}

    def test_order_independent(self, tmp_path) -> None:
        graph = {
            ROOT: {"*": {"a.io/a", "c.io/c"}},
            f"{ROOT}/cmd": {"*": {"b.io/b"}},
            "a.io/a": {"*": {"c.io/c"}},
        }
        seeds = [ROOT, f"{ROOT}/cmd"]
        one = _resolver(tmp_path, graph).collect(set(seeds))
        two = _resolver(tmp_path, graph, max_workers=1).collect(set(reversed(seeds)))
        assert one == two == {ROOT, f"{ROOT}/cmd", "a.io/a", "b.io/b", "c.io/c"}

    def test_empty_seeds(self, tmp_path) -> None:
        assert _resolver(tmp_path, {}).collect(set()) == set()

    def test_vendored_excludes_tests(self, tmp_path) -> None:
        graph = {ROOT: {"*": {"a.io/a"}}}
        r = _resolver(tmp_path, graph)
        r.collect({ROOT})
        assert r.scanner.includes[ROOT] is None
        include = r.scanner.includes["a.io/a"]
        assert include is not None
        assert not include(Path("x_test.go"))
        assert include(Path("x.go"))


class TestListPackages:
    def test_walk_skips_vendor_and_dot_dirs(self, tmp_path) -> None:
        for d in ("cmd/tool", "vendor/a.io/a", ".git/x", "pkg/vendor", "docs"):
            (tmp_path / d).mkdir(parents=True)
        scanner = FakeScanner({}, package_dirs=[
            tmp_path, tmp_path / "cmd" / "tool", tmp_path / "vendor" / "a.io" / "a",
            tmp_path / ".git" / "x", tmp_path / "pkg" / "vendor",
        ])
        r = ImportGraphResolver(ROOT, tmp_path, "vendor", scanner=scanner)
        assert r.list_packages() == {ROOT, f"{ROOT}/cmd/tool"}

    def test_collect_defaults_to_project_packages(self, tmp_path) -> None:
        (tmp_path / "sub").mkdir()
        scanner = FakeScanner(
            {f"{ROOT}/sub": {"*": {"a.io/a"}}},
            package_dirs=[tmp_path / "sub"],
        )
        r = ImportGraphResolver(ROOT, tmp_path, tmp_path / "vendor", scanner=scanner)
        assert r.collect() == {f"{ROOT}/sub", "a.io/a"}


class TestPackageDir:
    def test_locations(self, tmp_path) -> None:
        r = _resolver(tmp_path, {})
        assert r.package_dir(ROOT) == (tmp_path, False)
        assert r.package_dir(f"{ROOT}/x/y") == (tmp_path / "x" / "y", False)
        assert r.package_dir("a.io/a") == (tmp_path / "vendor" / "a.io" / "a", True)

    def test_relative_lib_root(self, tmp_path) -> None:
        r = ImportGraphResolver(ROOT, tmp_path, "vendor", scanner=FakeScanner({}))
        assert r.lib_root == tmp_path / "vendor"
