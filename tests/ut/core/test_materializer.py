"""vendor 目录物化单元测试"""

from __future__ import annotations

import os

import pytest

from gotrash.core.cache import CacheState, RepositoryCache
from gotrash.core.exceptions import FilesystemError
from gotrash.core.manifest import Import
from gotrash.core.materializer import VendorMaterializer


@pytest.fixture()
def cache(tmp_path):
    return RepositoryCache(tmp_path / "cache")


def _checked_out(cache: RepositoryCache, package: str, files: dict[str, str]) -> None:
    entry = cache.entry(package)
    for rel, text in files.items():
        path = entry.path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    entry.state = CacheState.CHECKED_OUT


class TestMaterialize:
    def test_copies_and_strips_git(self, cache, tmp_path) -> None:
        _checked_out(cache, "a.io/a", {"a.go": "package a", ".git/HEAD": "ref", "sub/.git/x": "y"})
        target = tmp_path / "proj" / "vendor"
        VendorMaterializer(cache, target).materialize([Import("a.io/a", "v1")])
        assert (target / "a.io/a/a.go").read_text() == "package a"
        assert not (target / "a.io/a/.git").exists()
        assert not (target / "a.io/a/sub/.git").exists()
        assert (target / "a.io/a/sub").is_dir()

    def test_keep_git(self, cache, tmp_path) -> None:
        _checked_out(cache, "a.io/a", {"a.go": "package a", ".git/HEAD": "ref"})
        target = tmp_path / "vendor"
        VendorMaterializer(cache, target).materialize([Import("a.io/a", "v1")], keep=True)
        assert (target / "a.io/a/.git/HEAD").is_file()

    def test_clears_old_content(self, cache, tmp_path) -> None:
        _checked_out(cache, "a.io/a", {"a.go": "package a"})
        target = tmp_path / "vendor"
        (target / "old.io/x").mkdir(parents=True)
        VendorMaterializer(cache, target).materialize([Import("a.io/a", "v1")])
        assert not (target / "old.io").exists()

    def test_overlapping_pins_merge(self, cache, tmp_path) -> None:
        _checked_out(cache, "a.io/a", {"a.go": "package a"})
        _checked_out(cache, "a.io/a/sub", {"s.go": "package sub"})
        target = tmp_path / "vendor"
        VendorMaterializer(cache, target).materialize(
            [Import("a.io/a", "v1"), Import("a.io/a/sub", "v2")],
        )
        assert (target / "a.io/a/a.go").is_file()
        assert (target / "a.io/a/sub/s.go").is_file()

    @pytest.mark.skipif(os.name == "nt", reason="需要符号链接支持")
    def test_symlinks_preserved(self, cache, tmp_path) -> None:
        _checked_out(cache, "a.io/a", {"a.go": "package a"})
        (cache.entry("a.io/a").path / "link.go").symlink_to("a.go")
        target = tmp_path / "vendor"
        VendorMaterializer(cache, target).materialize([Import("a.io/a", "v1")])
        link = target / "a.io/a/link.go"
        assert link.is_symlink()
        assert os.readlink(link) == "a.go"

    def test_not_checked_out(self, cache, tmp_path) -> None:
        with pytest.raises(FilesystemError, match="未 checkout"):
            VendorMaterializer(cache, tmp_path / "vendor").materialize([Import("a.io/a", "v1")])

    def test_strip_count(self, cache, tmp_path) -> None:
        target = tmp_path / "vendor"
        for d in ("a/.git", "b/c/.git"):
            (target / d).mkdir(parents=True)
        assert VendorMaterializer(cache, target).strip_git_dirs() == 2
