"""vendor 目录物化

将缓存中已 checkout 的工作树复制到 <target>/<package>，
默认再剥离所有 .git 目录。复制失败直接终止：半成品的 vendor 目录不可用。
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from gotrash.core.cache.repo_cache import CacheState, RepositoryCache
from gotrash.core.exceptions import FilesystemError
from gotrash.core.manifest.models import Import

logger = logging.getLogger(__name__)


class VendorMaterializer:
    """vendor 目录物化器"""

    def __init__(self, cache: RepositoryCache, target_dir: Path) -> None:
        self.cache = cache
        self.target_dir = Path(target_dir)

    def materialize(self, pins: list[Import], *, keep: bool = False) -> Path:
        """重建 vendor 目录并复制全部固定项

        参数:
            keep: 保留 .git 目录

        异常:
            FilesystemError: 复制或清理失败
        """
        self.reset()
        logger.info("复制依赖...")
        for pin in pins:
            self.copy(pin)
        logger.info("复制依赖... 完成")
        if not keep:
            self.strip_git_dirs()
        return self.target_dir

    def reset(self) -> None:
        """清空并重建 vendor 目录"""
        try:
            if self.target_dir.exists():
                shutil.rmtree(self.target_dir)
            self.target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"无法重建 vendor 目录 {self.target_dir}: {e}") from e

    def copy(self, pin: Import) -> Path:
        """复制单个固定项的工作树，保留符号链接；与已复制内容重叠时合并"""
        entry = self.cache.entry(pin.package)
        if entry.state is not CacheState.CHECKED_OUT:
            raise FilesystemError(f"缓存条目未 checkout，无法复制: {pin.package}")
        dest = self.target_dir / pin.package
        logger.debug("复制 %s -> %s", entry.path, dest)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(entry.path, dest, symlinks=True, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            raise FilesystemError(f"复制 {entry.path} -> {dest} 失败: {e}") from e
        return dest

    def strip_git_dirs(self) -> int:
        """删除 vendor 目录下所有名为 .git 的目录，返回删除数量"""
        removed = 0
        for dirpath, dirnames, _ in os.walk(self.target_dir):
            if ".git" not in dirnames:
                continue
            path = Path(dirpath) / ".git"
            dirnames.remove(".git")
            if path.is_symlink():
                continue
            logger.info("删除 '%s'", path)
            try:
                shutil.rmtree(path)
            except OSError as e:
                raise FilesystemError(f"删除 {path} 失败: {e}") from e
            removed += 1
        return removed
