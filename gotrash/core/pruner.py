"""vendor 目录裁剪

按实际 import 图删除 vendor 中用不到的内容，重复执行直到某一轮没有删除任何东西:

1. 以 vendor 目录为库根重新计算存活包集合
2. 删除命中清单 exclude 规则的路径
3. 删除所有 *_test.go，以及所在包不存活的 *.go
4. 删除既不存活、也不是存活包祖先的目录（不再向下遍历）
5. 反复删除空目录

删除失败只记录日志，文件留到下次运行处理。
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from gotrash.core.manifest.models import Manifest
from gotrash.core.packages import PackageSet, merge, parent_packages
from gotrash.core.resolver import ImportGraphResolver

logger = logging.getLogger(__name__)


@dataclass
class PruneReport:
    """裁剪结果统计"""

    passes: int = 0
    removed_files: int = 0
    removed_dirs: int = 0
    failures: int = 0
    missing: list[str] = field(default_factory=list)  # 被整体删除的固定项


class Pruner:
    """vendor 裁剪器"""

    def __init__(self, resolver: ImportGraphResolver, target_dir: Path) -> None:
        self.resolver = resolver
        self.target_dir = Path(target_dir)
        self.report = PruneReport()

    def prune(self, manifest: Manifest) -> PruneReport:
        """裁剪到不动点，然后检查每个固定项是否仍存在"""
        self.report = PruneReport()
        if not self.target_dir.is_dir():
            logger.warning("vendor 目录不存在: %s", self.target_dir)
        else:
            while True:
                self.report.passes += 1
                removed = self.prune_once(manifest.excludes)
                logger.debug("第 %d 轮裁剪: 删除 %d 项", self.report.passes, removed)
                if removed == 0:
                    break

        for pin in manifest.imports:
            if not (self.target_dir / pin.package).exists():
                logger.warning(
                    "包 '%s' 已被完全删除，可能已不再使用 (见 %s)",
                    pin.package, manifest.source_file or "清单",
                )
                self.report.missing.append(pin.package)
        return self.report

    def prune_once(self, excludes: list[str]) -> int:
        """执行一轮裁剪，返回删除的文件和目录总数"""
        live = self.resolver.collect()
        return (
            self.remove_excludes(excludes)
            + self.remove_unused(live)
            + self.remove_empty_dirs()
        )

    # ------------------------------------------------------------------
    # 各步骤
    # ------------------------------------------------------------------

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.target_dir).as_posix()

    def remove_excludes(self, excludes: list[str]) -> int:
        """删除与 exclude 规则完全匹配的相对路径（整棵子树）"""
        patterns = {e.strip().strip("/") for e in excludes if e.strip().strip("/")}
        if not patterns:
            return 0
        count = 0
        for dirpath, dirnames, filenames in os.walk(self.target_dir):
            current = Path(dirpath)
            for name in filenames:
                path = current / name
                if self._rel(path) in patterns:
                    logger.info("删除排除的文件: '%s'", path)
                    count += self._remove_file(path)
            kept = []
            for name in dirnames:
                path = current / name
                if self._rel(path) in patterns:
                    logger.info("删除排除的目录: '%s'", path)
                    count += self._remove_tree(path)
                else:
                    kept.append(name)
            dirnames[:] = kept
        return count

    def remove_unused(self, live: PackageSet) -> int:
        """删除不存活包的源文件、所有测试文件，以及无关目录"""
        parents = merge(*(parent_packages("", p) for p in live))
        count = 0
        for dirpath, dirnames, filenames in os.walk(self.target_dir):
            current = Path(dirpath)
            pkg = "" if current == self.target_dir else self._rel(current)
            for name in filenames:
                if not name.endswith(".go"):
                    continue
                if name.endswith("_test.go") or pkg not in live:
                    path = current / name
                    logger.debug("删除未使用的源文件: '%s'", path)
                    count += self._remove_file(path)
            kept = []
            for name in dirnames:
                path = current / name
                rel = self._rel(path)
                if rel in live or rel in parents:
                    kept.append(name)
                    continue
                logger.info("删除未使用的目录: '%s'", path)
                count += self._remove_tree(path)
            dirnames[:] = kept
        return count

    def remove_empty_dirs(self) -> int:
        """反复删除空目录直到没有可删的（不删除 vendor 根目录）"""
        total = 0
        while True:
            count = 0
            for dirpath, _, _ in os.walk(self.target_dir, topdown=False):
                path = Path(dirpath)
                if path == self.target_dir or path.is_symlink():
                    continue
                try:
                    next(path.iterdir())
                    continue
                except StopIteration:
                    pass
                except OSError as e:
                    logger.error("无法读取目录 '%s': %s", path, e)
                    self.report.failures += 1
                    continue
                try:
                    path.rmdir()
                except OSError as e:
                    logger.error("删除空目录失败 '%s': %s", path, e)
                    self.report.failures += 1
                    continue
                logger.info("删除空目录: '%s'", path)
                self.report.removed_dirs += 1
                count += 1
            total += count
            if count == 0:
                return total

    # ------------------------------------------------------------------
    # 删除原语：失败不致命
    # ------------------------------------------------------------------

    def _remove_file(self, path: Path) -> int:
        try:
            path.unlink()
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.error("删除文件失败 '%s': %s", path, e)
            self.report.failures += 1
            return 0
        self.report.removed_files += 1
        return 1

    def _remove_tree(self, path: Path) -> int:
        try:
            if path.is_symlink():
                path.unlink()
            else:
                shutil.rmtree(path)
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.error("删除目录失败 '%s': %s", path, e)
            self.report.failures += 1
            return 0
        self.report.removed_dirs += 1
        return 1
