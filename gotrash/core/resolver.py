"""import 图解析器

从项目自身的包出发，计算所有平台变体下可达的外部包路径集合（含种子）。

每一层对 (包, 平台) 组合并发扫描，结果在调用线程中汇总（单写者），
新发现且未扫描过的包进入下一层，直到某一层没有新包为止。
已见集合单调递增且有限，因此必然终止。
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Protocol

from gotrash.core.constraints import Platform
from gotrash.core.packages import PackageSet, is_stdlib, is_within
from gotrash.core.scanner import FileFilter, SourceScanner

logger = logging.getLogger(__name__)


class Scanner(Protocol):
    """扫描器协议，便于测试注入合成的包图"""

    def scan(
        self, directory: Path, package: str, platform: Platform,
        include: FileFilter | None = None,
    ) -> PackageSet: ...

    def is_package_dir(self, directory: Path) -> bool: ...


class ImportGraphResolver:
    """import 图解析器

    参数:
        root_package: 项目根包路径，如 github.com/me/project
        project_dir: 项目根目录
        lib_root: 外部包的查找根（update 时为缓存 src，clean 时为 vendor 目录）
        target_dir: vendor 目录（相对 project_dir），遍历项目时跳过
        platforms: 合并扫描的平台变体
    """

    def __init__(
        self,
        root_package: str,
        project_dir: Path,
        lib_root: Path,
        target_dir: str = "vendor",
        platforms: list[Platform] | None = None,
        scanner: Scanner | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.root_package = root_package
        self.project_dir = Path(project_dir)
        lib_root = Path(lib_root)
        self.lib_root = lib_root if lib_root.is_absolute() else self.project_dir / lib_root
        self.target_dir = target_dir.strip("/")
        self.platforms = platforms or [Platform()]
        self.scanner: Scanner = scanner or SourceScanner()
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # 种子
    # ------------------------------------------------------------------

    def list_packages(self) -> PackageSet:
        """遍历项目目录，收集项目自身的包（跳过 vendor 目录和 . 开头的目录）"""
        result: PackageSet = set()
        for dirpath, dirnames, _ in os.walk(self.project_dir):
            current = Path(dirpath)
            rel = current.relative_to(self.project_dir).as_posix()
            kept = []
            for d in sorted(dirnames):
                child = d if rel == "." else f"{rel}/{d}"
                if d.startswith(".") or self._is_target(child):
                    continue
                kept.append(d)
            dirnames[:] = kept

            if self.scanner.is_package_dir(current):
                pkg = self.root_package if rel == "." else f"{self.root_package}/{rel}"
                logger.debug("项目包: %s", pkg)
                result.add(pkg)
        return result

    def _is_target(self, rel: str) -> bool:
        return rel == self.target_dir or rel.endswith("/" + self.target_dir)

    # ------------------------------------------------------------------
    # 单包扫描
    # ------------------------------------------------------------------

    def package_dir(self, package: str) -> tuple[Path, bool]:
        """返回 (包目录, 是否位于 lib_root 下)"""
        if package == self.root_package:
            return self.project_dir, False
        if is_within(package, self.root_package):
            return self.project_dir / package[len(self.root_package) + 1:], False
        return self.lib_root / package, True

    def scan(self, package: str, platform: Platform) -> PackageSet:
        """扫描单个 (包, 平台)，返回 {package} ∪ 引用的外部包"""
        directory, vendored = self.package_dir(package)
        include = _no_tests if vendored else None
        found = self.scanner.scan(directory, package, platform, include)
        result: PackageSet = {package}
        for imp in found:
            if is_stdlib(imp) or is_within(imp, self.root_package):
                continue
            result.add(imp)
        return result

    # ------------------------------------------------------------------
    # 不动点遍历
    # ------------------------------------------------------------------

    def collect(self, seeds: PackageSet | None = None) -> PackageSet:
        """计算从种子出发、所有平台变体下可达的包集合（含种子）"""
        logger.info("收集 '%s' 的 import", self.root_package)
        frontier = set(seeds) if seeds is not None else self.list_packages()
        imports: PackageSet = set()
        seen: PackageSet = set()
        layer = 0
        while frontier:
            layer += 1
            logger.debug("第 %d 层: %d 个包", layer, len(frontier))
            imports |= self._scan_layer(frontier)
            seen |= frontier
            frontier = imports - seen

        for pkg in sorted(imports):
            logger.debug("保留: %s", pkg)
        logger.info("共 %d 个包 (%d 层)", len(imports), layer)
        return imports

    def _scan_layer(self, packages: PackageSet) -> PackageSet:
        """并发扫描一层：每个 (包, 平台) 一个任务，结果在本线程合并"""
        merged: PackageSet = set()
        tasks = [(p, pl) for p in sorted(packages) for pl in self.platforms]
        workers = self.max_workers or None
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="scan",
        ) as pool:
            futures = {
                pool.submit(self.scan, pkg, platform): (pkg, platform)
                for pkg, platform in tasks
            }
            for future in as_completed(futures):
                merged |= future.result()
        return merged


def _no_tests(path: Path) -> bool:
    """vendor 目录下的测试文件不参与扫描"""
    return not path.name.endswith("_test.go")
