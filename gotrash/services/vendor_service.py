"""vendor 服务：CLI 共享的 vendor / update / clean 编排

流程:
  run()
    ├─ 定位并解析清单
    ├─ update 模式: 解析 import 图 → 拉取新包 → 重写清单（不 vendor）
    └─ 普通模式: 校验固定项 → 逐个 ensure + checkout → 复制到 vendor
                 → （未指定 keep 时）裁剪
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from gotrash.core.cache.git import GitClient, GoToolchain
from gotrash.core.cache.repo_cache import RepositoryCache
from gotrash.core.config import Config, get_config
from gotrash.core.constraints import Platform
from gotrash.core.exceptions import ConfigError
from gotrash.core.manifest import Import, Manifest, find_manifest, load
from gotrash.core.materializer import VendorMaterializer
from gotrash.core.packages import PackageSet, is_within
from gotrash.core.pruner import Pruner, PruneReport
from gotrash.core.resolver import ImportGraphResolver
from gotrash.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)


@dataclass
class VendorRequest:
    """vendor 请求 DTO，空字段回落到 Config"""

    manifest_file: str = ""
    directory: str = "."
    target: str = ""
    cache_dir: str = ""
    keep: bool = False
    update: bool = False
    insecure: bool = False
    gopath: str = ""


@dataclass
class VendorResult:
    """一次运行的结果摘要"""

    manifest_file: str
    root_package: str = ""
    vendored: list[str] = field(default_factory=list)
    discovered: list[str] = field(default_factory=list)
    prune: PruneReport | None = None


class VendorService:
    """vendor 编排服务

    只负责串联各核心组件；缓存操作按固定项顺序串行执行。
    """

    def __init__(
        self,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config or get_config()
        self.executor = executor or get_executor()

    # ------------------------------------------------------------------
    # 入口
    # ------------------------------------------------------------------

    def run(self, req: VendorRequest) -> VendorResult:
        """按请求执行 vendor（或 update），返回结果摘要"""
        project_dir = Path(req.directory).resolve()
        logger.debug("项目目录: '%s'", project_dir)
        manifest_path = find_manifest(
            project_dir,
            req.manifest_file or self.config.manifest,
            self.config.manifest_candidates,
            create=req.update,
        )
        manifest = load(manifest_path)
        result = VendorResult(manifest_file=str(manifest_path))

        if req.update:
            result.discovered = self.update(req, project_dir, manifest, manifest_path)
            result.root_package = manifest.root_package
            return result

        result.vendored = self.vendor(req, project_dir, manifest)
        result.root_package = manifest.root_package
        if not req.keep:
            result.prune = self.clean(req, project_dir, manifest)
        return result

    # ------------------------------------------------------------------
    # vendor
    # ------------------------------------------------------------------

    def vendor(self, req: VendorRequest, project_dir: Path, manifest: Manifest) -> list[str]:
        """拉取并复制全部固定项，返回已 vendor 的包列表

        异常:
            ConfigError: 固定项缺少版本（在任何缓存修改之前）
            VersionControlError / FilesystemError: 致命错误
        """
        logger.debug("vendor: keep=%s dir=%s", req.keep, project_dir)
        manifest.validate_for_vendor()

        cache = self._cache(req)
        for pin in manifest.imports:
            cache.prepare(pin)

        target = self._target_path(req, project_dir)
        VendorMaterializer(cache, target).materialize(manifest.imports, keep=req.keep)
        return [pin.package for pin in manifest.imports]

    # ------------------------------------------------------------------
    # clean
    # ------------------------------------------------------------------

    def clean(self, req: VendorRequest, project_dir: Path, manifest: Manifest) -> PruneReport:
        """按 import 图裁剪 vendor 目录"""
        root = self.root_package(req, project_dir, manifest)
        logger.debug("根包: '%s'", root)
        target = self._target_path(req, project_dir)
        resolver = self._resolver(root, project_dir, target, req)
        return Pruner(resolver, target).prune(manifest)

    def clean_only(self, req: VendorRequest) -> PruneReport:
        """只执行裁剪（clean 命令）"""
        project_dir = Path(req.directory).resolve()
        manifest_path = find_manifest(
            project_dir,
            req.manifest_file or self.config.manifest,
            self.config.manifest_candidates,
        )
        return self.clean(req, project_dir, load(manifest_path))

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    def update(
        self,
        req: VendorRequest,
        project_dir: Path,
        manifest: Manifest,
        manifest_path: Path,
    ) -> list[str]:
        """发现项目实际 import 的外部包，按最新版本重写清单

        返回新发现（清单中原本没有）的包列表。
        """
        root = self.root_package(req, project_dir, manifest)
        cache = self._cache(req)
        cache.src_root.mkdir(parents=True, exist_ok=True)
        resolver = self._resolver(root, project_dir, cache.src_root, req)
        tracking = self.config.tracking_branch

        prepared: set[str] = set()
        imports = resolver.collect()
        while True:
            pending = sorted(p for p in imports - prepared if not is_within(p, root))
            for pkg in pending:
                pin = manifest.get(pkg) or Import(package=pkg)
                cache.prepare(replace(pin, version=tracking))
                prepared.add(pkg)
            size = len(imports)
            imports = resolver.collect()
            if len(imports) <= size:
                break

        known = {pin.package for pin in manifest.imports}
        new_imports = self._pins_for(imports, root, manifest, cache)
        manifest.root_package = root
        manifest.imports = new_imports
        manifest.dedupe()
        manifest.dump(manifest_path)
        return sorted(p.package for p in manifest.imports if p.package not in known)

    def _pins_for(
        self,
        imports: PackageSet,
        root: str,
        manifest: Manifest,
        cache: RepositoryCache,
    ) -> list[Import]:
        """每个外部包归并到仓库顶层，版本取 git describe；保留清单中的 repo/选项"""
        pins: list[Import] = []
        for pkg in sorted(imports):
            if is_within(pkg, root):
                continue
            top = cache.top_level(pkg)
            old = manifest.get(top)
            pin = replace(old) if old else Import(package=top)
            pin.version = cache.latest_version(top)
            pins.append(pin)
        return pins

    # ------------------------------------------------------------------
    # 辅助
    # ------------------------------------------------------------------

    def root_package(self, req: VendorRequest, project_dir: Path, manifest: Manifest) -> str:
        """清单中的根包，缺失时根据 GOPATH 推断"""
        if manifest.root_package:
            return manifest.root_package
        return guess_root_package(project_dir, req.gopath)

    def _cache(self, req: VendorRequest) -> RepositoryCache:
        cache_dir = Path(req.cache_dir or self.config.cache_dir).expanduser().resolve()
        cache_dir.mkdir(parents=True, exist_ok=True)
        return RepositoryCache(
            cache_dir,
            GitClient(self.executor, self.config.git_binary),
            GoToolchain(self.executor, self.config.go_binary),
            tracking_branch=self.config.tracking_branch,
            insecure=req.insecure,
        )

    def _target_path(self, req: VendorRequest, project_dir: Path) -> Path:
        return project_dir / (req.target or self.config.target_dir)

    def _resolver(
        self, root: str, project_dir: Path, lib_root: Path, req: VendorRequest,
    ) -> ImportGraphResolver:
        return ImportGraphResolver(
            root,
            project_dir,
            lib_root,
            target_dir=req.target or self.config.target_dir,
            platforms=self.platforms(),
            max_workers=self.config.max_workers,
        )

    def platforms(self) -> list[Platform]:
        """配置中的平台变体

        异常:
            ConfigError: 平台字符串无效
        """
        try:
            return [Platform.parse(p, self.config.build_tags) for p in self.config.platforms]
        except ValueError as e:
            raise ConfigError(str(e)) from e


def guess_root_package(project_dir: Path, gopath: str) -> str:
    """根据 $GOPATH/src 推断根包

    异常:
        ConfigError: GOPATH 未设置、包含多个路径，或项目不在 $GOPATH/src 下
    """
    logger.warning("尝试根据 GOPATH 推断根包，建议在清单中显式指定")
    logger.warning("GOPATH 为 '%s'", gopath)
    if not gopath or os.pathsep in gopath:
        raise ConfigError("GOPATH 未设置或包含多个路径，需要在清单中指定根包")
    src = Path(gopath).expanduser().resolve() / "src"
    if not src.is_dir():
        raise ConfigError(f"$GOPATH/src 不存在: {src}")
    try:
        rel = Path(project_dir).resolve().relative_to(src)
    except ValueError as e:
        raise ConfigError(
            f"项目目录 {project_dir} 不在 $GOPATH/src 下，需要在清单中指定根包"
        ) from e
    if rel == Path("."):
        raise ConfigError("项目目录就是 $GOPATH/src，需要在清单中指定根包")
    return rel.as_posix()
