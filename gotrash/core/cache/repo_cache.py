"""仓库缓存

每个包路径对应缓存根下的一个 git 工作树: <cache>/src/<package>。

状态机:
    ABSENT ──clone──> CLONED ──checkout──> CHECKED_OUT
    STALE  ──删除并重新 clone──> CLONED

STALE 指目录存在，但不是仓库或仓库顶层不在 <cache>/src 下
（防止损坏或外来目录冒充缓存条目）。

缓存操作按固定项顺序串行执行；所有命令显式传入工作目录，
不修改进程级 cwd。
"""

from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gotrash.core.cache.git import GitClient, GoToolchain
from gotrash.core.exceptions import CacheError, VersionControlError
from gotrash.core.manifest.models import Import

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"


class CacheState(Enum):
    ABSENT = "absent"
    STALE = "stale"
    CLONED = "cloned"
    CHECKED_OUT = "checked_out"


@dataclass
class CacheEntry:
    """单个缓存条目"""

    package: str
    path: Path
    state: CacheState = CacheState.ABSENT
    remotes: set[str] = field(default_factory=set)
    commit: str = ""


def remote_name(url: str) -> str:
    """源仓库 URL 对应的远端名：sha1 前 7 位，无 URL 时为 origin"""
    if not url:
        return DEFAULT_REMOTE
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:7]  # noqa: S324


class RepositoryCache:
    """仓库缓存管理器

    参数:
        cache_root: 缓存根目录（相当于 GOPATH）
        tracking_branch: 跟踪分支名，该版本总是解析为 <remote>/<branch>
        insecure: go get 时附加 -insecure
    """

    def __init__(
        self,
        cache_root: Path,
        git: GitClient | None = None,
        toolchain: GoToolchain | None = None,
        *,
        tracking_branch: str = "master",
        insecure: bool = False,
    ) -> None:
        self.cache_root = Path(cache_root).resolve()
        self.src_root = self.cache_root / "src"
        self.git = git or GitClient()
        self.toolchain = toolchain or GoToolchain()
        self.tracking_branch = tracking_branch
        self.insecure = insecure
        self._entries: dict[str, CacheEntry] = {}

    # ------------------------------------------------------------------
    # 状态查询
    # ------------------------------------------------------------------

    def entry_path(self, package: str) -> Path:
        return self.src_root / package

    def entry(self, package: str) -> CacheEntry:
        """获取（惰性创建）缓存条目"""
        if package not in self._entries:
            self._entries[package] = CacheEntry(package=package, path=self.entry_path(package))
        return self._entries[package]

    def is_cache_repo(self, path: Path) -> bool:
        """path 在 git 工作树中，且工作树顶层位于 <cache>/src 之下"""
        top = self.git.toplevel(path)
        if top is None:
            return False
        try:
            top.resolve().relative_to(self.src_root)
        except ValueError:
            logger.debug("仓库顶层 %s 不在缓存 %s 下", top, self.src_root)
            return False
        return top.resolve() != self.src_root

    def probe(self, package: str) -> CacheState:
        """根据磁盘状态刷新并返回条目状态（不做修改）"""
        entry = self.entry(package)
        if not entry.path.is_dir():
            entry.state = CacheState.ABSENT
        elif not self.is_cache_repo(entry.path):
            entry.state = CacheState.STALE
        elif entry.state is not CacheState.CHECKED_OUT:
            entry.state = CacheState.CLONED
        return entry.state

    # ------------------------------------------------------------------
    # ensure
    # ------------------------------------------------------------------

    def ensure(self, pin: Import) -> CacheEntry:
        """保证条目处于 CLONED（或已 CHECKED_OUT）状态

        显式 repo 优先：有 repo 时直接 init + 添加远端，不走 go get。
        已有条目遇到新的显式 repo 时追加一个远端，不替换已有远端。
        """
        logger.debug("准备缓存: %s", pin)
        entry = self.entry(pin.package)
        state = self.probe(pin.package)
        if state is CacheState.STALE:
            logger.warning("缓存条目已损坏，重新 clone: %s", entry.path)
        if state in (CacheState.ABSENT, CacheState.STALE):
            return self._clone(entry, pin)

        entry.remotes = self.git.remotes(entry.path)
        if pin.repo:
            name = remote_name(pin.repo)
            if name not in entry.remotes:
                self._add_remote(entry, pin.repo)
        elif DEFAULT_REMOTE not in entry.remotes:
            logger.info("缓存条目缺少 '%s' 远端，重新 clone: %s", DEFAULT_REMOTE, pin.package)
            return self._clone(entry, pin)
        return entry

    def _clone(self, entry: CacheEntry, pin: Import) -> CacheEntry:
        logger.info("准备缓存: '%s'", pin.package)
        self._remove(entry.path)
        entry.remotes = set()
        entry.commit = ""

        if not pin.repo:
            r = self.toolchain.get(self.cache_root, pin.package, insecure=self.insecure)
            if not r.success:
                logger.debug("go get %s 失败 (非致命):\n%s", pin.package, r.output)

        try:
            entry.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"无法创建缓存目录 {entry.path}: {e}") from e

        if not self.is_cache_repo(entry.path):
            logger.debug("不是 git 仓库，初始化: %s", entry.path)
            r = self.git.init(entry.path)
            if not r.success:
                raise CacheError(f"git init 失败 {entry.path}: {r.output[:300]}")
        if pin.repo:
            self._add_remote(entry, pin.repo)
        entry.remotes = self.git.remotes(entry.path) or entry.remotes
        entry.state = CacheState.CLONED
        return entry

    def _remove(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise CacheError(f"无法删除损坏的缓存条目 {path}: {e}") from e

    def _add_remote(self, entry: CacheEntry, url: str) -> None:
        name = remote_name(url)
        r = self.git.add_remote(entry.path, name, url)
        if r.success:
            entry.remotes.add(name)
            return
        logger.debug("git remote add 输出: %s", r.output)
        if f"remote {name} already exists" in r.output:
            logger.warning("远端已存在: '%s' '%s'", name, url)
            entry.remotes.add(name)
        else:
            logger.error("无法添加远端 '%s' '%s'", name, url)

    # ------------------------------------------------------------------
    # checkout
    # ------------------------------------------------------------------

    def fetch(self, entry: CacheEntry, pin: Import) -> None:
        """fetch 固定项对应的远端，失败抛 VersionControlError"""
        remote = remote_name(pin.repo)
        logger.info("从 '%s' 拉取最新提交: '%s'", remote, pin.package)
        r = self.git.fetch(entry.path, remote)
        if not r.success:
            logger.error("git fetch -f -t %s 失败:\n%s", remote, r.output)
            raise VersionControlError(
                f"fetch 失败: {pin.package} (remote={remote})", pin.package,
            )

    def resolve_ref(self, entry: CacheEntry, pin: Import) -> str:
        """计算实际 checkout 的 ref；远端分支会先 fetch"""
        remote = remote_name(pin.repo)
        if pin.version == self.tracking_branch or self.git.is_remote_branch(
            entry.path, remote, pin.version,
        ):
            self.fetch(entry, pin)
            return f"{remote}/{pin.version}"
        return pin.version

    def checkout(self, pin: Import) -> CacheEntry:
        """将条目 detach checkout 到固定版本

        失败时：跟踪分支回退到所有 ref 中最新的提交，其他版本 fetch 后重试一次；
        重试仍失败抛 VersionControlError。
        """
        entry = self.entry(pin.package)
        if entry.state is CacheState.ABSENT:
            self.probe(pin.package)
        if entry.state not in (CacheState.CLONED, CacheState.CHECKED_OUT):
            raise CacheError(f"缓存条目未就绪，需先 ensure: {pin.package}")

        logger.info("Checkout '%s', 版本: '%s'", pin.package, pin.version)
        ref = self.resolve_ref(entry, pin)

        target = self.git.rev_parse(entry.path, ref)
        if target and target == self.git.head(entry.path):
            logger.debug("已在目标提交，跳过 checkout: %s@%s", pin.package, target[:12])
            return self._mark_checked_out(entry)

        r = self.git.checkout_detached(entry.path, ref)
        if not r.success:
            logger.debug("git checkout -f --detach %s 失败:\n%s", ref, r.output)
            if pin.version == self.tracking_branch:
                logger.warning(
                    "无法 checkout '%s' 分支，改为 checkout git 能找到的最新提交",
                    self.tracking_branch,
                )
                ref = self.git.latest_commit(entry.path)
                if not ref:
                    raise VersionControlError(
                        f"找不到任何提交: {pin.package}", pin.package,
                    )
            else:
                self.fetch(entry, pin)
            logger.debug("重试: git checkout -f --detach %s", ref)
            r = self.git.checkout_detached(entry.path, ref)
            if not r.success:
                logger.error("git checkout -f --detach %s 失败:\n%s", ref, r.output)
                raise VersionControlError(
                    f"无法 checkout {pin.package}@{pin.version}", pin.package,
                )
        return self._mark_checked_out(entry)

    def _mark_checked_out(self, entry: CacheEntry) -> CacheEntry:
        entry.commit = self.current_commit(entry)
        entry.state = CacheState.CHECKED_OUT
        return entry

    def prepare(self, pin: Import) -> CacheEntry:
        """ensure + checkout"""
        self.ensure(pin)
        return self.checkout(pin)

    # ------------------------------------------------------------------
    # update 模式辅助
    # ------------------------------------------------------------------

    def current_commit(self, entry: CacheEntry) -> str:
        """条目工作树当前 HEAD 的完整 commit，无法解析时返回空串"""
        return self.git.head(entry.path)

    def top_level(self, package: str) -> str:
        """包所在仓库的顶层包路径

        异常:
            CacheError: 不在缓存仓库中
        """
        path = self.entry_path(package)
        top = self.git.toplevel(path) if path.is_dir() else None
        if top is None:
            raise CacheError(f"包不在缓存仓库中: {package}")
        try:
            return top.resolve().relative_to(self.src_root).as_posix()
        except ValueError as e:
            raise CacheError(f"仓库 {top} 不在缓存 {self.src_root} 下") from e

    def latest_version(self, package: str) -> str:
        """git describe --tags --always

        异常:
            VersionControlError: 无法描述当前提交
        """
        version = self.git.describe(self.entry_path(package))
        if not version:
            raise VersionControlError(f"无法确定当前版本: {package}", package)
        return version
