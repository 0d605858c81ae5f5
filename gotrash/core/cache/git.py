"""git / go 命令封装

每个方法都显式接收工作目录，底层通过 CommandExecutor 执行，
返回值只表达成功与否和输出，是否致命由缓存层决定。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from gotrash.utils.shell import CommandExecutor, CommandResult, get_executor

logger = logging.getLogger(__name__)


class GitClient:
    """git 命令客户端"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        git_binary: str = "git",
    ) -> None:
        self._executor = executor or get_executor()
        self.git_binary = git_binary

    def run(self, cwd: Path, *args: str) -> CommandResult:
        return self._executor.execute([self.git_binary, *args], cwd=str(cwd))

    def toplevel(self, cwd: Path) -> Path | None:
        """cwd 所在工作树的顶层目录，不在仓库中返回 None"""
        r = self.run(cwd, "rev-parse", "--show-toplevel")
        if not r.success or not r.stdout.strip():
            logger.debug("不是 git 仓库: %s (%s)", cwd, r.output[:200])
            return None
        return Path(r.stdout.strip())

    def init(self, cwd: Path) -> CommandResult:
        return self.run(cwd, "init", "-q")

    def remotes(self, cwd: Path) -> set[str]:
        r = self.run(cwd, "remote")
        return set(r.lines()) if r.success else set()

    def add_remote(self, cwd: Path, name: str, url: str) -> CommandResult:
        """添加远端并立即 fetch"""
        return self.run(cwd, "remote", "add", "-f", name, url)

    def fetch(self, cwd: Path, remote: str) -> CommandResult:
        return self.run(cwd, "fetch", "-f", "-t", remote)

    def is_remote_branch(self, cwd: Path, remote: str, branch: str) -> bool:
        ref = f"{remote}/{branch}"
        logger.debug("检查 '%s' 是否为远端分支", ref)
        r = self.run(cwd, "branch", "--list", "-r", ref)
        return r.success and ref in r.lines()

    def checkout_detached(self, cwd: Path, ref: str) -> CommandResult:
        return self.run(cwd, "checkout", "-f", "--detach", ref)

    def rev_parse(self, cwd: Path, ref: str) -> str:
        """ref 对应的完整 commit，无法解析时返回空串"""
        r = self.run(cwd, "rev-parse", "--verify", "-q", f"{ref}^{{commit}}")
        return r.stdout.strip() if r.success else ""

    def head(self, cwd: Path) -> str:
        return self.rev_parse(cwd, "HEAD")

    def latest_commit(self, cwd: Path) -> str:
        """所有 ref 中最新的 commit（缩写），找不到返回空串"""
        r = self.run(cwd, "log", "--all", "--pretty=oneline", "--abbrev-commit", "-1")
        fields = r.stdout.split()
        return fields[0] if r.success and fields else ""

    def describe(self, cwd: Path) -> str:
        r = self.run(cwd, "describe", "--tags", "--always")
        return r.stdout.strip() if r.success else ""


class GoToolchain:
    """go get 回退拉取（GOPATH 模式）"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        go_binary: str = "go",
    ) -> None:
        self._executor = executor or get_executor()
        self.go_binary = go_binary

    def get(self, gopath: Path, package: str, *, insecure: bool = False) -> CommandResult:
        """go get -d -f -u [-insecure] <package>，源码落到 gopath/src 下"""
        args = [self.go_binary, "get", "-d", "-f", "-u"]
        if insecure:
            args.append("-insecure")
        args.append(package)
        env = {**os.environ, "GOPATH": str(gopath), "GO111MODULE": "off"}
        return self._executor.execute(args, cwd=str(gopath), env=env)
