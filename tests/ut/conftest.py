"""单元测试公共夹具：脚本化的 git / go 执行器"""

from __future__ import annotations

from pathlib import Path

import pytest

from gotrash.utils.shell import CommandResult


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout, stderr="")


def _fail(stderr: str = "", rc: int = 1) -> CommandResult:
    return CommandResult(returncode=rc, stdout="", stderr=stderr)


class FakeGit:
    """模拟 git / go 行为的 CommandExecutor

    仓库状态保存在内存中，只有目录本身真实创建在磁盘上:
    - repos: 仓库顶层目录集合
    - remotes: 顶层目录 -> 远端名集合
    - commits: ref -> commit（所有仓库共享，足够测试使用）
    - head: 顶层目录 -> 当前 commit
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], str, dict | None]] = []
        self.repos: set[str] = set()
        self.remotes: dict[str, set[str]] = {}
        self.commits: dict[str, str] = {}
        self.branches: set[str] = set()
        self.head: dict[str, str] = {}
        self.latest = ""
        self.describe = ""
        self.fetch_rc = 0
        self.go_get_rc = 0
        self.go_get_creates = True
        self.fail_checkout: set[str] = set()
        self.on_fetch = None

    # -- 辅助 ----------------------------------------------------------

    def make_repo(self, path: Path, remotes=("origin",)) -> None:
        path.mkdir(parents=True, exist_ok=True)
        self.repos.add(str(path))
        self.remotes[str(path)] = set(remotes)

    def _top(self, cwd: str) -> str | None:
        best = None
        for repo in self.repos:
            if (cwd == repo or cwd.startswith(repo + "/")) and (
                best is None or len(repo) > len(best)
            ):
                best = repo
        return best

    def commands(self, prefix: str = "") -> list[list[str]]:
        return [c for c, _, _ in self.calls if " ".join(c).startswith(prefix)]

    # -- CommandExecutor ----------------------------------------------

    def execute(self, cmd, *, cwd=".", env=None) -> CommandResult:
        self.calls.append((list(cmd), cwd, env))
        if cmd[0] == "go":
            return self._go(cmd, env)
        if not Path(cwd).is_dir():
            return _fail(f"cannot change to {cwd}", rc=127)
        args = cmd[1:]
        top = self._top(cwd)

        if args == ["init", "-q"]:
            self.repos.add(cwd)
            self.remotes.setdefault(cwd, set())
            return _ok()
        if top is None:
            return _fail("fatal: not a git repository", rc=128)

        if args == ["rev-parse", "--show-toplevel"]:
            return _ok(top + "\n")
        if args == ["remote"]:
            return _ok("".join(f"{r}\n" for r in sorted(self.remotes[top])))
        if args[:3] == ["remote", "add", "-f"]:
            name = args[3]
            if name in self.remotes[top]:
                return _fail(f"error: remote {name} already exists.\n", rc=3)
            self.remotes[top].add(name)
            return _ok()
        if args[:3] == ["fetch", "-f", "-t"]:
            if self.fetch_rc == 0 and self.on_fetch is not None:
                self.on_fetch()
            return _ok() if self.fetch_rc == 0 else _fail("fatal: could not read", self.fetch_rc)
        if args[:3] == ["branch", "--list", "-r"]:
            return _ok(f"  {args[3]}\n" if args[3] in self.branches else "")
        if args[:3] == ["rev-parse", "--verify", "-q"]:
            ref = args[3].removesuffix("^{commit}")
            if ref == "HEAD":
                sha = self.head.get(top, "")
            else:
                sha = self.commits.get(ref, "")
            return _ok(sha + "\n") if sha else _fail()
        if args[:3] == ["checkout", "-f", "--detach"]:
            ref = args[3]
            if ref in self.fail_checkout or ref not in self.commits:
                return _fail(f"error: pathspec '{ref}' did not match")
            self.head[top] = self.commits[ref]
            return _ok()
        if args[:1] == ["log"]:
            return _ok(f"{self.latest} latest commit\n" if self.latest else "")
        if args[:1] == ["describe"]:
            return _ok(self.describe + "\n") if self.describe else _fail()
        raise AssertionError(f"unexpected command: {cmd}")

    def _go(self, cmd, env) -> CommandResult:
        if self.go_get_rc != 0:
            return _fail("go: cannot download", self.go_get_rc)
        if self.go_get_creates:
            package = cmd[-1]
            self.make_repo(Path(env["GOPATH"]) / "src" / package)
        return _ok()


@pytest.fixture()
def fake_git() -> FakeGit:
    return FakeGit()
