"""shell.py 命令执行单元测试"""

from __future__ import annotations

import os

from gotrash.utils.shell import (
    CommandResult,
    LocalExecutor,
    get_executor,
    set_executor,
)


class TestLocalExecutor:
    def test_missing_binary(self, tmp_path) -> None:
        r = LocalExecutor().execute(["definitely-not-a-real-binary-xyz"], cwd=str(tmp_path))
        assert r.returncode == 127
        assert not r.success

    def test_nonzero_not_raised(self, tmp_path) -> None:
        r = LocalExecutor().execute(["sh", "-c", "echo out; echo err >&2; exit 3"], cwd=str(tmp_path))
        assert r.returncode == 3
        assert r.output == "out\nerr"

    def test_env_passed(self, tmp_path) -> None:
        env = {**os.environ, "MY_TEST_VAR": "42"}
        r = LocalExecutor().execute(["env"], cwd=str(tmp_path), env=env)
        assert "MY_TEST_VAR=42" in r.stdout

    def test_cwd_explicit(self, tmp_path) -> None:
        r = LocalExecutor().execute(["pwd"], cwd=str(tmp_path))
        assert os.path.realpath(r.stdout.strip()) == os.path.realpath(str(tmp_path))


class TestCommandResult:
    def test_lines(self) -> None:
        r = CommandResult(0, "  a\n\n b \n", "")
        assert r.lines() == ["a", "b"]
        assert r.success


class TestExecutorSwap:
    def test_set_executor(self) -> None:
        class Recorder:
            def __init__(self) -> None:
                self.cmds: list[list[str]] = []

            def execute(self, cmd, *, cwd=".", env=None):
                self.cmds.append(cmd)
                return CommandResult(0, "ok", "")

        original = get_executor()
        rec = Recorder()
        set_executor(rec)
        try:
            assert get_executor().execute(["anything"], cwd="/tmp").stdout == "ok"
            assert rec.cmds == [["anything"]]
        finally:
            set_executor(original)
