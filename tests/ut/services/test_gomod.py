"""go.mod 导出单元测试"""

from __future__ import annotations

import pytest

from gotrash.core.exceptions import ConfigError
from gotrash.core.manifest import parse
from gotrash.services.gomod import render_go_mod


class TestRenderGoMod:
    def test_require_and_replace(self) -> None:
        m = parse(
            "github.com/me/project\n"
            "github.com/pkg/errors v0.8.0\n"
            "k8s.io/client-go v1.5.0 github.com/me/client-go\n"
        )
        assert render_go_mod(m) == (
            "module github.com/me/project\n"
            "\n"
            "require (\n"
            "\tgithub.com/pkg/errors v0.8.0\n"
            "\tk8s.io/client-go v1.5.0\n"
            ")\n"
            "\n"
            "replace (\n"
            "\tk8s.io/client-go v1.5.0 => github.com/me/client-go v1.5.0\n"
            ")\n"
        )

    def test_no_replace_block_without_repos(self) -> None:
        text = render_go_mod(parse("x.io/root\na.io/a v1\n"))
        assert "replace" not in text

    def test_module_override(self) -> None:
        text = render_go_mod(parse("x.io/root\n"), module="y.io/other")
        assert text.startswith("module y.io/other\n")

    def test_no_module(self) -> None:
        with pytest.raises(ConfigError, match="module"):
            render_go_mod(parse("a.io/a v1\n"))
