"""将清单渲染为 go.mod 片段

require 块列出全部固定项，replace 块只列出带显式 repo 的固定项。
"""

from __future__ import annotations

from gotrash.core.exceptions import ConfigError
from gotrash.core.manifest.models import Manifest


def render_go_mod(manifest: Manifest, module: str = "") -> str:
    """渲染 go.mod 文本

    参数:
        module: module 行；为空时取根包

    异常:
        ConfigError: 既未指定 module 也没有根包
    """
    name = module or manifest.root_package
    if not name:
        raise ConfigError("无法确定 module 名，请指定 --module 或在清单中写明根包")

    lines = [f"module {name}", "", "require ("]
    lines += [f"\t{imp.package} {imp.version}" for imp in manifest.imports]
    lines.append(")")

    replaced = [imp for imp in manifest.imports if imp.repo]
    if replaced:
        lines += ["", "replace ("]
        lines += [
            f"\t{imp.package} {imp.version} => {imp.repo} {imp.version}"
            for imp in replaced
        ]
        lines.append(")")
    return "\n".join(lines) + "\n"
