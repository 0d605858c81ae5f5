"""CLI — 杂项命令（go.mod 导出）"""

from __future__ import annotations

from pathlib import Path

import click

from gotrash.cli import handle_errors


def register(group: click.Group) -> None:
    group.add_command(gomod)


@click.command()
@click.option("-f", "--file", "manifest_file", default="", help="清单文件（默认按候选名探测）")
@click.option("-C", "--directory", default=".", help="项目目录")
@click.option("--module", default="", help="module 名（默认取清单根包）")
@handle_errors
def gomod(manifest_file: str, directory: str, module: str) -> None:
    """将清单输出为 go.mod 的 require/replace 块"""
    from gotrash.core.config import get_config
    from gotrash.core.manifest import find_manifest, load
    from gotrash.services.gomod import render_go_mod

    cfg = get_config()
    path = find_manifest(
        Path(directory).resolve(),
        manifest_file or cfg.manifest,
        cfg.manifest_candidates,
    )
    click.echo(render_go_mod(load(path), module=module), nl=False)
