"""CLI — vendor / clean 命令"""

from __future__ import annotations

import os

import click

from gotrash.cli import handle_errors
from gotrash.utils.logger import setup_logging


def register(group: click.Group) -> None:
    group.add_command(vendor)
    group.add_command(clean)


def _enable_debug(debug: bool) -> None:
    if debug:
        setup_logging(
            json_output=os.getenv("GOTRASH_LOG_JSON", "") == "1", debug=True,
        )


@click.command()
@click.option("-f", "--file", "manifest_file", default="", help="清单文件（默认按候选名探测）")
@click.option("-C", "--directory", default=".", help="项目目录")
@click.option("-T", "--target", default="", help="vendor 目录（相对项目目录）")
@click.option(
    "--cache", "cache_dir", default="", envvar="TRASH_CACHE",
    help="仓库缓存目录（默认取配置，即 ~/.trash-cache）",
)
@click.option("-k", "--keep", is_flag=True, help="保留 vendor 中的 .git 目录，并跳过裁剪")
@click.option("-u", "--update", is_flag=True, help="根据实际 import 更新清单（不 vendor）")
@click.option("--insecure", is_flag=True, help="go get 时允许不安全协议")
@click.option("-d", "--debug", is_flag=True, help="输出调试日志")
@click.option("--gopath", default="", envvar="GOPATH", hidden=True)
@handle_errors
def vendor(
    manifest_file: str,
    directory: str,
    target: str,
    cache_dir: str,
    keep: bool,
    update: bool,
    insecure: bool,
    debug: bool,
    gopath: str,
) -> None:
    """拉取清单中的依赖到 vendor 目录（-u 时更新清单）"""
    _enable_debug(debug)
    from gotrash.services.vendor_service import VendorRequest, VendorService
    result = VendorService().run(VendorRequest(
        manifest_file=manifest_file,
        directory=directory,
        target=target,
        cache_dir=cache_dir,
        keep=keep,
        update=update,
        insecure=insecure,
        gopath=gopath,
    ))
    if update:
        click.echo(f"清单已更新: {result.manifest_file}")
        for pkg in result.discovered:
            click.echo(f"  新增: {pkg}")
        return
    click.echo(f"已 vendor {len(result.vendored)} 个包")
    if result.prune is not None:
        click.echo(
            f"裁剪: {result.prune.removed_files} 个文件, "
            f"{result.prune.removed_dirs} 个目录 ({result.prune.passes} 轮)"
        )
        for pkg in result.prune.missing:
            click.echo(f"  已完全删除: {pkg}")


@click.command()
@click.option("-f", "--file", "manifest_file", default="", help="清单文件（默认按候选名探测）")
@click.option("-C", "--directory", default=".", help="项目目录")
@click.option("-T", "--target", default="", help="vendor 目录（相对项目目录）")
@click.option("-d", "--debug", is_flag=True, help="输出调试日志")
@click.option("--gopath", default="", envvar="GOPATH", hidden=True)
@handle_errors
def clean(manifest_file: str, directory: str, target: str, debug: bool, gopath: str) -> None:
    """只裁剪 vendor 目录中未被使用的内容"""
    _enable_debug(debug)
    from gotrash.services.vendor_service import VendorRequest, VendorService
    report = VendorService().clean_only(VendorRequest(
        manifest_file=manifest_file,
        directory=directory,
        target=target,
        gopath=gopath,
    ))
    click.echo(
        f"裁剪: {report.removed_files} 个文件, "
        f"{report.removed_dirs} 个目录 ({report.passes} 轮)"
    )
    for pkg in report.missing:
        click.echo(f"  已完全删除: {pkg}")
