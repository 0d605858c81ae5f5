"""gotrash 命令行接口

CLI 按功能拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import functools
import os
from typing import Any, Callable

import click

from gotrash import __version__
from gotrash.core.config import init_config
from gotrash.core.exceptions import GoTrashError
from gotrash.utils.logger import setup_logging


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """将 GoTrashError 转为 click 错误（退出码 1）"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except GoTrashError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", default="", envvar="GOTRASH_CONFIG",
    help="YAML 配置文件路径",
)
def main(config_path: str) -> None:
    """gotrash - Go 依赖 vendor 工具"""
    setup_logging(
        level=os.getenv("GOTRASH_LOG_LEVEL", "INFO"),
        json_output=os.getenv("GOTRASH_LOG_JSON", "") == "1",
    )
    init_config(config_path)


# 注册各功能子命令
from gotrash.cli.cmd_vendor import register as _reg_vendor  # noqa: E402
from gotrash.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_vendor(main)
_reg_misc(main)
