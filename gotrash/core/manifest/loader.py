"""清单文件定位与加载

职责:
- 按候选文件名探测项目目录下的清单文件
- update 模式下清单不存在时创建空清单
- 读取文件并交给 formats.parse
"""

from __future__ import annotations

import logging
from pathlib import Path

from gotrash.core.exceptions import ConfigError, ParseError
from gotrash.core.manifest.formats import parse
from gotrash.core.manifest.models import Manifest
from gotrash.utils.yaml_io import read_text

logger = logging.getLogger(__name__)


def find_manifest(
    directory: Path,
    preferred: str,
    candidates: list[str],
    *,
    create: bool = False,
) -> Path:
    """定位清单文件

    依次尝试 preferred 和 candidates（相对 directory），返回首个存在的文件。

    参数:
        create: 都不存在时在 preferred 位置创建空清单（update 模式）

    异常:
        ConfigError: 都不存在且 create=False
    """
    names = [preferred] + [c for c in candidates if c != preferred]
    for name in names:
        path = directory / name
        if path.is_file():
            return path

    path = directory / preferred
    if not create:
        raise ConfigError(f"清单文件不存在: {path} (已尝试: {', '.join(names)})")
    logger.warning("清单文件 '%s' 不存在，创建空清单", path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()
    return path


def load(path: str | Path) -> Manifest:
    """读取并解析清单文件

    异常:
        ParseError: 文件无法读取或内容无效
    """
    p = Path(path)
    logger.info("读取清单: %s", p)
    try:
        text = read_text(p)
    except (OSError, ValueError, UnicodeDecodeError) as e:
        raise ParseError(f"无法读取清单 {p}: {e}", str(p)) from e
    return parse(text, source_file=str(p))
