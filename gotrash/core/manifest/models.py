"""清单数据模型

数据类:
- ImportOptions: 单个固定项的布尔选项
- Import: 一个外部包固定项（以 package 为唯一键）
- Manifest: 根包 + 固定项 + 排除规则，记住读入时的格式
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gotrash.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# git check-ref-format 不允许的字符和序列
_BAD_REF_RE = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]|\.\.|@\{")


class ManifestFormat(Enum):
    """清单文件格式，解析时确定一次，写回时沿用"""

    STRUCTURED = "structured"  # YAML 文档
    FLAT = "flat"              # 行格式


@dataclass
class ImportOptions:
    """固定项选项"""

    transitive: bool = False  # 同时拉取该包自身的依赖
    staging: bool = False     # 预发布/不稳定固定项


@dataclass(eq=False)
class Import:
    """单个外部包固定项

    相等性与哈希只看 package。
    """

    package: str
    version: str = ""
    repo: str = ""
    options: ImportOptions = field(default_factory=ImportOptions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Import):
            return NotImplemented
        return self.package == other.package

    def __hash__(self) -> int:
        return hash(self.package)

    def __str__(self) -> str:
        s = f"{self.package}@{self.version or '?'}"
        return f"{s} ({self.repo})" if self.repo else s


@dataclass
class Manifest:
    """清单

    imports 在 dedupe() 之后按 package 升序排列且无重复。
    """

    root_package: str = ""
    imports: list[Import] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    format: ManifestFormat = ManifestFormat.FLAT
    source_file: str = ""
    import_map: dict[str, Import] = field(default_factory=dict, repr=False)

    def dedupe(self) -> None:
        """去重并排序：同一 package 保留首次出现的条目"""
        index: dict[str, Import] = {}
        for imp in self.imports:
            if imp.package in index:
                logger.debug(
                    "包 '%s' 重复定义，保留首次出现的条目 (%s)",
                    imp.package, self.source_file or "<memory>",
                )
                continue
            index[imp.package] = imp
        self.import_map = index
        self.imports = [index[p] for p in sorted(index)]

    def get(self, package: str) -> Import | None:
        return self.import_map.get(package)

    def validate_for_vendor(self) -> None:
        """vendor 前校验：每个固定项必须有版本且版本为安全 ref

        异常:
            ConfigError: 在任何缓存修改之前抛出
        """
        for imp in self.imports:
            if not imp.version:
                raise ConfigError(f"包 '{imp.package}' 未指定版本")
            if imp.version.startswith("-") or _BAD_REF_RE.search(imp.version):
                raise ConfigError(
                    f"包 '{imp.package}' 的版本包含非法字符: {imp.version}"
                )

    def serialize(self) -> str:
        """按读入时的格式序列化"""
        from gotrash.core.manifest.formats import serialize
        return serialize(self)

    def dump(self, path: str | Path) -> None:
        """原子写回文件"""
        from gotrash.utils.yaml_io import atomic_write
        atomic_write(Path(path), self.serialize())
        logger.info("清单已写入: %s (%d 个固定项)", path, len(self.imports))
