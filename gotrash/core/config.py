"""集中配置管理

提供统一的配置入口：默认值 + YAML 文件加载 + 编程式覆盖。
命令行参数优先级高于配置文件，由 CLI 层合并。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from gotrash.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

# 依次探测的清单文件名，首个存在者生效
DEFAULT_MANIFEST_CANDIDATES = [
    "trash.conf", "vndr.cfg", "vendor.manifest",
    "trash.yml", "glide.yaml", "glide.yml", "trash.yaml",
]

# 扫描 import 时合并的平台变体
DEFAULT_PLATFORMS = [
    "linux/amd64", "linux/arm64", "linux/386", "linux/arm",
    "darwin/amd64", "darwin/arm64",
    "windows/amd64", "windows/386",
    "freebsd/amd64",
]


def _default_cache_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".trash-cache")


@dataclass
class Config:
    """全局配置"""

    # 文件与目录
    manifest: str = "vendor.conf"
    manifest_candidates: list[str] = field(
        default_factory=lambda: list(DEFAULT_MANIFEST_CANDIDATES),
    )
    target_dir: str = "vendor"
    cache_dir: str = field(default_factory=_default_cache_dir)

    # 版本控制
    tracking_branch: str = "master"
    git_binary: str = "git"
    go_binary: str = "go"

    # 扫描
    platforms: list[str] = field(default_factory=lambda: list(DEFAULT_PLATFORMS))
    build_tags: list[str] = field(default_factory=lambda: ["cgo"])
    max_workers: int | None = None  # None 表示使用线程池默认并发度

    # 自定义扩展
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if extra:
            logger.debug("未识别的配置项: %s", ", ".join(sorted(extra)))
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg


# 全局单例，由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "") -> Config:
    """从文件初始化全局配置，path 为空时使用默认配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path) if path else Config()
    if path:
        logger.info("配置已加载: %s", path)
    return _current


def reset_config() -> None:
    """丢弃全局配置（测试用）"""
    global _current  # noqa: PLW0603
    _current = None
