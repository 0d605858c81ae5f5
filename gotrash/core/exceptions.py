"""统一异常体系

所有业务异常继承 GoTrashError，CLI 层据此输出友好提示并以非零码退出。

致命与否由抛出位置决定：
- ConfigError / VersionControlError / 复制阶段的 FilesystemError 直接终止运行
- 单个源文件的 ParseError 由扫描器捕获并记录，不向上传播
"""

from __future__ import annotations


class GoTrashError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(GoTrashError):
    """清单或配置缺失、内容无效（如固定版本缺失）"""

    code = "CONFIG_ERROR"


class ParseError(GoTrashError):
    """清单或源文件无法解析"""

    code = "PARSE_ERROR"

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class CacheError(GoTrashError):
    """缓存条目损坏且无法重建"""

    code = "CACHE_ERROR"


class VersionControlError(GoTrashError):
    """git clone / fetch / checkout 重试耗尽"""

    code = "VCS_ERROR"

    def __init__(self, message: str, package: str = "") -> None:
        super().__init__(message)
        self.package = package


class FilesystemError(GoTrashError):
    """复制或删除 vendor 目录失败"""

    code = "FILESYSTEM_ERROR"

