"""gotrash - 依赖源码 vendoring 工具

按清单固定版本拉取外部包源码，只保留项目实际 import 到的部分。
"""

__version__ = "0.3.0"
