"""清单模型

拆分说明:
- models.py: Import / Manifest 数据模型与去重
- formats.py: 结构化 (YAML) 与行格式的解析/序列化
- loader.py: 清单文件定位与加载
"""

from gotrash.core.manifest.formats import parse, serialize
from gotrash.core.manifest.loader import find_manifest, load
from gotrash.core.manifest.models import Import, ImportOptions, Manifest, ManifestFormat

__all__ = [
    "Import",
    "ImportOptions",
    "Manifest",
    "ManifestFormat",
    "parse",
    "serialize",
    "load",
    "find_manifest",
]
