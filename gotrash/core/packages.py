"""包路径集合工具

PackageSet 就是 set[str]：只关心成员关系，合并满足交换律、结合律、幂等。
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable

PackageSet = set[str]


def merge(*sets: Iterable[str]) -> PackageSet:
    """合并任意多个包集合，返回新集合"""
    result: PackageSet = set()
    for s in sets:
        result.update(s)
    return result


def parent_packages(root: str, path: str) -> PackageSet:
    """path 自身及其所有比 root 更长的祖先路径

    >>> sorted(parent_packages("a", "a/b/c/d"))
    ['a/b', 'a/b/c', 'a/b/c/d']
    """
    result: PackageSet = set()
    p = path.rstrip("/")
    while len(p) > len(root):
        result.add(p)
        p = posixpath.dirname(p)
    return result


def is_within(package: str, root: str) -> bool:
    """package 是否为 root 本身或其子包"""
    return package == root or package.startswith(root + "/")


def is_stdlib(path: str) -> bool:
    """首段不含 '.' 的 import 路径视为标准库（如 fmt、net/http、C）"""
    return "." not in path.split("/", 1)[0]


def resolve_relative(package: str, path: str) -> str:
    """将 ./x、../x 形式的 import 相对 package 解析为绝对包路径"""
    first = path.split("/", 1)[0]
    if first in (".", ".."):
        return posixpath.normpath(posixpath.join(package, path))
    return path
