"""Go 源码 import 扫描器

只解析到 import 声明结束为止（包声明、import 块、注释），不做语义分析。

职责:
- 词法: 注释 / 字符串 / 标识符，按行号划分注释组，定位 import 的文档注释
- 文件筛选: _ 或 . 开头的文件、调用方过滤函数、文件名平台后缀、头部构建约束
- import 收集: 普通 import（相对路径按所在包解析）+ cgo 前导注释中
  #include "dir/x.h" 指向的本地子目录
"""

from __future__ import annotations

import ast
import logging
import posixpath
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from gotrash.core.constraints import Platform, satisfied
from gotrash.core.exceptions import ParseError
from gotrash.core.packages import PackageSet, resolve_relative

logger = logging.getLogger(__name__)

# 文件过滤函数：返回 False 的文件不参与扫描
FileFilter = Callable[[Path], bool]

_TOKEN_RE = re.compile(
    r"""
    (?P<nl>\n)
  | (?P<ws>[ \t\r\f\v]+)
  | (?P<line>//[^\n]*)
  | (?P<block>/\*.*?\*/)
  | (?P<str>"(?:[^"\\\n]|\\.)*")
  | (?P<raw>`[^`]*`)
  | (?P<rune>'(?:[^'\\\n]|\\.)*')
  | (?P<ident>[^\W\d]\w*)
  | (?P<op>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_INCLUDE_RE = re.compile(r'^#include\s*"([^"]+)"')
_GO_BUILD_RE = re.compile(r"^//go:build(?:\s+(.*))?$")
_PLUS_BUILD_RE = re.compile(r"^//\s*\+build(?:\s+(.*))?$")


@dataclass
class _Token:
    kind: str
    text: str
    line: int
    end_line: int
    doc: list[_Token] | None = None  # 紧邻的前导注释组（仅有效 token）


@dataclass
class ImportSpec:
    """单条 import 声明"""

    path: str
    name: str = ""
    doc: str = ""  # 文档注释文本（已去掉注释符号）


@dataclass
class GoSource:
    """单个 Go 文件的头部信息"""

    package: str
    imports: list[ImportSpec] = field(default_factory=list)
    go_build: str | None = None
    plus_build: list[str] = field(default_factory=list)


def _lex(text: str) -> Iterator[_Token]:
    """产出注释和有效 token（跳过空白），带起止行号

    尾随在有效 token 同一行的注释不计入下一个 token 的文档注释。
    """
    line = 1
    group: list[_Token] = []
    last_line = 0  # 上一个有效 token 的结束行
    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup or "op"
        value = m.group()
        start = line
        line += value.count("\n")
        if kind in ("nl", "ws"):
            continue
        tok = _Token(kind=kind, text=value, line=start, end_line=line)
        if kind in ("line", "block"):
            if start == last_line:
                group = []
            elif group and start <= group[-1].end_line + 1:
                group.append(tok)
            else:
                group = [tok]
            yield tok
            continue
        if kind == "op" and value in ('"', "`", "'"):
            raise ParseError(f"第 {start} 行: 未结束的字面量")
        if kind == "op" and value == "/" and text.startswith("/*", m.start()):
            raise ParseError(f"第 {start} 行: 未结束的块注释")
        if group and group[-1].end_line + 1 == start:
            tok.doc = group
        group = []
        last_line = line
        yield tok


def comment_text(group: list[_Token] | None) -> str:
    """去掉注释符号后的注释组文本"""
    if not group:
        return ""
    lines: list[str] = []
    for c in group:
        if c.kind == "line":
            lines.append(c.text[2:])
        else:
            lines.extend(c.text[2:-2].splitlines())
    return "\n".join(lines).strip("\n")


def _unquote(tok: _Token) -> str:
    if tok.kind == "raw":
        return tok.text[1:-1]
    try:
        value = ast.literal_eval(tok.text)
    except (ValueError, SyntaxError) as e:
        raise ParseError(f"第 {tok.line} 行: 无效的字符串 {tok.text}") from e
    return str(value)


def parse_source(text: str) -> GoSource:
    """解析 Go 文件头部：构建约束、包名、import 声明

    异常:
        ParseError: 缺少包声明或 import 语法错误
    """
    tokens = _lex(text.removeprefix("\ufeff"))
    header: list[_Token] = []  # package 之前的行注释
    in_header = True

    def significant() -> _Token | None:
        for tok in tokens:
            if tok.kind == "line":
                if in_header:
                    header.append(tok)
                continue
            if tok.kind == "block":
                continue
            if tok.kind == "op" and tok.text == ";":
                continue
            return tok
        return None

    tok = significant()
    in_header = False
    if tok is None or tok.text != "package":
        raise ParseError("缺少 package 声明")
    go_build, plus_build = _header_constraints(header, tok.doc)
    name = significant()
    if name is None or name.kind != "ident":
        raise ParseError("package 声明缺少包名")
    src = GoSource(package=name.text, go_build=go_build, plus_build=plus_build)

    tok = significant()
    while tok is not None and tok.text == "import":
        decl_doc = tok.doc
        tok = significant()
        if tok is None:
            raise ParseError("import 声明意外结束")
        if tok.text == "(":
            specs: list[ImportSpec] = []
            tok = significant()
            while tok is not None and tok.text != ")":
                spec, tok = _parse_spec(tok, significant)
                specs.append(spec)
            if tok is None:
                raise ParseError("import 块缺少 ')'")
            if len(specs) == 1 and not specs[0].doc:
                specs[0].doc = comment_text(decl_doc)
            src.imports.extend(specs)
            tok = significant()
        else:
            spec, tok = _parse_spec(tok, significant, doc=decl_doc)
            src.imports.append(spec)
    return src


def _header_constraints(
    header: list[_Token],
    package_doc: list[_Token] | None,
) -> tuple[str | None, list[str]]:
    """提取头部构建约束

    紧贴 package 的注释组是包文档，其中的约束行不生效（约束后必须有空行）。
    """
    doc = {id(c) for c in package_doc or ()}
    go_build: str | None = None
    plus_build: list[str] = []
    for tok in header:
        if id(tok) in doc:
            continue
        text = tok.text.rstrip()
        m = _GO_BUILD_RE.match(text)
        if m and go_build is None:
            go_build = m.group(1) or ""
        m = _PLUS_BUILD_RE.match(text)
        if m:
            plus_build.append(m.group(1) or "")
    return go_build, plus_build


def _parse_spec(
    tok: _Token,
    next_token: Callable[[], _Token | None],
    doc: list[_Token] | None = None,
) -> tuple[ImportSpec, _Token | None]:
    """解析一条 import spec: [name] "path"，返回 spec 和其后的 token"""
    spec_doc = comment_text(doc if doc is not None else tok.doc)
    name = ""
    if tok.kind == "ident" or tok.text == ".":
        name = tok.text
        nxt = next_token()
        if nxt is None:
            raise ParseError(f"第 {tok.line} 行: import 缺少路径")
        tok = nxt
    if tok.kind not in ("str", "raw"):
        raise ParseError(f"第 {tok.line} 行: import 路径应为字符串，实际为 {tok.text!r}")
    spec = ImportSpec(path=_unquote(tok), name=name, doc=spec_doc)
    return spec, next_token()


def cgo_include_dirs(spec: ImportSpec) -> list[str]:
    """import "C" 前导注释中 #include "..." 的目录部分（排除当前目录）"""
    dirs: list[str] = []
    for line in spec.doc.splitlines():
        m = _INCLUDE_RE.match(line.strip())
        if not m:
            continue
        include_dir = posixpath.dirname(m.group(1))
        if include_dir and include_dir != ".":
            dirs.append(include_dir)
    return dirs


def _go_files(directory: Path) -> list[Path]:
    return sorted(
        p for p in directory.iterdir()
        if p.name.endswith(".go")
        and not p.name.startswith(("_", "."))
        and p.is_file()
    )


class SourceScanner:
    """按平台变体扫描单个包目录的 import"""

    def scan(
        self,
        directory: Path,
        package: str,
        platform: Platform,
        include: FileFilter | None = None,
    ) -> PackageSet:
        """返回目录下源文件引用的全部 import 路径

        目录不存在返回空集合；单个文件读取/解析失败时记录日志并跳过。
        """
        if not directory.is_dir():
            logger.debug("包目录不存在: %s (%s)", directory, package)
            return set()

        try:
            files = _go_files(directory)
        except OSError as e:
            logger.error("无法列出包目录 %s: %s", directory, e)
            return set()

        result: PackageSet = set()
        for path in files:
            if include is not None and not include(path):
                continue
            if not platform.matches_filename(path.name):
                continue
            src = self._parse_file(path)
            if src is None:
                continue
            try:
                if not satisfied(platform, src.go_build, src.plus_build):
                    continue
            except ParseError as e:
                logger.error("构建约束无效，跳过文件 %s: %s", path, e)
                continue
            for spec in src.imports:
                if spec.path == "C":
                    for include_dir in cgo_include_dirs(spec):
                        if (directory / include_dir).is_dir():
                            result.add(posixpath.normpath(
                                posixpath.join(package, include_dir),
                            ))
                    continue
                result.add(resolve_relative(package, spec.path))
        logger.debug(
            "扫描 %s [%s]: %d 个 import", package, platform.label, len(result),
        )
        return result

    def is_package_dir(self, directory: Path) -> bool:
        """目录中是否有可解析出 package 声明的 Go 文件"""
        try:
            files = _go_files(directory)
        except OSError as e:
            logger.warning("无法列出目录 %s: %s", directory, e)
            return False
        return any(self._parse_file(p) is not None for p in files)

    @staticmethod
    def _parse_file(path: Path) -> GoSource | None:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error("读取源文件失败 %s: %s", path, e)
            return None
        try:
            return parse_source(text)
        except ParseError as e:
            logger.error("解析 import 失败，跳过文件 %s: %s", path, e)
            return None
