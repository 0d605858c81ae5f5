"""构建约束与平台变体

职责:
- Platform: (GOOS, GOARCH, 额外 tag) 平台变体，空平台表示忽略所有约束
- 文件名约束: *_GOOS.go / *_GOARCH.go / *_GOOS_GOARCH.go
- 头部约束: //go:build 表达式（优先）与旧式 // +build 行
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from gotrash.core.exceptions import ParseError

KNOWN_OS = frozenset((
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
    "ios", "js", "linux", "nacl", "netbsd", "openbsd", "plan9", "solaris",
    "wasip1", "windows", "zos",
))

KNOWN_ARCH = frozenset((
    "386", "amd64", "amd64p32", "arm", "armbe", "arm64", "arm64be",
    "loong64", "mips", "mipsle", "mips64", "mips64le", "mips64p32",
    "mips64p32le", "ppc", "ppc64", "ppc64le", "riscv", "riscv64",
    "s390", "s390x", "sparc", "sparc64", "wasm",
))

UNIX_OS = frozenset((
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
    "ios", "linux", "netbsd", "openbsd", "solaris",
))

# GOOS 隐含的其他 GOOS tag
_IMPLIED_OS = {"android": "linux", "illumos": "solaris", "ios": "darwin"}

_RELEASE_TAG_RE = re.compile(r"^go1\.\d+$")


@dataclass(frozen=True)
class Platform:
    """平台变体

    goos 与 goarch 均为空时为「约束无关」变体：所有文件都参与扫描。
    """

    goos: str = ""
    goarch: str = ""
    tags: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def parse(cls, spec: str, tags: list[str] | tuple[str, ...] = ()) -> Platform:
        """从 'linux/amd64' 形式解析；'any' 或空串为约束无关变体"""
        spec = spec.strip()
        if spec in ("", "any"):
            return cls()
        goos, sep, goarch = spec.partition("/")
        if not sep or goos not in KNOWN_OS or goarch not in KNOWN_ARCH:
            raise ValueError(f"无效的平台变体: {spec!r}，应为 GOOS/GOARCH")
        return cls(goos=goos, goarch=goarch, tags=frozenset(tags))

    @property
    def agnostic(self) -> bool:
        return not self.goos and not self.goarch

    @property
    def label(self) -> str:
        return "any" if self.agnostic else f"{self.goos}/{self.goarch}"

    def has_tag(self, tag: str) -> bool:
        """tag 在该平台下是否成立"""
        if self.agnostic:
            return True
        if tag in (self.goos, self.goarch, "gc") or tag in self.tags:
            return True
        if tag == "unix":
            return self.goos in UNIX_OS
        if _IMPLIED_OS.get(self.goos) == tag:
            return True
        return bool(_RELEASE_TAG_RE.match(tag))

    def matches_filename(self, name: str) -> bool:
        """按 Go 文件名约定判断文件是否属于该平台"""
        if self.agnostic:
            return True
        stem = name[:-3] if name.endswith(".go") else name
        if stem.endswith("_test"):
            stem = stem[:-5]
        parts = stem.split("_")[1:]
        n = len(parts)
        if n >= 2 and parts[-2] in KNOWN_OS and parts[-1] in KNOWN_ARCH:
            return self.has_tag(parts[-2]) and self.has_tag(parts[-1])
        if n >= 1 and parts[-1] in KNOWN_OS:
            return self.has_tag(parts[-1])
        if n >= 1 and parts[-1] in KNOWN_ARCH:
            return self.has_tag(parts[-1])
        return True


# =========================================================================
# //go:build 表达式
# =========================================================================

_EXPR_TOKEN_RE = re.compile(r"\s*(\(|\)|!|&&|\|\||[A-Za-z0-9_.]+)")


class _ExprParser:
    """//go:build 表达式递归下降求值

    expr   := and ('||' and)*
    and    := unary ('&&' unary)*
    unary  := '!' unary | '(' expr ')' | tag
    """

    def __init__(self, text: str, has_tag: Callable[[str], bool]) -> None:
        self.tokens = self._tokenize(text)
        self.pos = 0
        self.has_tag = has_tag

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        tokens: list[str] = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            m = _EXPR_TOKEN_RE.match(text, pos)
            if not m:
                raise ParseError(f"构建约束中有非法字符: {text[pos:]!r}")
            tokens.append(m.group(1))
            pos = m.end()
        return tokens

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> str:
        tok = self._peek()
        if tok is None:
            raise ParseError("构建约束表达式意外结束")
        self.pos += 1
        return tok

    def evaluate(self) -> bool:
        if not self.tokens:
            raise ParseError("空的构建约束表达式")
        value = self._or()
        if self._peek() is not None:
            raise ParseError(f"构建约束表达式多余的符号: {self._peek()!r}")
        return value

    def _or(self) -> bool:
        value = self._and()
        while self._peek() == "||":
            self._take()
            rhs = self._and()
            value = value or rhs
        return value

    def _and(self) -> bool:
        value = self._unary()
        while self._peek() == "&&":
            self._take()
            rhs = self._unary()
            value = value and rhs
        return value

    def _unary(self) -> bool:
        tok = self._take()
        if tok == "!":
            return not self._unary()
        if tok == "(":
            value = self._or()
            if self._take() != ")":
                raise ParseError("构建约束表达式缺少 ')'")
            return value
        if tok in (")", "&&", "||"):
            raise ParseError(f"构建约束表达式中意外的 {tok!r}")
        return self.has_tag(tok)


def eval_go_build(expr: str, has_tag: Callable[[str], bool]) -> bool:
    """求值 //go:build 之后的表达式

    异常:
        ParseError: 表达式语法错误
    """
    return _ExprParser(expr, has_tag).evaluate()


def eval_plus_build(lines: list[str], has_tag: Callable[[str], bool]) -> bool:
    """求值旧式 // +build 行

    行内空格分隔为 OR，逗号分隔为 AND，'!' 取反；多行之间为 AND。
    """
    for line in lines:
        options = line.split()
        if not options:
            continue
        if not any(_plus_build_option(opt, has_tag) for opt in options):
            return False
    return True


def _plus_build_option(option: str, has_tag: Callable[[str], bool]) -> bool:
    for term in option.split(","):
        negated = term.startswith("!")
        name = term[1:] if negated else term
        if not name or name.startswith("!"):
            raise ParseError(f"无效的 +build 条目: {option!r}")
        if has_tag(name) == negated:
            return False
    return True


def satisfied(
    platform: Platform, go_build: str | None, plus_build: list[str],
) -> bool:
    """文件头部约束在 platform 下是否成立；//go:build 存在时忽略 +build 行"""
    if platform.agnostic:
        return True
    if go_build is not None:
        return eval_go_build(go_build, platform.has_tag)
    if plus_build:
        return eval_plus_build(plus_build, platform.has_tag)
    return True
