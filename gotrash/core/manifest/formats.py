"""清单格式读写

两种格式:
- STRUCTURED: YAML 文档，顶层为字典 (package / import / exclude)
- FLAT: 行格式

    # 注释
    github.com/me/project                      <- 首个单字段行: 根包
    github.com/pkg/errors  v0.8.0              <- package version
    github.com/foo/bar     master  https://git.example.com/bar.git
    github.com/foo/baz     v1.2    transitive=true,staging=true
    -github.com/foo/bar/internal               <- 排除规则

格式在 parse() 中嗅探一次，写回时沿用 Manifest.format。
"""

from __future__ import annotations

import logging
from typing import Any

import yaml

from gotrash.core.exceptions import ParseError
from gotrash.core.manifest.models import Import, ImportOptions, Manifest, ManifestFormat
from gotrash.utils.yaml_io import dump_yaml

logger = logging.getLogger(__name__)

_OPTION_KEYS = ("transitive", "staging")


def sniff_format(text: str) -> ManifestFormat:
    """判断清单格式：能解析为顶层字典的 YAML 即为结构化格式"""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        return ManifestFormat.FLAT
    if isinstance(data, dict):
        return ManifestFormat.STRUCTURED
    return ManifestFormat.FLAT


def parse(source: str | bytes, source_file: str = "") -> Manifest:
    """解析清单文本，返回已去重排序的 Manifest

    异常:
        ParseError: 结构化格式字段类型错误，或内容无法解码
    """
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"清单不是 UTF-8 文本: {e}", source_file) from e

    fmt = sniff_format(source)
    if fmt is ManifestFormat.STRUCTURED:
        manifest = _parse_structured(yaml.safe_load(source), source_file)
    else:
        manifest = _parse_flat(source, source_file)
    manifest.dedupe()
    logger.debug(
        "清单解析完成: %s (%s, %d 个固定项, %d 条排除规则)",
        source_file or "<memory>", fmt.value,
        len(manifest.imports), len(manifest.excludes),
    )
    return manifest


def parse_options(text: str) -> ImportOptions:
    """解析 key=value,key=value 选项串，只识别值为 true 的已知键"""
    opts = ImportOptions()
    for part in text.split(","):
        key, sep, value = part.partition("=")
        if not sep or value.strip() != "true":
            continue
        key = key.strip()
        if key in _OPTION_KEYS:
            setattr(opts, key, True)
    return opts


def _parse_flat(text: str, source_file: str) -> Manifest:
    manifest = Manifest(format=ManifestFormat.FLAT, source_file=source_file)
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        fields = line.split()

        if fields[0].startswith("-"):
            manifest.excludes.append(fields[0][1:].strip())
            continue

        if len(fields) == 1 and not manifest.root_package:
            manifest.root_package = fields[0]
            logger.info(
                "使用 '%s' 作为项目根包 (来自 %s)",
                manifest.root_package, source_file or "<memory>",
            )
            continue

        imp = Import(package=fields[0])
        if len(fields) > 1:
            imp.version = fields[1]
        if len(fields) > 2:
            if "=" in fields[2]:
                imp.options = parse_options(fields[2])
            else:
                imp.repo = fields[2]
        if len(fields) > 3:
            imp.options = parse_options(fields[3])
        manifest.imports.append(imp)
    return manifest


def _str_field(entry: dict[str, Any], key: str, source_file: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ParseError(f"字段 '{key}' 应为字符串: {value!r}", source_file)
    return str(value)


def _bool_field(entry: dict[str, Any], key: str) -> bool:
    value = entry.get(key, False)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _parse_structured(data: dict[str, Any], source_file: str) -> Manifest:
    manifest = Manifest(format=ManifestFormat.STRUCTURED, source_file=source_file)
    manifest.root_package = _str_field(data, "package", source_file)

    entries = data.get("import") or []
    if not isinstance(entries, list):
        raise ParseError("'import' 应为列表", source_file)
    for entry in entries:
        if not isinstance(entry, dict):
            raise ParseError(f"import 条目应为字典: {entry!r}", source_file)
        package = _str_field(entry, "package", source_file)
        if not package:
            raise ParseError(f"import 条目缺少 package: {entry!r}", source_file)
        manifest.imports.append(Import(
            package=package,
            version=_str_field(entry, "version", source_file),
            repo=_str_field(entry, "repo", source_file),
            options=ImportOptions(
                transitive=_bool_field(entry, "transitive"),
                staging=_bool_field(entry, "staging"),
            ),
        ))

    excludes = data.get("exclude") or []
    if not isinstance(excludes, list):
        raise ParseError("'exclude' 应为列表", source_file)
    manifest.excludes = [str(e).strip() for e in excludes]
    return manifest


def serialize(manifest: Manifest) -> str:
    """按 manifest.format 序列化"""
    if manifest.format is ManifestFormat.STRUCTURED:
        return _serialize_structured(manifest)
    return _serialize_flat(manifest)


def _serialize_flat(manifest: Manifest) -> str:
    lines = ["# package", manifest.root_package]
    if manifest.imports:
        lines += ["", "# import"]
        for imp in manifest.imports:
            lines.append(f"{imp.package}\t{imp.version}\t{imp.repo}".strip())
    if manifest.excludes:
        lines += ["", "# exclude"]
        lines += [f"-{pattern.strip()}" for pattern in manifest.excludes]
    return "\n".join(lines) + "\n"


def _serialize_structured(manifest: Manifest) -> str:
    data: dict[str, Any] = {}
    if manifest.root_package:
        data["package"] = manifest.root_package
    if manifest.imports:
        entries = []
        for imp in manifest.imports:
            entry: dict[str, Any] = {"package": imp.package}
            if imp.version:
                entry["version"] = imp.version
            if imp.repo:
                entry["repo"] = imp.repo
            if imp.options.transitive:
                entry["transitive"] = True
            if imp.options.staging:
                entry["staging"] = True
            entries.append(entry)
        data["import"] = entries
    if manifest.excludes:
        data["exclude"] = list(manifest.excludes)
    return dump_yaml(data)
