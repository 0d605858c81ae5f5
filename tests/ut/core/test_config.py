"""配置与 YAML 读写单元测试"""

from __future__ import annotations

import json
import logging

import pytest
import yaml

from gotrash.core.config import (
    DEFAULT_PLATFORMS,
    Config,
    get_config,
    init_config,
    reset_config,
)
from gotrash.utils.logger import JSONFormatter, reset_logging, setup_logging
from gotrash.utils.yaml_io import atomic_write, dump_yaml, load_yaml, read_text


@pytest.fixture(autouse=True)
def _clean_config():
    reset_config()
    yield
    reset_config()


class TestConfig:
    def test_defaults(self) -> None:
        cfg = Config()
        assert cfg.manifest == "vendor.conf"
        assert cfg.target_dir == "vendor"
        assert cfg.tracking_branch == "master"
        assert cfg.platforms == DEFAULT_PLATFORMS
        assert cfg.cache_dir.endswith(".trash-cache")
        assert cfg.max_workers is None

    def test_from_file(self, tmp_path) -> None:
        path = tmp_path / "gotrash.yml"
        path.write_text(
            "target_dir: third_party\nmax_workers: 4\nplatforms: [linux/amd64]\nowner: me\n"
        )
        cfg = Config.from_file(str(path))
        assert cfg.target_dir == "third_party"
        assert cfg.max_workers == 4
        assert cfg.platforms == ["linux/amd64"]
        assert cfg.extra == {"owner": "me"}

    def test_from_missing_file(self, tmp_path) -> None:
        assert Config.from_file(str(tmp_path / "nope.yml")) == Config()

    def test_singleton(self, tmp_path) -> None:
        assert get_config() is get_config()
        path = tmp_path / "c.yml"
        path.write_text("tracking_branch: main\n")
        cfg = init_config(str(path))
        assert get_config() is cfg
        assert cfg.tracking_branch == "main"


class TestYamlIO:
    def test_load_missing_and_empty(self, tmp_path) -> None:
        assert load_yaml(tmp_path / "nope.yml") == {}
        (tmp_path / "empty.yml").write_text("")
        assert load_yaml(tmp_path / "empty.yml") == {}

    def test_load_non_dict(self, tmp_path) -> None:
        (tmp_path / "list.yml").write_text("- a\n- b\n")
        assert load_yaml(tmp_path / "list.yml") == {}

    def test_load_invalid(self, tmp_path) -> None:
        (tmp_path / "bad.yml").write_text("a: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml(tmp_path / "bad.yml")

    def test_dump_keeps_order(self, tmp_path) -> None:
        path = tmp_path / "out" / "x.yml"
        atomic_write(path, dump_yaml({"z": 1, "a": "中文"}))
        text = path.read_text(encoding="utf-8")
        assert text.index("z:") < text.index("a:")
        assert "中文" in text
        assert load_yaml(path) == {"z": 1, "a": "中文"}

    def test_atomic_write_no_leftover(self, tmp_path) -> None:
        atomic_write(tmp_path / "f.txt", "hello")
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]

    def test_read_text_size_limit(self, tmp_path, monkeypatch) -> None:
        import gotrash.utils.yaml_io as yaml_io
        monkeypatch.setattr(yaml_io, "MAX_YAML_SIZE", 3)
        (tmp_path / "big.txt").write_text("abcdef")
        with pytest.raises(ValueError, match="文件过大"):
            read_text(tmp_path / "big.txt")


class TestLogging:
    def test_json_formatter(self) -> None:
        record = logging.LogRecord("gotrash.x", logging.WARNING, __file__, 1, "hi %s", ("there",), None)
        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "WARNING"
        assert data["logger"] == "gotrash.x"
        assert data["message"] == "hi there"
        assert "thread" in data

    def test_setup_levels(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="warning")
            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            setup_logging(level="INFO", json_output=True, debug=True)
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            reset_logging()
            for h in saved_handlers:
                root.addHandler(h)
            root.setLevel(saved_level)
