"""Tests for configuration loading."""
import textwrap
from pathlib import Path

import pytest

from taskboard.config import Config
from taskboard.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TASKBOARD_CONFIG", "TASKBOARD_DB", "TASKBOARD_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestConfig:

    def test_defaults_when_file_missing(self, tmp_path):
        cfg = Config.load(str(tmp_path / "missing.yaml"))
        assert cfg.port == 7788
        assert cfg.host == "127.0.0.1"
        assert cfg.log_level == "WARNING"
        assert cfg.db_path == str(Path.home() / ".local/share/taskboard/taskboard.db")

    def test_loads_yaml_and_ignores_unknown_keys(self, tmp_path):
        cfg_file = tmp_path / "taskboard.yaml"
        cfg_file.write_text(textwrap.dedent("""
            db_path: /tmp/board.db
            port: 9000
            log_level: DEBUG
            theme: dark
        """))
        cfg = Config.load(str(cfg_file))
        assert cfg.db_path == "/tmp/board.db"
        assert cfg.port == 9000
        assert cfg.log_level == "DEBUG"
        assert not hasattr(cfg, "theme")

    def test_empty_file_gives_defaults(self, tmp_path):
        cfg_file = tmp_path / "taskboard.yaml"
        cfg_file.write_text("")
        assert Config.load(str(cfg_file)).port == 7788

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        cfg_file = tmp_path / "taskboard.yaml"
        cfg_file.write_text("db_path: /tmp/from-file.db\n")
        monkeypatch.setenv("TASKBOARD_DB", str(tmp_path / "from-env.db"))
        monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "INFO")
        cfg = Config.load(str(cfg_file))
        assert cfg.db_path == str(tmp_path / "from-env.db")
        assert cfg.log_level == "INFO"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        cfg_file = tmp_path / "custom.yaml"
        cfg_file.write_text("port: 8123\n")
        monkeypatch.setenv("TASKBOARD_CONFIG", str(cfg_file))
        assert Config.load().port == 8123

    def test_tilde_expanded(self, tmp_path):
        cfg_file = tmp_path / "taskboard.yaml"
        cfg_file.write_text("db_path: ~/boards/work.db\n")
        cfg = Config.load(str(cfg_file))
        assert cfg.db_path == str(Path.home() / "boards" / "work.db")

    def test_invalid_yaml_raises(self, tmp_path):
        cfg_file = tmp_path / "taskboard.yaml"
        cfg_file.write_text("port: [unclosed\n")
        with pytest.raises(ConfigError):
            Config.load(str(cfg_file))

    def test_non_mapping_raises(self, tmp_path):
        cfg_file = tmp_path / "taskboard.yaml"
        cfg_file.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            Config.load(str(cfg_file))
