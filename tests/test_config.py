import os
import sys
import pytest
import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import DEFAULTS, YamlConfig


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    monkeypatch.delenv("FITLOG_DB", raising=False)
    monkeypatch.delenv("FITLOG_LOG_LEVEL", raising=False)


def test_defaults_without_file(tmp_path):
    cfg = YamlConfig(str(tmp_path / "missing.yaml"))
    assert cfg.load() == DEFAULTS


def test_save_and_load(tmp_path):
    path = tmp_path / "settings.yaml"
    cfg = YamlConfig(str(path))
    cfg.save({"db_path": "gym.db", "log_level": "DEBUG"})
    with open(path, "r", encoding="utf-8") as f:
        assert yaml.safe_load(f) == {"db_path": "gym.db", "log_level": "DEBUG"}
    assert cfg.load() == {"db_path": "gym.db", "log_level": "DEBUG"}


def test_partial_file_keeps_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("log_level: WARNING\n", encoding="utf-8")
    assert YamlConfig(str(path)).load() == {
        "db_path": "fitlog.db",
        "log_level": "WARNING",
    }


def test_environment_overrides(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("db_path: file.db\n", encoding="utf-8")
    monkeypatch.setenv("FITLOG_DB", "env.db")
    monkeypatch.setenv("FITLOG_LOG_LEVEL", "ERROR")
    assert YamlConfig(str(path)).load() == {"db_path": "env.db", "log_level": "ERROR"}


def test_invalid_settings_rejected(tmp_path):
    cfg = YamlConfig(str(tmp_path / "settings.yaml"))
    with pytest.raises(ValueError):
        cfg.save({"db_path": "gym.db", "log_level": "LOUD"})
    with pytest.raises(ValueError):
        cfg.save({"db_path": "gym.db", "theme": "dark"})
    assert not os.path.exists(cfg.path)

    (tmp_path / "settings.yaml").write_text("unknown: 1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        cfg.load()
