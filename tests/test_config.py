"""Unit tests for procshell.config."""

import json
import stat
from unittest.mock import patch

import pytest

from procshell import config as config_module
from procshell.config import ProcshellConfig, load_config, save_config


@pytest.fixture
def config_paths(tmp_path, monkeypatch):
    config_dir = tmp_path / ".procshell"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.delenv("PROCSHELL_SHELL", raising=False)
    monkeypatch.delenv("PROCSHELL_GRACE", raising=False)
    return config_dir, config_file


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, config_paths):
        assert load_config() == ProcshellConfig()

    def test_reads_saved_values(self, config_paths):
        _, config_file = config_paths
        config_file.parent.mkdir()
        config_file.write_text(json.dumps({"shell_path": "/bin/zsh", "rows": 50, "env": {"A": "1"}}))

        loaded = load_config()
        assert loaded.shell_path == "/bin/zsh"
        assert loaded.rows == 50
        assert loaded.env == {"A": "1"}

    def test_corrupt_file_falls_back_to_defaults(self, config_paths):
        _, config_file = config_paths
        config_file.parent.mkdir()
        config_file.write_text("{not json")
        assert load_config() == ProcshellConfig()

    def test_invalid_values_fall_back_to_defaults(self, config_paths):
        _, config_file = config_paths
        config_file.parent.mkdir()
        config_file.write_text(json.dumps({"rows": -3}))
        assert load_config().rows == 24

    def test_env_overrides(self, config_paths, monkeypatch):
        monkeypatch.setenv("PROCSHELL_SHELL", "/bin/dash")
        monkeypatch.setenv("PROCSHELL_GRACE", "0.25")

        loaded = load_config()
        assert loaded.shell_path == "/bin/dash"
        assert loaded.term_grace_seconds == 0.25

    def test_invalid_grace_env_is_ignored(self, config_paths, monkeypatch):
        monkeypatch.setenv("PROCSHELL_GRACE", "soon")
        assert load_config().term_grace_seconds == 1.0


class TestSaveConfig:
    def test_save_then_load(self, config_paths):
        _, config_file = config_paths
        save_config(ProcshellConfig(color=True, cols=132))

        assert load_config().cols == 132
        assert load_config().color is True
        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600
        assert [p.name for p in config_file.parent.iterdir()] == ["config.json"]


class TestToSessionConfig:
    def test_detects_shell_when_unset(self):
        with patch("procshell.config.detect_shell", return_value="/bin/detected"):
            session = ProcshellConfig().to_session_config(interactive=True)
        assert session.shell_path == "/bin/detected"
        assert session.interactive is True

    def test_carries_user_settings(self):
        session = ProcshellConfig(
            shell_path="/bin/sh", env={"K": "V"}, rows=10, cols=20, color=True, term_grace_seconds=0.2
        ).to_session_config()
        assert session.shell_path == "/bin/sh"
        assert session.env == {"K": "V"}
        assert (session.rows, session.cols) == (10, 20)
        assert session.color is True
        assert session.term_grace_seconds == 0.2
        assert session.argv("ls") == ["/bin/sh", "-c", "ls"]
        assert session.argv(None) == ["/bin/sh", "-i"]
