"""Unit tests for procshell.cli."""

import sys
from unittest.mock import MagicMock, patch

import pytest

from procshell.cli import entrypoint, main
from procshell.config import ProcshellConfig
from procshell.update_check import UpdateInfo


@pytest.fixture(autouse=True)
def sh_user_config():
    config = ProcshellConfig(shell_path="/bin/sh", term_grace_seconds=0.5)
    with patch("procshell.cli.shared.load_config", return_value=config):
        yield config


# ---------------------------------------------------------------------------
# exec
# ---------------------------------------------------------------------------


class TestExec:
    def test_prints_captured_output(self, capsys):
        assert main(["exec", "--", "echo hi; echo warn >&2"]) == 0

        captured = capsys.readouterr()
        assert captured.out == "hi\n"
        assert captured.err == "warn\n"

    def test_returns_command_exit_code(self):
        assert main(["exec", "--", "exit 5"]) == 5

    def test_words_are_joined(self, capsys):
        main(["exec", "echo", "a", "b"])
        assert capsys.readouterr().out == "a b\n"

    def test_default_route_is_exec(self, capsys):
        assert main(["echo", "routed"]) == 0
        assert capsys.readouterr().out == "routed\n"

    def test_env_option(self, capsys):
        main(["exec", "-e", "NAME=world", "--", 'echo "hello $NAME"'])
        assert capsys.readouterr().out == "hello world\n"

    def test_invalid_env_option(self, capsys):
        assert main(["exec", "-e", "broken", "--", "true"]) == 1
        assert "invalid environment assignment" in capsys.readouterr().err

    def test_launch_error_returns_one(self, capsys):
        assert main(["exec", "--shell", "/nonexistent/procshell-sh", "--", "true"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_timeout_returns_124(self, capsys):
        assert main(["exec", "--timeout", "0.2", "--", "sleep 5"]) == 124
        assert "timed out" in capsys.readouterr().err

    def test_version_flag_raises_system_exit(self, capsys):
        with pytest.raises(SystemExit):
            main(["exec", "--version"])
        assert "0.1.0" in capsys.readouterr().out

    def test_no_args_exits_with_nonzero_code(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0


# ---------------------------------------------------------------------------
# stream
# ---------------------------------------------------------------------------


class TestStream:
    def test_streams_output_and_exit_code(self, capsys):
        assert main(["stream", "--", "echo one; echo two; exit 2"]) == 2
        assert capsys.readouterr().out == "one\ntwo\n"

    def test_launch_error_returns_one(self, capsys):
        assert main(["stream", "--shell", "/nonexistent/procshell-sh", "--", "true"]) == 1
        assert "Error:" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# check-update
# ---------------------------------------------------------------------------


class TestCheckUpdate:
    def test_up_to_date(self, capsys):
        with patch("procshell.cli.update.check_for_update", return_value=None):
            assert main(["check-update"]) == 0
        assert "up to date" in capsys.readouterr().out

    def test_update_available(self, capsys):
        info = UpdateInfo("0.1.0", "v0.2.0", "0.2.0", "", "https://example.invalid/release")
        with patch("procshell.cli.update.check_for_update", return_value=info) as mock_check:
            assert main(["check-update", "--force"]) == 0

        out = capsys.readouterr().out
        assert "0.1.0 -> v0.2.0" in out
        assert "https://example.invalid/release" in out
        assert mock_check.call_args.kwargs == {"force": True}


# ---------------------------------------------------------------------------
# entrypoint()
# ---------------------------------------------------------------------------


class TestEntrypoint:
    def test_entrypoint_exits_with_main_result(self):
        with patch("procshell.cli.app.main", MagicMock(return_value=7)):
            with pytest.raises(SystemExit) as exc_info:
                entrypoint()
        assert exc_info.value.code == 7

    def test_entrypoint_reads_sys_argv(self):
        with patch.object(sys, "argv", ["procshell", "exec", "--", "exit 3"]):
            with pytest.raises(SystemExit) as exc_info:
                entrypoint()
        assert exc_info.value.code == 3
