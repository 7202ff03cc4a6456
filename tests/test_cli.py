"""Tests for the command-line front end."""

import argparse
import signal

import pytest

import screenctl.config as config
import screenctl.logging_config as logging_config
from screenctl import cli


@pytest.fixture
def run_cli(fake_screen, tmp_path, monkeypatch, capsys):
    """Run cli.main() against the fake screen; returns (exit_code, stdout)."""
    saved = (config._screen_dir, config._screen_dir_overridden, config._username, config._screen_exec)
    monkeypatch.setattr(logging_config, "setup_process_logging", lambda *a, **kw: None)

    def run(*argv):
        code = 0
        try:
            cli.main(["--screen-dir", str(tmp_path), *argv])
        except SystemExit as e:
            code = e.code
        return code, capsys.readouterr().out

    yield run
    config._screen_dir, config._screen_dir_overridden, config._username, config._screen_exec = saved


class TestParseSignal:
    @pytest.mark.parametrize("value", ["15", "TERM", "term", "SIGTERM"])
    def test_forms(self, value):
        assert cli._parse_signal(value) == signal.SIGTERM

    def test_unknown(self):
        with pytest.raises(argparse.ArgumentTypeError):
            cli._parse_signal("NOPE")


class TestCommands:
    def test_ls_empty(self, run_cli, tmp_path):
        code, out = run_cli("ls")
        assert code == 0
        # an overridden session directory holds the sockets directly
        assert out == f"No running sessions in {tmp_path}.\n"

    def test_ls(self, run_cli, fake_screen):
        fake_screen.add("build", pid=321)
        code, out = run_cli("ls")
        assert out == "321\tbuild\n"

    def test_new(self, run_cli, fake_screen):
        code, out = run_cli("new", "t1", "--shell", "bash -l")
        assert code == 0
        assert "Started session 't1'" in out
        assert ("-dmS", "t1", "bash", "-l") in fake_screen.calls

    def test_stuff_enter(self, run_cli, fake_screen):
        fake_screen.add("t1")
        run_cli("stuff", "t1", "echo", "hi", "--enter")
        assert fake_screen.control_calls("t1") == [("stuff", "echo hi \n")]

    def test_hardcopy_to_stdout(self, run_cli, fake_screen):
        fake_screen.add("t1").buffer = "hello\n"
        code, out = run_cli("hardcopy", "t1")
        assert out == "hello\n"

    def test_log_off(self, run_cli, fake_screen):
        fake_screen.add("t1")
        run_cli("log", "t1")
        assert fake_screen.control_calls("t1")[-1] == ("log", "off")

    def test_missing_session_exits_1(self, run_cli):
        code, out = run_cli("quit", "nope")
        assert code == 1
        assert "Error:" in out
        assert "nope" in out

    def test_invalid_fdpat_exits_1(self, run_cli, fake_screen):
        fake_screen.add("t1")
        code, out = run_cli("exec", "t1", "--fdpat", "bad", "ls")
        assert code == 1
        assert "fd pattern" in out
