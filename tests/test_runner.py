"""Tests for external command execution."""
import subprocess
from types import SimpleNamespace

from lxdhost.core.runner import CommandRunner, LxcClient


def _capture(monkeypatch, returncode=0, stdout="", stderr=""):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured['cmd'] = cmd
        captured['kwargs'] = kwargs
        return SimpleNamespace(returncode=returncode, stdout=stdout, stderr=stderr)

    monkeypatch.setattr("lxdhost.core.runner.subprocess.run", fake_run)
    return captured


class TestCommandRunner:
    """Test CommandRunner against a patched subprocess.run."""

    def test_captures_output(self, monkeypatch):
        captured = _capture(monkeypatch, stdout="lxd 5.21\n")

        result = CommandRunner().run(["snap", "list", "lxd"])

        assert result.ok
        assert result.stdout == "lxd 5.21\n"
        assert captured['cmd'] == ["snap", "list", "lxd"]
        assert captured['kwargs']['capture_output'] is True
        assert captured['kwargs']['check'] is False

    def test_extra_env_is_layered(self, monkeypatch):
        captured = _capture(monkeypatch)
        monkeypatch.setenv("PATH", "/usr/bin")

        CommandRunner().run(["apt-get", "update"], env={"DEBIAN_FRONTEND": "noninteractive"})

        env = captured['kwargs']['env']
        assert env["DEBIAN_FRONTEND"] == "noninteractive"
        assert env["PATH"] == "/usr/bin"

    def test_interactive_does_not_capture(self, monkeypatch):
        captured = _capture(monkeypatch, returncode=3)

        result = CommandRunner().run(["bash", "-c", "true"], interactive=True)

        assert result.returncode == 3
        assert 'capture_output' not in captured['kwargs']

    def test_failure_output(self, monkeypatch):
        _capture(monkeypatch, returncode=1, stderr="Error: not found\n")

        result = CommandRunner().run(["lxc", "info", "x"])

        assert not result.ok
        assert result.error_output() == "Error: not found"

    def test_missing_executable(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr("lxdhost.core.runner.subprocess.run", fake_run)

        result = CommandRunner().run(["lxc", "list"])

        assert result.returncode == 127
        assert "command not found" in result.stderr

    def test_timeout(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, 5)

        monkeypatch.setattr("lxdhost.core.runner.subprocess.run", fake_run)

        result = CommandRunner(timeout=5).run(["apt-get", "update"])

        assert result.returncode == 124

    def test_mock_mode_runs_nothing(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise AssertionError("subprocess called in mock mode")

        monkeypatch.setattr("lxdhost.core.runner.subprocess.run", fake_run)
        runner = CommandRunner(mock=True)

        assert runner.run(["lxd", "init", "--auto"]).ok
        assert runner.which("snap") == "/usr/bin/snap"
        runner.sleep(60)


class TestLxcClient:
    """Test lxc command construction."""

    def test_exec_builds_env_flags(self, monkeypatch):
        captured = _capture(monkeypatch)

        LxcClient(CommandRunner()).exec(
            "webhost-lxc", ["apt-get", "update"], env={"DEBIAN_FRONTEND": "noninteractive"}
        )

        assert captured['cmd'] == [
            "lxc", "exec", "webhost-lxc",
            "--env", "DEBIAN_FRONTEND=noninteractive",
            "--", "apt-get", "update",
        ]
