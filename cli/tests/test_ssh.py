import subprocess

import pytest

from stack_sync_cli import ssh
from stack_sync_cli.errors import RemoteUnavailable


def test_windows_ssh_disables_multiplexing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ssh, "is_windows", lambda: True)
    session = ssh.SSHSession(target=ssh.SshTarget(host="example"), control_path="ctl")

    cmd = session._ssh_base_cmd(control_master=True)

    assert not any("ControlMaster=" in part for part in cmd)
    assert not any("ControlPath=" in part for part in cmd)


def test_non_windows_ssh_uses_multiplexing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ssh, "is_windows", lambda: False)
    monkeypatch.setattr(ssh, "supports_control_master", lambda: True)
    target = ssh.SshTarget(host="example", user="deploy", key_path="/k/id")
    session = ssh.SSHSession(target=target, control_path="/tmp/ctl")

    cmd = session._ssh_base_cmd(control_master=True)

    assert cmd[:3] == ["ssh", "-o", "BatchMode=yes"]
    assert "ControlMaster=auto" in cmd
    assert "ControlPersist=10m" in cmd
    assert "ControlPath=/tmp/ctl" in cmd
    assert "-p" not in cmd
    assert cmd[cmd.index("-i") + 1] == "/k/id"
    assert target.destination == "deploy@example"


def test_start_failure_is_remote_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ssh, "supports_control_master", lambda: True)
    monkeypatch.setattr(
        ssh.subprocess,
        "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 255, "", "Connection refused"),
    )
    session = ssh.SSHSession(target=ssh.SshTarget(host="example"), control_path="/tmp/ctl")

    with pytest.raises(RemoteUnavailable, match="Connection refused"):
        session.start()


def test_start_failure_without_stderr_reports_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ssh, "supports_control_master", lambda: True)
    monkeypatch.setattr(ssh.subprocess, "run", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 255, None, None))
    session = ssh.SSHSession(target=ssh.SshTarget(host="example"), control_path="/tmp/ctl")

    with pytest.raises(RemoteUnavailable, match="ssh exited with 255"):
        session.start()


def test_start_falls_back_without_control_master(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ssh, "is_windows", lambda: False)
    monkeypatch.setattr(ssh, "supports_control_master", lambda: True)
    monkeypatch.setattr(
        ssh.subprocess,
        "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 255, "", "Bad configuration option: ControlPersist"),
    )
    session = ssh.SSHSession(target=ssh.SshTarget(host="example"), control_path="/tmp/ctl")

    session.start()

    assert not any("ControlPath=" in part for part in session._ssh_base_cmd(control_master=False))


def test_run_input_passes_content(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ssh, "supports_control_master", lambda: False)
    calls: list[dict] = []

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        calls.append({"cmd": cmd, **kwargs})
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(ssh.subprocess, "run", fake_run)
    session = ssh.SSHSession(target=ssh.SshTarget(host="example"), control_path="/tmp/ctl")

    session.run_input("cat > /x", "hello", log_label="write /x")

    assert calls[-1]["input"] == "hello"
    assert calls[-1]["cmd"][-2:] == ["example", "cat > /x"]
