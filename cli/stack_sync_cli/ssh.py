from __future__ import annotations

import functools
import logging
import os
import platform
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_cache_dir

from .errors import RemoteUnavailable

log = logging.getLogger(__name__)

APP_NAME = "stack-sync"
SSH_CONNECT_FAILED = 255


@dataclass
class SshTarget:
    host: str
    user: str | None = None
    key_path: str | None = None

    @property
    def destination(self) -> str:
        if self.user:
            return f"{self.user}@{self.host}"
        return self.host


@dataclass
class SSHSession:
    target: SshTarget
    control_path: str
    _started: bool = field(default=False, init=False, repr=False)
    _control_master_enabled: bool = field(default=True, init=False, repr=False)

    def __post_init__(self) -> None:
        self._control_master_enabled = supports_control_master()

    def start(self) -> None:
        if self._started:
            return
        if not self._control_master_enabled:
            self._started = True
            return
        cmd = self._ssh_base_cmd(control_master=True) + [self.target.destination, "true"]
        res = subprocess.run(cmd, text=True, capture_output=True)
        if res.returncode != 0:
            stderr = (res.stderr or res.stdout or "").strip()
            if _is_control_master_unsupported(stderr):
                log.debug("ssh control master unsupported, falling back to plain connections")
                self._control_master_enabled = False
                self._started = True
                return
            raise RemoteUnavailable(
                f"Failed to connect to {self.target.destination}: "
                f"{stderr or 'ssh exited with ' + str(res.returncode)}"
            )
        self._started = True

    def close(self) -> None:
        if not self._started or not self._control_master_enabled:
            return
        self._started = False
        cmd = self._ssh_base_cmd(control_master=False) + ["-O", "exit", self.target.destination]
        try:
            subprocess.run(cmd, text=True, capture_output=True)
        except OSError:
            log.debug("closing ssh control master failed", exc_info=True)

    def run(self, command: str) -> subprocess.CompletedProcess:
        self.start()
        cmd = self._ssh_base_cmd(control_master=False) + [self.target.destination, command]
        log.debug("ssh %s: %s", self.target.destination, command)
        return subprocess.run(
            cmd,
            text=True,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )

    def run_input(self, command: str, content: str, *, log_label: str) -> subprocess.CompletedProcess:
        self.start()
        cmd = self._ssh_base_cmd(control_master=False) + [self.target.destination, command]
        log.debug("ssh %s: %s", self.target.destination, log_label)
        return subprocess.run(
            cmd,
            text=True,
            input=content,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )

    def _ssh_base_cmd(self, *, control_master: bool) -> list[str]:
        cmd = ["ssh", "-o", "BatchMode=yes"]
        if not is_windows() and self._control_master_enabled:
            cmd += ["-o", f"ControlPath={self.control_path}"]
            if control_master:
                cmd += ["-o", "ControlMaster=auto", "-o", "ControlPersist=10m"]
        if self.target.key_path:
            cmd += ["-i", self.target.key_path]
        return cmd


def build_control_path() -> str:
    base = Path(user_cache_dir(APP_NAME)) / "ctl"
    base.mkdir(parents=True, exist_ok=True)
    return str(base / "%C")


def is_windows() -> bool:
    return os.name == "nt" or platform.system() == "Windows"


@functools.lru_cache(maxsize=1)
def _ssh_version() -> tuple[int, int] | None:
    try:
        res = subprocess.run(["ssh", "-V"], text=True, capture_output=True)
    except FileNotFoundError:
        return None
    output = (res.stderr or res.stdout or "").strip()
    match = re.search(r"OpenSSH_(\d+)\.(\d+)", output)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def supports_control_master() -> bool:
    if is_windows():
        return False
    version = _ssh_version()
    if version is None:
        return True
    major, minor = version
    return (major, minor) >= (4, 0)


def _is_control_master_unsupported(stderr: str) -> bool:
    if not stderr:
        return False
    lowered = stderr.lower()
    return any(
        token in lowered
        for token in (
            "bad configuration option: controlmaster",
            "bad configuration option: controlpersist",
            "bad configuration option: controlpath",
        )
    )
