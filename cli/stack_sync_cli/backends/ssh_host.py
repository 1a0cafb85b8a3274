from __future__ import annotations

import logging
import posixpath
import shlex
import subprocess

from ..config import EffectiveConfig
from ..errors import RemoteRejected, RemoteUnavailable
from ..fingerprint import env_fingerprint, fingerprint
from ..path_utils import expand_tilde, home_dir
from ..ssh import SSH_CONNECT_FAILED, SSHSession, SshTarget, build_control_path
from ..stacks import ResolvedStack
from .base import RemoteStackState

log = logging.getLogger(__name__)

COMPOSE_FILENAME = "compose.yaml"
ENV_FILENAME = ".env"


class SshBackend:
    """Stacks as `{host_dir}/{name}/compose.yaml` + `.env` driven by `docker compose`."""

    def __init__(self, session: SSHSession, host_dir: str):
        self.session = session
        self.host = session.target.host
        self.host_dir = host_dir.rstrip("/") or "/"

    @classmethod
    def from_config(cls, cfg: EffectiveConfig) -> "SshBackend":
        key = expand_tilde(cfg.ssh_key, home_dir()) if cfg.ssh_key else None
        target = SshTarget(host=cfg.host or "", user=cfg.ssh_user, key_path=key)
        session = SSHSession(target=target, control_path=build_control_path())
        return cls(session, cfg.host_dir or "")

    def close(self) -> None:
        self.session.close()

    # --- paths ---

    def stack_dir(self, name: str) -> str:
        return posixpath.join(self.host_dir, name)

    def compose_file_path(self, name: str) -> str:
        return posixpath.join(self.stack_dir(name), COMPOSE_FILENAME)

    def env_file_path(self, name: str) -> str:
        return posixpath.join(self.stack_dir(name), ENV_FILENAME)

    # --- command helpers ---

    def _exec(self, command: str, *, content: str | None = None, label: str | None = None) -> subprocess.CompletedProcess:
        try:
            if content is None:
                return self.session.run(command)
            return self.session.run_input(command, content, log_label=label or command)
        except OSError as e:
            raise RemoteUnavailable(f"Failed to execute ssh: {e}") from e

    def _ensure_reachable(self, res: subprocess.CompletedProcess) -> None:
        if res.returncode == SSH_CONNECT_FAILED:
            stderr = (res.stderr or "").strip()
            raise RemoteUnavailable(f"SSH connection to {self.session.target.destination} failed: {stderr}")

    def _check(self, command: str, *, content: str | None = None, label: str | None = None) -> str:
        res = self._exec(command, content=content, label=label)
        if res.returncode == 0:
            return res.stdout or ""
        self._ensure_reachable(res)
        stderr = (res.stderr or "").strip()
        raise RemoteRejected(f"SSH command failed (exit {res.returncode}): {label or command}: {stderr}")

    def _compose(self, name: str, args: str) -> str:
        return f"cd {shlex.quote(self.stack_dir(name))} && {args}"

    def _file_exists(self, path: str) -> bool:
        res = self._exec(f"test -f {shlex.quote(path)}")
        self._ensure_reachable(res)
        return res.returncode == 0

    def write_remote_file(self, path: str, content: str) -> None:
        tmp = f"{path}.tmp"
        self._check(
            f"cat > {shlex.quote(tmp)} && mv -f {shlex.quote(tmp)} {shlex.quote(path)}",
            content=content,
            label=f"write {path}",
        )

    # --- capability ---

    def is_running(self, name: str) -> bool:
        res = self._exec(self._compose(name, "docker compose ps -q 2>/dev/null"))
        self._ensure_reachable(res)
        return res.returncode == 0 and bool((res.stdout or "").strip())

    def read_compose(self, name: str) -> str:
        return self._check(f"cat {shlex.quote(self.compose_file_path(name))}")

    def read_env(self, name: str) -> str | None:
        path = self.env_file_path(name)
        if not self._file_exists(path):
            return None
        return self._check(f"cat {shlex.quote(path)}")

    def observe(self, stack: ResolvedStack) -> RemoteStackState:
        if not self._file_exists(self.compose_file_path(stack.name)):
            return RemoteStackState.missing()
        return RemoteStackState(
            exists=True,
            running=self.is_running(stack.name),
            compose_fingerprint=fingerprint(self.read_compose(stack.name)),
            env_fingerprint=env_fingerprint(self.read_env(stack.name)),
            ref=self.host,
        )

    def create_or_update(self, stack: ResolvedStack, compose_body: str, env_body: str | None) -> None:
        self._check(f"mkdir -p {shlex.quote(self.stack_dir(stack.name))}")
        self.write_remote_file(self.compose_file_path(stack.name), compose_body)
        if env_body is not None:
            self.write_remote_file(self.env_file_path(stack.name), env_body)
        self._check(self._compose(stack.name, "docker compose up -d"))

    def set_running(self, stack: ResolvedStack, running: bool) -> None:
        if running:
            self._check(self._compose(stack.name, "docker compose up -d"))
        else:
            self._check(self._compose(stack.name, "docker compose down"))

    def force_redeploy(self, stack: ResolvedStack) -> None:
        self._check(self._compose(stack.name, "docker compose pull && docker compose up -d --force-recreate"))

    def describe(self, stack: ResolvedStack) -> list[tuple[str, str]]:
        fields = [
            ("Host", self.session.target.destination),
            ("Stack dir", self.stack_dir(stack.name)),
        ]
        if self.is_running(stack.name):
            ps = self._check(self._compose(stack.name, "docker compose ps")).rstrip()
            if ps:
                fields.append(("Containers", ps))
        return fields

    def fetch(self, name: str) -> tuple[str, str | None] | None:
        if not self._file_exists(self.compose_file_path(name)):
            return None
        env = self.read_env(name)
        return self.read_compose(name), env if env and env.strip() else None
