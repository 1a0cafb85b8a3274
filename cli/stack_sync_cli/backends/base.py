from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..stacks import ResolvedStack


@dataclass(frozen=True)
class RemoteStackState:
    exists: bool
    running: bool = False
    compose_fingerprint: str | None = None
    env_fingerprint: str | None = None
    # Portainer stack id, or the SSH host; display only
    ref: str | None = None

    @classmethod
    def missing(cls) -> "RemoteStackState":
        return cls(exists=False)


class RemoteBackend(Protocol):
    host: str

    def observe(self, stack: ResolvedStack) -> RemoteStackState:
        ...

    def create_or_update(self, stack: ResolvedStack, compose_body: str, env_body: str | None) -> None:
        ...

    def set_running(self, stack: ResolvedStack, running: bool) -> None:
        ...

    def force_redeploy(self, stack: ResolvedStack) -> None:
        ...

    def describe(self, stack: ResolvedStack) -> list[tuple[str, str]]:
        ...

    def close(self) -> None:
        ...

    def fetch(self, name: str) -> tuple[str, str | None] | None:
        """Deployed compose body and env body, or None when the stack is absent."""
        ...
