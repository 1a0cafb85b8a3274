from __future__ import annotations

import contextlib
import logging
from typing import Iterator

from stack_sync_client import ApiError, NetworkError, PortainerClient, PortainerStack
from stack_sync_client.config_types import ClientConfig

from .. import __version__
from ..config import EffectiveConfig
from ..envfile import env_from_api, parse_env_str, render_env
from ..errors import RemoteRejected, RemoteUnavailable
from ..fingerprint import env_fingerprint, fingerprint
from ..formatting import format_timestamp
from ..stacks import ResolvedStack
from .base import RemoteStackState

log = logging.getLogger(__name__)


@contextlib.contextmanager
def _remote_errors() -> Iterator[None]:
    try:
        yield
    except NetworkError as e:
        raise RemoteUnavailable(str(e)) from e
    except ApiError as e:
        raise RemoteRejected(str(e)) from e


class PortainerBackend:
    def __init__(self, client: PortainerClient, host: str):
        self.client = client
        self.host = host

    @classmethod
    def from_config(cls, cfg: EffectiveConfig) -> "PortainerBackend":
        client = PortainerClient(
            ClientConfig(base_url=cfg.host or "", api_key=cfg.api_key, client_version=__version__)
        )
        return cls(client, cfg.host or "")

    def close(self) -> None:
        self.client.close()

    def _find(self, name: str) -> PortainerStack | None:
        with _remote_errors():
            return self.client.find_stack_by_name(name)

    def _require(self, name: str) -> PortainerStack:
        stack = self._find(name)
        if stack is None:
            raise RemoteRejected(f"Stack '{name}' not found in Portainer")
        return stack

    def observe(self, stack: ResolvedStack) -> RemoteStackState:
        remote = self._find(stack.name)
        if remote is None:
            return RemoteStackState.missing()
        with _remote_errors():
            compose = self.client.get_stack_file(remote.id)
        return RemoteStackState(
            exists=True,
            running=remote.is_active,
            compose_fingerprint=fingerprint(compose),
            env_fingerprint=env_fingerprint(render_env(env_from_api(remote.env))),
            ref=str(remote.id),
        )

    def create_or_update(self, stack: ResolvedStack, compose_body: str, env_body: str | None) -> None:
        env = [v.to_api() for v in parse_env_str(env_body)] if env_body is not None else None
        remote = self._find(stack.name)
        with _remote_errors():
            if remote is None:
                created = self.client.create_stack(
                    endpoint_id=stack.endpoint_id,
                    name=stack.name,
                    file_content=compose_body,
                    env=env,
                )
                log.debug("created stack %s (id %s)", created.name, created.id)
                return
            self.client.update_stack(
                remote.id,
                endpoint_id=stack.endpoint_id,
                file_content=compose_body,
                env=env,
                prune=False,
                pull_image=True,
            )

    def set_running(self, stack: ResolvedStack, running: bool) -> None:
        remote = self._require(stack.name)
        with _remote_errors():
            if running:
                self.client.start_stack(remote.id, endpoint_id=remote.endpoint_id)
            else:
                self.client.stop_stack(remote.id, endpoint_id=remote.endpoint_id)

    def force_redeploy(self, stack: ResolvedStack) -> None:
        remote = self._require(stack.name)
        with _remote_errors():
            content = self.client.get_stack_file(remote.id)
            self.client.update_stack(
                remote.id,
                endpoint_id=remote.endpoint_id,
                file_content=content,
                env=remote.env,
                prune=True,
                pull_image=True,
            )

    def describe(self, stack: ResolvedStack) -> list[tuple[str, str]]:
        remote = self._require(stack.name)
        return [
            ("Type", remote.type_label),
            ("Endpoint ID", str(remote.endpoint_id)),
            ("Created by", remote.created_by or "n/a"),
            ("Created", format_timestamp(remote.creation_date)),
            ("Updated by", remote.updated_by or "n/a"),
            ("Updated", format_timestamp(remote.update_date)),
            ("Env vars", str(len(remote.env))),
        ]

    def fetch(self, name: str) -> tuple[str, str | None] | None:
        remote = self._find(name)
        if remote is None:
            return None
        with _remote_errors():
            compose = self.client.get_stack_file(remote.id)
        env = render_env(env_from_api(remote.env)) + "\n" if remote.env else None
        return compose, env
