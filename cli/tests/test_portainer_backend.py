from __future__ import annotations

from pathlib import Path

import pytest

from stack_sync_cli.backends.portainer import PortainerBackend
from stack_sync_cli.errors import RemoteRejected, RemoteUnavailable
from stack_sync_cli.fingerprint import env_fingerprint, fingerprint
from stack_sync_cli.stacks import ResolvedStack
from stack_sync_client import ApiError, NetworkError, PortainerStack


class _FakeClient:
    def __init__(self, stacks: list[PortainerStack] | None = None, files: dict[int, str] | None = None):
        self.stacks = list(stacks or [])
        self.files = dict(files or {})
        self.calls: list[tuple] = []
        self.list_error: Exception | None = None

    def find_stack_by_name(self, name: str):
        if self.list_error is not None:
            raise self.list_error
        return next((s for s in self.stacks if s.name == name), None)

    def get_stack_file(self, stack_id: int) -> str:
        return self.files[stack_id]

    def create_stack(self, *, endpoint_id, name, file_content, env=None):  # noqa: ANN001
        self.calls.append(("create", endpoint_id, name, file_content, env))
        return PortainerStack(id=99, name=name, endpoint_id=endpoint_id)

    def update_stack(self, stack_id, *, endpoint_id, file_content, env=None, prune=False, pull_image=True):  # noqa: ANN001
        self.calls.append(("update", stack_id, endpoint_id, file_content, env, prune, pull_image))
        return PortainerStack(id=stack_id, name="", endpoint_id=endpoint_id)

    def start_stack(self, stack_id: int, *, endpoint_id: int):
        self.calls.append(("start", stack_id, endpoint_id))

    def stop_stack(self, stack_id: int, *, endpoint_id: int):
        self.calls.append(("stop", stack_id, endpoint_id))

    def close(self) -> None:
        self.calls.append(("close",))


def _stack(name: str = "web", endpoint_id: int = 2) -> ResolvedStack:
    return ResolvedStack(name=name, compose_path=Path("/w/c.yaml"), env_path=Path("/w/.env"), endpoint_id=endpoint_id)


def _remote(**kwargs) -> PortainerStack:
    data = {"id": 12, "name": "web", "endpoint_id": 5, "status": 1, "env": [{"name": "A", "value": "1"}]}
    data.update(kwargs)
    return PortainerStack(**data)


def test_observe_missing() -> None:
    backend = PortainerBackend(_FakeClient(), "https://p")

    assert backend.observe(_stack()).exists is False


def test_observe_existing_fingerprints() -> None:
    client = _FakeClient([_remote(status=2)], {12: "services: {}"})
    state = PortainerBackend(client, "https://p").observe(_stack())

    assert state.exists and not state.running
    assert state.ref == "12"
    assert state.compose_fingerprint == fingerprint("services: {}\n")
    assert state.env_fingerprint == env_fingerprint("A=1\n")


def test_create_sends_parsed_env() -> None:
    client = _FakeClient()
    backend = PortainerBackend(client, "https://p")

    backend.create_or_update(_stack(endpoint_id=3), "services: {}\n", "# c\nA=1\nB=2\n")

    assert client.calls == [
        ("create", 3, "web", "services: {}\n", [{"name": "A", "value": "1"}, {"name": "B", "value": "2"}]),
    ]


def test_update_does_not_prune() -> None:
    client = _FakeClient([_remote()])
    backend = PortainerBackend(client, "https://p")

    backend.create_or_update(_stack(), "new", None)

    assert client.calls == [("update", 12, 2, "new", None, False, True)]


def test_set_running_uses_remote_endpoint() -> None:
    client = _FakeClient([_remote()])
    backend = PortainerBackend(client, "https://p")

    backend.set_running(_stack(), False)
    backend.set_running(_stack(), True)

    assert client.calls == [("stop", 12, 5), ("start", 12, 5)]


def test_force_redeploy_reuses_remote_content() -> None:
    client = _FakeClient([_remote()], {12: "deployed"})
    backend = PortainerBackend(client, "https://p")

    backend.force_redeploy(_stack())

    assert client.calls == [("update", 12, 5, "deployed", [{"name": "A", "value": "1"}], True, True)]


def test_force_redeploy_missing_stack() -> None:
    with pytest.raises(RemoteRejected, match="not found"):
        PortainerBackend(_FakeClient(), "https://p").force_redeploy(_stack())


def test_client_errors_map_to_remote_errors() -> None:
    client = _FakeClient()
    backend = PortainerBackend(client, "https://p")

    client.list_error = NetworkError("GET /stacks failed: timed out")
    with pytest.raises(RemoteUnavailable, match="timed out"):
        backend.observe(_stack())

    client.list_error = ApiError(500, "GET /stacks failed (HTTP 500)")
    with pytest.raises(RemoteRejected, match="HTTP 500"):
        backend.observe(_stack())


def test_describe_and_fetch() -> None:
    client = _FakeClient([_remote(created_by="admin", creation_date=0)], {12: "services: {}\n"})
    backend = PortainerBackend(client, "https://p")

    fields = dict(backend.describe(_stack()))
    assert fields["Endpoint ID"] == "5"
    assert fields["Created by"] == "admin"
    assert fields["Created"] == "n/a"
    assert fields["Env vars"] == "1"

    assert backend.fetch("web") == ("services: {}\n", "A=1\n")
    assert backend.fetch("nope") is None


def test_fetch_without_env() -> None:
    client = _FakeClient([_remote(env=[])], {12: "x"})

    assert PortainerBackend(client, "https://p").fetch("web") == ("x", None)
