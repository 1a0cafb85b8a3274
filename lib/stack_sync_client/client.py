from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from .config_types import ClientConfig
from .errors import ApiError
from .transport import Transport

STATUS_ACTIVE = 1
STATUS_INACTIVE = 2

STACK_TYPES = {1: "Swarm", 2: "Compose", 3: "Kubernetes"}


@dataclass
class PortainerStack:
    id: int
    name: str
    endpoint_id: int
    stack_type: int = 2
    status: int = 0
    env: list[dict[str, str]] = field(default_factory=list)
    created_by: str = ""
    creation_date: int = 0
    updated_by: str = ""
    update_date: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @property
    def type_label(self) -> str:
        return STACK_TYPES.get(self.stack_type, "unknown")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PortainerStack":
        env_raw = data.get("Env") or []
        env: list[dict[str, str]] = []
        for item in env_raw:
            if not isinstance(item, dict):
                continue
            env.append({"name": str(item.get("name") or ""), "value": str(item.get("value") or "")})
        return cls(
            id=int(data.get("Id") or 0),
            name=str(data.get("Name") or ""),
            endpoint_id=int(data.get("EndpointId") or 0),
            stack_type=int(data.get("Type") or 0),
            status=int(data.get("Status") or 0),
            env=env,
            created_by=str(data.get("createdBy") or ""),
            creation_date=int(data.get("creationDate") or 0),
            updated_by=str(data.get("updatedBy") or ""),
            update_date=int(data.get("updateDate") or 0),
        )


class PortainerClient:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._t = Transport(cfg, transport=transport)

    def close(self) -> None:
        self._t.close()

    def _request_stack(self, method: str, path: str, *, json_body: dict | None = None) -> PortainerStack:
        data = self._t.request(method, path, json_body=json_body)
        if not isinstance(data, dict):
            raise ApiError(500, f"{method} {path} returned an unexpected payload", None)
        return PortainerStack.from_api(data)

    def list_stacks(self) -> list[PortainerStack]:
        data = self._t.request("GET", "/stacks")
        if not isinstance(data, list):
            raise ApiError(500, "GET /stacks returned an unexpected payload", None)
        return [PortainerStack.from_api(item) for item in data if isinstance(item, dict)]

    def find_stack_by_name(self, name: str) -> PortainerStack | None:
        return next((s for s in self.list_stacks() if s.name == name), None)

    def get_stack_file(self, stack_id: int) -> str:
        path = f"/stacks/{int(stack_id)}/file"
        data = self._t.request("GET", path)
        if isinstance(data, dict):
            content = data.get("StackFileContent")
            if isinstance(content, str):
                return content
        raise ApiError(500, f"GET {path} returned no stack file content", None)

    def create_stack(
            self,
            *,
            endpoint_id: int,
            name: str,
            file_content: str,
            env: list[dict[str, str]] | None = None,
    ) -> PortainerStack:
        body: dict[str, Any] = {"name": name, "stackFileContent": file_content}
        if env:
            body["env"] = env
        path = f"/stacks/create/standalone/string?endpointId={int(endpoint_id)}"
        return self._request_stack("POST", path, json_body=body)

    def update_stack(
            self,
            stack_id: int,
            *,
            endpoint_id: int,
            file_content: str,
            env: list[dict[str, str]] | None = None,
            prune: bool = False,
            pull_image: bool = True,
    ) -> PortainerStack:
        body: dict[str, Any] = {
            "stackFileContent": file_content,
            "prune": bool(prune),
            "pullImage": bool(pull_image),
        }
        if env:
            body["env"] = env
        path = f"/stacks/{int(stack_id)}?endpointId={int(endpoint_id)}"
        return self._request_stack("PUT", path, json_body=body)

    def start_stack(self, stack_id: int, *, endpoint_id: int) -> PortainerStack:
        return self._request_stack("POST", f"/stacks/{int(stack_id)}/start?endpointId={int(endpoint_id)}")

    def stop_stack(self, stack_id: int, *, endpoint_id: int) -> PortainerStack:
        return self._request_stack("POST", f"/stacks/{int(stack_id)}/stop?endpointId={int(endpoint_id)}")
