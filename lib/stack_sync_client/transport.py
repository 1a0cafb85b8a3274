from __future__ import annotations

import json
from typing import Any

import httpx

from .errors import ApiError, AuthError, NetworkError
from .config_types import ClientConfig


class Transport:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._cfg = cfg
        headers = {"User-Agent": f"stack-sync/{cfg.client_version or '0.1.0'}"}
        if cfg.api_key:
            headers["X-API-Key"] = cfg.api_key

        self._client = httpx.Client(
            base_url=api_base_url(cfg.base_url),
            timeout=cfg.timeout_s,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, path: str, *, json_body: Any | None = None) -> Any:
        try:
            r = self._client.request(method, path, json=json_body)
        except httpx.RequestError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        # Portainer error bodies are {"message": ..., "details": ...}
        data: Any = None
        text = None
        try:
            data = r.json()
        except ValueError:
            text = r.text

        if r.status_code >= 400:
            msg = f"{method} {path} failed (HTTP {r.status_code})"
            details = None

            if isinstance(data, dict) and ("message" in data or "details" in data):
                details = json.dumps(data, ensure_ascii=False)
                reason = data.get("details") or data.get("message")
                if reason:
                    msg = f"{msg}: {reason}"
            elif text:
                details = text[:1000]

            if r.status_code in (401, 403):
                raise AuthError(r.status_code, msg, details)
            raise ApiError(r.status_code, msg, details)

        return data if data is not None else r.text


def api_base_url(host: str) -> str:
    return f"{host.rstrip('/')}/api"
