from __future__ import annotations

from ..config import EffectiveConfig
from .base import RemoteBackend, RemoteStackState


def make_backend(cfg: EffectiveConfig) -> RemoteBackend:
    if cfg.is_ssh:
        from .ssh_host import SshBackend

        return SshBackend.from_config(cfg)
    from .portainer import PortainerBackend

    return PortainerBackend.from_config(cfg)


__all__ = ["RemoteBackend", "RemoteStackState", "make_backend"]
