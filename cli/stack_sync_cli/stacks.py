from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .config import EffectiveConfig, StackDeclaration
from .errors import StackNotFound
from .path_utils import home_dir, resolve_relative


@dataclass(frozen=True)
class ResolvedStack:
    name: str
    compose_path: Path
    env_path: Path | None
    endpoint_id: int
    enabled: bool = True

    def read_compose(self) -> str:
        return self.compose_path.read_text(encoding="utf-8")

    def read_env(self) -> str | None:
        if self.env_path is None:
            return None
        return self.env_path.read_text(encoding="utf-8")


def resolve_stack(decl: StackDeclaration, cfg: EffectiveConfig, *, home: Path | None = None) -> ResolvedStack:
    home = home or home_dir()
    # compose_file presence is enforced by merge validation
    compose_path = resolve_relative(decl.compose_file or "", decl.base_dir, home)
    env_path = resolve_relative(decl.env_file, decl.base_dir, home) if decl.env_file else None
    return ResolvedStack(
        name=decl.name,
        compose_path=compose_path,
        env_path=env_path,
        endpoint_id=decl.endpoint_id if decl.endpoint_id is not None else cfg.endpoint_id,
        enabled=decl.enabled,
    )


def resolve_stacks(
        cfg: EffectiveConfig,
        names: Iterable[str] = (),
        *,
        home: Path | None = None,
) -> list[ResolvedStack]:
    wanted = list(names) or sorted(cfg.stacks)
    out: list[ResolvedStack] = []
    for name in wanted:
        decl = cfg.stacks.get(name)
        if decl is None:
            raise StackNotFound(name)
        out.append(resolve_stack(decl, cfg, home=home))
    return out
