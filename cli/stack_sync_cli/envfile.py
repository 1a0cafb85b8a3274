from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class EnvVar:
    name: str
    value: str

    def to_api(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


def parse_env_str(content: str) -> list[EnvVar]:
    out: list[EnvVar] = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        out.append(EnvVar(name=key.strip(), value=value.strip()))
    return out


def render_env(vars: list[EnvVar]) -> str:
    return "\n".join(f"{v.name}={v.value}" for v in vars)


def env_from_api(items: list[dict[str, str]]) -> list[EnvVar]:
    return [EnvVar(name=str(i.get("name") or ""), value=str(i.get("value") or "")) for i in items]


def read_env_file(path: Path) -> list[EnvVar]:
    return parse_env_str(path.read_text(encoding="utf-8"))
