"""Layered `.stack-sync.toml` discovery, parsing and merging.

Config files are looked up in the starting directory and in every ancestor up
to (and including) the user's home directory. Each file found is one
`ConfigLayer`; layers are merged nearest-first into an `EffectiveConfig`.
"""
from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from functools import reduce
from pathlib import Path
from typing import Any, Callable, Iterable

import tomli_w

from .errors import ConfigInvalid, ConfigNotFound
from .path_utils import home_dir

log = logging.getLogger(__name__)

LAYER_FILENAMES = (".stack-sync.toml", "stack-sync.toml")
ENV_API_KEY = "PORTAINER_API_KEY"
DEFAULT_ENDPOINT_ID = 2
MODE_PORTAINER = "portainer"
MODE_SSH = "ssh"
MODES = (MODE_PORTAINER, MODE_SSH)

GLOBAL_FIELDS = ("host", "api_key", "endpoint_id", "mode", "ssh_user", "ssh_key", "host_dir")


@dataclass(frozen=True)
class StackDeclaration:
    name: str
    compose_file: str | None
    base_dir: Path
    env_file: str | None = None
    endpoint_id: int | None = None
    enabled: bool = True


@dataclass(frozen=True)
class ConfigLayer:
    path: Path
    host: str | None = None
    api_key: str | None = None
    endpoint_id: int | None = None
    mode: str | None = None
    ssh_user: str | None = None
    ssh_key: str | None = None
    host_dir: str | None = None
    stacks: tuple[StackDeclaration, ...] = ()

    def stack_names(self) -> list[str]:
        return [s.name for s in self.stacks]


@dataclass(frozen=True)
class Credentials:
    """API key supplied outside the config files. Outranks every layer."""

    api_key: str | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Credentials":
        env = os.environ if environ is None else environ
        value = (env.get(ENV_API_KEY) or "").strip()
        return cls(api_key=value or None)


@dataclass(frozen=True)
class EffectiveConfig:
    host: str | None
    api_key: str | None
    endpoint_id: int
    mode: str
    ssh_user: str | None = None
    ssh_key: str | None = None
    host_dir: str | None = None
    stacks: dict[str, StackDeclaration] = field(default_factory=dict)
    sources: tuple[Path, ...] = ()

    @property
    def is_ssh(self) -> bool:
        return self.mode == MODE_SSH

    @property
    def local_path(self) -> Path | None:
        return self.sources[0] if self.sources else None


# --- discovery ---

def find_layer_file(directory: Path, exists: Callable[[Path], bool] = Path.is_file) -> Path | None:
    for name in LAYER_FILENAMES:
        candidate = directory / name
        if exists(candidate):
            return candidate
    return None


def locate_layers(
        start_dir: Path,
        home: Path,
        exists: Callable[[Path], bool] = Path.is_file,
) -> list[Path]:
    """Config files from `start_dir` upward, nearest first.

    The walk ends after `home` when `home` is `start_dir` or one of its
    ancestors, otherwise at the filesystem root.
    """
    found: list[Path] = []
    current = start_dir
    while True:
        path = find_layer_file(current, exists)
        if path is not None:
            found.append(path)
        if current == home or current.parent == current:
            break
        current = current.parent
    return found


def discover_layer_paths(config: str | None = None, *, cwd: Path | None = None, home: Path | None = None) -> list[Path]:
    home = home or home_dir()
    if config is None:
        start = (cwd or Path.cwd()).resolve()
        return locate_layers(start, home)

    target = Path(os.path.expanduser(config))
    if not target.is_absolute():
        target = (cwd or Path.cwd()) / target
    target = target.resolve()
    if target.is_file():
        directory = target.parent
        if directory == home or directory.parent == directory:
            return [target]
        return [target] + locate_layers(directory.parent, home)
    if target.is_dir():
        local = find_layer_file(target)
        if local is None:
            raise ConfigNotFound(target / LAYER_FILENAMES[1])
        return locate_layers(target, home)
    raise ConfigNotFound(target)


# --- parsing ---

def _opt_str(data: dict[str, Any], key: str, problems: list[str], prefix: str = "") -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        problems.append(f"{prefix}{key}: expected a string")
        return None
    value = value.strip()
    return value or None


def _opt_int(data: dict[str, Any], key: str, problems: list[str], prefix: str = "") -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        problems.append(f"{prefix}{key}: expected an integer")
        return None
    return value


def layer_from_toml(data: dict[str, Any], path: Path) -> ConfigLayer:
    problems: list[str] = []
    api_key = _opt_str(data, "portainer_api_key", problems) or _opt_str(data, "api_key", problems)

    stacks: list[StackDeclaration] = []
    stacks_raw = data.get("stacks") or {}
    if not isinstance(stacks_raw, dict):
        problems.append("stacks: expected a table")
        stacks_raw = {}
    for name, entry in stacks_raw.items():
        prefix = f"stacks.{name}."
        if not isinstance(entry, dict):
            problems.append(f"stacks.{name}: expected a table")
            continue
        enabled = entry.get("enabled", True)
        if not isinstance(enabled, bool):
            problems.append(f"{prefix}enabled: expected a boolean")
            enabled = True
        stacks.append(
            StackDeclaration(
                name=str(name),
                compose_file=_opt_str(entry, "compose_file", problems, prefix),
                env_file=_opt_str(entry, "env_file", problems, prefix),
                endpoint_id=_opt_int(entry, "endpoint_id", problems, prefix),
                enabled=enabled,
                base_dir=path.parent,
            )
        )

    layer = ConfigLayer(
        path=path,
        host=_opt_str(data, "host", problems),
        api_key=api_key,
        endpoint_id=_opt_int(data, "endpoint_id", problems),
        mode=_opt_str(data, "mode", problems),
        ssh_user=_opt_str(data, "ssh_user", problems),
        ssh_key=_opt_str(data, "ssh_key", problems),
        host_dir=_opt_str(data, "host_dir", problems),
        stacks=tuple(stacks),
    )
    if problems:
        raise ConfigInvalid("Invalid config file", path=path, problems=problems)
    return layer


def parse_layer(path: Path) -> ConfigLayer:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigNotFound(path) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigInvalid(f"Failed to parse config file: {e}", path=path) from e
    return layer_from_toml(data, path.resolve())


def load_layers(config: str | None = None, *, cwd: Path | None = None, home: Path | None = None) -> list[ConfigLayer]:
    paths = discover_layer_paths(config, cwd=cwd, home=home)
    log.debug("config layers: %s", [str(p) for p in paths])
    return [parse_layer(p) for p in paths]


# --- merging ---

def combine(nearer: ConfigLayer, farther: ConfigLayer) -> ConfigLayer:
    """Fold two layers; every field and stack entry of `nearer` wins."""
    updates: dict[str, Any] = {}
    for name in GLOBAL_FIELDS:
        if getattr(nearer, name) is None:
            updates[name] = getattr(farther, name)
    seen = set(nearer.stack_names())
    updates["stacks"] = nearer.stacks + tuple(s for s in farther.stacks if s.name not in seen)
    return replace(nearer, **updates)


def validate(cfg: EffectiveConfig) -> list[str]:
    problems: list[str] = []
    if cfg.mode not in MODES:
        problems.append(f"mode: unknown mode '{cfg.mode}' (expected 'portainer' or 'ssh')")
    if not cfg.host:
        problems.append("host: missing")
    if cfg.mode == MODE_SSH and not cfg.host_dir:
        problems.append("host_dir: required when mode = \"ssh\"")
    if cfg.mode == MODE_PORTAINER and not cfg.api_key:
        problems.append(f"portainer_api_key: missing (set it in a config file or export {ENV_API_KEY})")
    for name in sorted(cfg.stacks):
        if not cfg.stacks[name].compose_file:
            problems.append(f"stacks.{name}.compose_file: missing")
    return problems


def merge_layers(
        layers: Iterable[ConfigLayer],
        credentials: Credentials | None = None,
        *,
        check: bool = True,
) -> EffectiveConfig:
    layers = list(layers)
    if not layers:
        raise ConfigNotFound(Path.cwd() / LAYER_FILENAMES[1])
    merged = reduce(combine, layers)
    credentials = credentials or Credentials()
    cfg = EffectiveConfig(
        host=merged.host,
        api_key=credentials.api_key or merged.api_key,
        endpoint_id=merged.endpoint_id if merged.endpoint_id is not None else DEFAULT_ENDPOINT_ID,
        mode=merged.mode or MODE_PORTAINER,
        ssh_user=merged.ssh_user,
        ssh_key=merged.ssh_key,
        host_dir=merged.host_dir,
        stacks={s.name: s for s in merged.stacks},
        sources=tuple(layer.path for layer in layers),
    )
    if check:
        problems = validate(cfg)
        if problems:
            raise ConfigInvalid("Invalid configuration", path=layers[0].path, problems=problems)
    return cfg


def load_config(
        config: str | None = None,
        *,
        cwd: Path | None = None,
        home: Path | None = None,
        credentials: Credentials | None = None,
) -> EffectiveConfig:
    layers = load_layers(config, cwd=cwd, home=home)
    return merge_layers(layers, credentials or Credentials.from_env())


# --- writing (init / import) ---

LOCAL_TEMPLATE = """\
# stack-sync local config
# Global settings (host, portainer_api_key, mode, ...) are inherited from
# .stack-sync.toml files in parent directories.

# [stacks.my-stack]
# compose_file = "compose.yaml"
# env_file = ".env"
# endpoint_id = 2
# enabled = true
"""


def _write_toml(path: Path, data: dict[str, Any], *, private: bool = False) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(data).encode("utf-8"))
    if private:
        os.chmod(path, 0o600)


def write_parent_config(
        path: Path,
        *,
        mode: str,
        host: str,
        api_key: str | None = None,
        endpoint_id: int | None = None,
        ssh_user: str | None = None,
        ssh_key: str | None = None,
        host_dir: str | None = None,
) -> None:
    data: dict[str, Any] = {"host": host}
    if mode == MODE_SSH:
        data["mode"] = MODE_SSH
        data["host_dir"] = host_dir
        if ssh_user:
            data["ssh_user"] = ssh_user
        if ssh_key:
            data["ssh_key"] = ssh_key
    else:
        data["portainer_api_key"] = api_key
        data["endpoint_id"] = endpoint_id if endpoint_id is not None else DEFAULT_ENDPOINT_ID
    _write_toml(path, {k: v for k, v in data.items() if v is not None}, private=True)


def write_local_config_template(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(LOCAL_TEMPLATE, encoding="utf-8")


def stack_exists_in_config(path: Path, name: str) -> bool:
    return name in parse_layer(path).stack_names()


def append_stack_to_config(path: Path, name: str, compose_file: str, env_file: str | None = None) -> None:
    entry: dict[str, Any] = {"compose_file": compose_file}
    if env_file:
        entry["env_file"] = env_file
    with open(path, "rb") as f:
        data = tomllib.load(f)
    stacks = data.get("stacks") if isinstance(data.get("stacks"), dict) else {}
    if name in stacks:
        stacks[name] = entry
        data["stacks"] = stacks
        _write_toml(path, data)
        return
    # plain append keeps the comments already in the file
    existing = path.read_text(encoding="utf-8")
    sep = "" if not existing or existing.endswith("\n") else "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(sep + "\n" + tomli_w.dumps({"stacks": {name: entry}}))
