from __future__ import annotations

import os
from pathlib import Path

import typer

from .. import console
from ..backends import make_backend
from ..config import append_stack_to_config, find_layer_file, load_config, stack_exists_in_config
from ..errors import StackSyncError
from .common import config_option


def _local_config(config: str | None) -> Path | None:
    target = Path(os.path.expanduser(config)) if config else Path.cwd()
    target = target.resolve()
    if target.is_file():
        return target
    if target.is_dir():
        return find_layer_file(target)
    return None


def import_stack(
        stack: str = typer.Argument(..., help="Name of the deployed stack to import."),
        config: str | None = config_option(),
        force: bool = typer.Option(False, "--force", help="Overwrite existing files and config entry."),
) -> None:
    """
    Import a deployed stack into the local config.
    """
    local_path = _local_config(config)
    if local_path is None:
        where = config or str(Path.cwd())
        console.err(f"No config file found at '{where}'. Run 'stack-sync init' first to create one.")
        raise typer.Exit(code=2)

    try:
        cfg = load_config(str(local_path))
        if stack_exists_in_config(local_path, stack) and not force:
            console.err(f"Stack '{stack}' already exists in config. Use --force to overwrite.")
            raise typer.Exit(code=2)

        backend = make_backend(cfg)
        try:
            fetched = backend.fetch(stack)
        finally:
            backend.close()
    except StackSyncError as e:
        console.err(str(e))
        raise typer.Exit(code=2)

    if fetched is None:
        console.err(f"Stack '{stack}' not found on {cfg.host}.")
        raise typer.Exit(code=2)
    compose_content, env_content = fetched

    base_dir = local_path.parent
    compose_filename = f"{stack}.compose.yaml"
    env_filename = f"{stack}.env"
    compose_path = base_dir / compose_filename
    env_path = base_dir / env_filename

    if not force:
        if compose_path.exists():
            console.err(f"Compose file '{compose_path}' already exists. Use --force to overwrite.")
            raise typer.Exit(code=2)
        if env_content is not None and env_path.exists():
            console.err(f"Env file '{env_path}' already exists. Use --force to overwrite.")
            raise typer.Exit(code=2)

    compose_path.write_text(compose_content, encoding="utf-8")
    console.ok(f"Wrote compose file to {compose_path}")
    env_ref = None
    if env_content is not None:
        env_path.write_text(env_content, encoding="utf-8")
        console.ok(f"Wrote env file to {env_path}")
        env_ref = env_filename

    append_stack_to_config(local_path, stack, compose_filename, env_ref)
    console.ok(f"Added stack '{stack}' to {local_path}")
