from __future__ import annotations

from pathlib import Path

import typer

from .. import console
from ..config import (
    LAYER_FILENAMES,
    MODE_PORTAINER,
    MODE_SSH,
    MODES,
    write_local_config_template,
    write_parent_config,
)
from ..path_utils import home_dir


def init(
        host: str = typer.Option(..., "--host", help="Portainer URL (e.g. https://portainer.example.com) or SSH host."),
        mode: str = typer.Option(MODE_PORTAINER, "--mode", help="Deployment mode: portainer or ssh."),
        portainer_api_key: str | None = typer.Option(None, "--portainer-api-key", help="Portainer API key."),
        endpoint_id: int | None = typer.Option(None, "--endpoint-id", help="Portainer endpoint ID (default 2)."),
        ssh_user: str | None = typer.Option(None, "--ssh-user", help="SSH user."),
        ssh_key: str | None = typer.Option(None, "--ssh-key", help="SSH private key path."),
        host_dir: str | None = typer.Option(None, "--host-dir", help="Remote directory holding stack folders (ssh mode)."),
        parent_dir: str | None = typer.Option(None, "--parent-dir", help="Directory for the shared config (default: $HOME)."),
        force: bool = typer.Option(False, "--force", help="Overwrite existing files."),
) -> None:
    """
    Write a shared parent config and a local config template.
    """
    mode = mode.strip().lower()
    if mode not in MODES:
        console.err(f"Unknown mode '{mode}'. Use 'portainer' or 'ssh'.")
        raise typer.Exit(code=2)
    if mode == MODE_PORTAINER and not portainer_api_key:
        console.err("--portainer-api-key is required for portainer mode.")
        raise typer.Exit(code=2)
    if mode == MODE_SSH and not host_dir:
        console.err("--host-dir is required for ssh mode.")
        raise typer.Exit(code=2)

    parent = Path(parent_dir).expanduser().resolve() if parent_dir else home_dir()
    local = Path.cwd().resolve()
    if parent == local:
        console.err(
            f"Parent directory and current directory are the same ({parent}). "
            "Use --parent-dir to specify a different parent directory."
        )
        raise typer.Exit(code=2)

    parent_config = parent / LAYER_FILENAMES[0]
    local_config = local / LAYER_FILENAMES[0]
    if not force:
        for label, path in (("Parent", parent_config), ("Local", local_config)):
            if path.exists():
                console.err(f"{label} config '{path}' already exists. Use --force to overwrite.")
                raise typer.Exit(code=2)

    write_parent_config(
        parent_config,
        mode=mode,
        host=host,
        api_key=portainer_api_key,
        endpoint_id=endpoint_id,
        ssh_user=ssh_user,
        ssh_key=ssh_key,
        host_dir=host_dir,
    )
    console.ok(f"Created parent config at {parent_config}")
    write_local_config_template(local_config)
    console.ok(f"Created local config at {local_config}")
