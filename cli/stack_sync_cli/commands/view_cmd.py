from __future__ import annotations

import typer

from .. import console
from ..backends import make_backend
from ..errors import StackSyncError
from .common import config_option, is_verbose, load_or_exit, make_reporter


def view(
        ctx: typer.Context,
        stacks: list[str] | None = typer.Argument(None, help="Stack names to show (default: all stacks)."),
        config: str | None = config_option(),
) -> None:
    """
    Show the remote state of stacks.
    """
    cfg, resolved = load_or_exit(config, stacks)
    if not resolved:
        console.warn("No stacks declared in config.")
        return

    verbose = is_verbose(ctx)
    reporter = make_reporter(cfg)
    backend = make_backend(cfg)
    failed: list[str] = []
    try:
        for stack in resolved:
            try:
                remote = backend.observe(stack)
                if not remote.exists:
                    reporter.not_found(stack.name)
                    continue
                reporter.view(stack.name, remote.ref, "active" if remote.running else "inactive")
                if verbose:
                    reporter.details(backend.describe(stack))
            except StackSyncError as e:
                failed.append(stack.name)
                reporter.failed(stack.name, str(e))
    finally:
        backend.close()

    reporter.summary(len(resolved), failed)
    if failed:
        raise typer.Exit(code=1)
