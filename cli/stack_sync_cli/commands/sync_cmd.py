from __future__ import annotations

import typer

from .. import console
from ..backends import make_backend
from ..executor import Executor
from ..reconcile import plan_sync
from .common import config_option, exit_for, is_verbose, load_or_exit, make_reporter


def sync(
        ctx: typer.Context,
        stacks: list[str] | None = typer.Argument(None, help="Stack names to deploy (default: all stacks)."),
        config: str | None = config_option(),
        dry_run: bool = typer.Option(False, "--dry-run", help="Preview what would happen without making changes."),
) -> None:
    """
    Create, update, start or stop stacks so the remote matches the local config.
    """
    cfg, resolved = load_or_exit(config, stacks)
    if not resolved:
        console.warn("No stacks declared in config.")
        return
    if dry_run:
        console.info("Dry run: no changes will be made.")

    reporter = make_reporter(cfg, verbose=is_verbose(ctx) and dry_run)
    backend = make_backend(cfg)
    try:
        plan = plan_sync(resolved, backend)
        report = Executor(backend, dry_run=dry_run, reporter=reporter).run(plan)
    finally:
        backend.close()
    exit_for(report)
