from __future__ import annotations

import typer

from .. import console
from ..backends import make_backend
from ..executor import Executor
from ..reconcile import plan_redeploy
from .common import config_option, exit_for, is_verbose, load_or_exit, make_reporter


def redeploy(
        ctx: typer.Context,
        stack: str = typer.Argument(..., help="Stack name to redeploy (must exist in config)."),
        config: str | None = config_option(),
        dry_run: bool = typer.Option(False, "--dry-run", help="Preview what would happen without making changes."),
) -> None:
    """
    Pull new images and recreate a deployed stack. Local files are not read.
    """
    cfg, resolved = load_or_exit(config, [stack])
    if dry_run:
        console.info("Dry run: no changes will be made.")

    reporter = make_reporter(cfg, verbose=is_verbose(ctx) and dry_run, local_files=False)
    backend = make_backend(cfg)
    try:
        plan = plan_redeploy(resolved, backend, dry_run=dry_run)
        report = Executor(backend, dry_run=dry_run, reporter=reporter).run(plan)
    finally:
        backend.close()
    exit_for(report)
