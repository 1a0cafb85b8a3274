from __future__ import annotations

import logging

import typer

from .. import console
from ..config import EffectiveConfig, load_config
from ..errors import PartialFailure, StackSyncError
from ..executor import ExecutionReport
from ..reporter import Reporter
from ..stacks import ResolvedStack, resolve_stacks

log = logging.getLogger(__name__)

CONFIG_HELP = "Path to the config file or its directory (default: current directory)."


def config_option():
    return typer.Option(None, "-C", "--config", help=CONFIG_HELP)


def is_verbose(ctx: typer.Context) -> bool:
    obj = ctx.find_root().obj
    return bool(isinstance(obj, dict) and obj.get("verbose"))


def load_or_exit(config: str | None, names: list[str] | None) -> tuple[EffectiveConfig, list[ResolvedStack]]:
    try:
        cfg = load_config(config)
        return cfg, resolve_stacks(cfg, names or [])
    except StackSyncError as e:
        console.err(str(e))
        raise typer.Exit(code=2)


def make_reporter(cfg: EffectiveConfig, *, verbose: bool = False, local_files: bool = True) -> Reporter:
    return Reporter(
        verbose=verbose,
        host=cfg.host,
        show_endpoint=not cfg.is_ssh,
        local_files=local_files,
        ref_label="host" if cfg.is_ssh else "id",
    )


def exit_for(report: ExecutionReport) -> None:
    try:
        report.raise_for_failures()
    except PartialFailure as e:
        log.debug("%s", e)
        raise typer.Exit(code=1)
