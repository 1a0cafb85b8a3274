from __future__ import annotations

import typer

from .commands import import_cmd, init_cmd, redeploy_cmd, sync_cmd, view_cmd
from .logging_ import setup_logging


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="stack-sync",
        help="Sync docker compose stacks to Portainer or a plain docker host over SSH.",
        no_args_is_help=True,
    )

    app.command("sync")(sync_cmd.sync)
    app.command("view")(view_cmd.view)
    app.command("redeploy")(redeploy_cmd.redeploy)
    app.command("import")(import_cmd.import_stack)
    app.command("init")(init_cmd.init)

    @app.callback()
    def _main(
            ctx: typer.Context,
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs and stack details."),
    ):
        setup_logging(verbose)
        ctx.obj = {"verbose": verbose}

    return app


app = _build_app()
