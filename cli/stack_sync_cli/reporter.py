from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import console as console_mod
from .envfile import read_env_file
from .reconcile import NOOP_DISABLED, NOOP_NOT_FOUND, NOOP_STOPPED, NOOP_UP_TO_DATE, Action, ActionKind
from .stacks import ResolvedStack

LABEL_WIDTH = 12
FIELD_WIDTH = 14

# kind -> (dry-run label, in-progress label, done label)
ACTION_LABELS = {
    ActionKind.CREATE: ("Would Create", "Creating", "Created"),
    ActionKind.UPDATE: ("Would Update", "Updating", "Updated"),
    ActionKind.SET_ENABLED: ("Would Start", "Starting", "Started"),
    ActionKind.SET_DISABLED: ("Would Stop", "Stopping", "Stopped"),
    ActionKind.REDEPLOY: ("Would Redep.", "Redeploying", "Redeployed"),
}

NOOP_LABELS = {
    NOOP_UP_TO_DATE: ("Up-to-Date", "bold cyan"),
    NOOP_STOPPED: ("Stopped", "bold cyan"),
    NOOP_DISABLED: ("Disabled", "dim"),
    NOOP_NOT_FOUND: ("Not Found", "bold yellow"),
}


def _file_size(path: Path) -> str:
    try:
        return f"{path.stat().st_size} bytes"
    except OSError:
        return "missing"


def _var_count(path: Path) -> str:
    try:
        return f"{len(read_env_file(path))} vars"
    except OSError:
        return "missing"


class Reporter:
    def __init__(
            self,
            console: Console | None = None,
            *,
            verbose: bool = False,
            host: str | None = None,
            show_endpoint: bool = True,
            local_files: bool = True,
            ref_label: str = "id",
    ):
        self.console = console or console_mod.console
        self.verbose = verbose
        self.host = host
        self.show_endpoint = show_endpoint
        # False keeps the details off the local compose/env files
        self.local_files = local_files
        self.ref_label = ref_label

    def _line(self, label: str, style: str, name: str, suffix: str = "") -> None:
        text = f" [{style}]{label:>{LABEL_WIDTH}}[/] [bold]{escape(name)}[/]"
        if suffix:
            text += f" [dim]{escape(suffix)}[/]"
        self.console.print(text, highlight=False)

    def _ref(self, ref: str | None) -> str:
        return f"({self.ref_label}: {ref})" if ref else ""

    def planned(self, action: Action) -> None:
        if action.kind is ActionKind.NOOP:
            self.noop(action)
        else:
            label = ACTION_LABELS[action.kind][0]
            suffix = f"({action.summary})" if action.kind is ActionKind.UPDATE else self._ref(action.ref)
            self._line(label, "bold yellow", action.name, suffix)
        if self.verbose:
            self.details(self.stack_fields(action.stack))

    def stack_fields(self, stack: ResolvedStack) -> list[tuple[str, str]]:
        fields: list[tuple[str, str]] = []
        if self.host:
            fields.append(("Host", self.host))
        if self.local_files:
            fields.append(("Compose file", f"{stack.compose_path} ({_file_size(stack.compose_path)})"))
            if stack.env_path is None:
                fields.append(("Env file", "(none)"))
            else:
                fields.append(("Env file", f"{stack.env_path} ({_var_count(stack.env_path)})"))
        if self.show_endpoint:
            fields.append(("Endpoint ID", str(stack.endpoint_id)))
        return fields

    def pending(self, action: Action) -> None:
        label = ACTION_LABELS[action.kind][1]
        self.console.print(f" [bold blue]{label:>{LABEL_WIDTH}}[/] [bold]{escape(action.name)}[/]...", highlight=False)

    def done(self, action: Action) -> None:
        label = ACTION_LABELS[action.kind][2]
        self._line(label, "bold green", action.name, self._ref(action.ref))

    def noop(self, action: Action) -> None:
        label, style = NOOP_LABELS.get(action.summary, ("Skipped", "dim"))
        self._line(label, style, action.name)

    def failed(self, name: str, error: str) -> None:
        self._line("Failed", "bold red", name)
        for line in str(error).splitlines():
            self.console.print(f"{'':>{FIELD_WIDTH}}[red]{escape(line)}[/]", highlight=False)

    def not_found(self, name: str) -> None:
        self._line("Not Found", "bold yellow", name)

    def view(self, name: str, ref: str | None, status: str) -> None:
        style = "bold green" if status == "active" else "bold yellow"
        self._line(status.capitalize(), style, name, self._ref(ref))

    def details(self, fields: list[tuple[str, str]]) -> None:
        if not fields:
            return
        width = max(len(label) for label, _ in fields)
        for label, value in fields:
            lines = str(value).splitlines() or [""]
            self.console.print(
                f"{'':>{FIELD_WIDTH}}[cyan]{escape(label)}[/]:{'':<{width - len(label) + 1}}{escape(lines[0])}",
                highlight=False,
            )
            for extra in lines[1:]:
                self.console.print(f"{'':>{FIELD_WIDTH + width + 2}}{escape(extra)}", highlight=False)

    def summary(self, total: int, failed: list[str]) -> None:
        if failed:
            msg = f"{len(failed)} of {total} stack(s) failed: {', '.join(failed)}"
            self.console.print(f"[bold red]ERR[/] {escape(msg)}")
