from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .backends.base import RemoteBackend
from .errors import PartialFailure, StackSyncError
from .reconcile import Action, ActionKind, Plan
from .reporter import Reporter

log = logging.getLogger(__name__)


@dataclass
class StackResult:
    name: str
    actions: list[Action] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ExecutionReport:
    results: list[StackResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failed(self) -> list[str]:
        return [r.name for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def result(self, name: str) -> StackResult | None:
        return next((r for r in self.results if r.name == name), None)

    def raise_for_failures(self) -> None:
        if self.failed:
            raise PartialFailure(self.failed, len(self.results))


def apply_action(action: Action, backend: RemoteBackend) -> None:
    stack = action.stack
    if action.kind in (ActionKind.CREATE, ActionKind.UPDATE):
        if action.compose_body is None:
            raise ValueError(f"{action.kind.value} for '{stack.name}' has no compose content")
        backend.create_or_update(stack, action.compose_body, action.env_body)
    elif action.kind is ActionKind.SET_ENABLED:
        backend.set_running(stack, True)
    elif action.kind is ActionKind.SET_DISABLED:
        backend.set_running(stack, False)
    elif action.kind is ActionKind.REDEPLOY:
        backend.force_redeploy(stack)


class Executor:
    def __init__(self, backend: RemoteBackend, *, dry_run: bool = False, reporter: Reporter | None = None):
        self.backend = backend
        self.dry_run = dry_run
        self.reporter = reporter or Reporter()

    def run(self, plan: Plan) -> ExecutionReport:
        """Apply (or, in dry-run mode, only render) every action of `plan`.

        Actions run in plan order. A failing stack records its error and
        skips its remaining actions; other stacks still run.
        """
        report = ExecutionReport(dry_run=self.dry_run)
        by_name: dict[str, StackResult] = {}
        for action in plan.actions:
            result = by_name.get(action.name)
            if result is None:
                result = by_name[action.name] = StackResult(action.name)
                report.results.append(result)
            if not result.ok:
                continue
            result.actions.append(action)
            self._run_action(action, result)

        for name, error in plan.errors.items():
            self.reporter.failed(name, error)
            report.results.append(StackResult(name, error=error))

        self.reporter.summary(len(report.results), report.failed)
        return report

    def _run_action(self, action: Action, result: StackResult) -> None:
        if self.dry_run or not action.mutates:
            self.reporter.planned(action)
            return
        self.reporter.pending(action)
        try:
            apply_action(action, self.backend)
        except StackSyncError as e:
            log.debug("%s on %s failed", action.kind.value, action.name, exc_info=True)
            result.error = str(e)
            self.reporter.failed(action.name, str(e))
            return
        self.reporter.done(action)
