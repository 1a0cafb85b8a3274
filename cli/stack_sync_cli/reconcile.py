"""Decide what has to happen to each stack.

`decide` is a pure function of the resolved stack, its observed remote state
and the local file contents. State transitions (start/stop) win over content
updates: a disabled stack is only stopped, and a stopped stack that is enabled
again is only started. Content differences are picked up on the next sync.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable

from .backends.base import RemoteBackend, RemoteStackState
from .errors import RemoteRejected, StackSyncError
from .fingerprint import env_fingerprint, fingerprint
from .stacks import ResolvedStack

log = logging.getLogger(__name__)

NOOP_UP_TO_DATE = "up to date"
NOOP_STOPPED = "already stopped"
NOOP_DISABLED = "disabled"
NOOP_NOT_FOUND = "not found"


class ActionKind(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    SET_ENABLED = "set-enabled"
    SET_DISABLED = "set-disabled"
    REDEPLOY = "redeploy"
    NOOP = "noop"


@dataclass(frozen=True)
class LocalContent:
    compose: str
    env: str | None = None

    @classmethod
    def read(cls, stack: ResolvedStack) -> "LocalContent":
        return cls(compose=stack.read_compose(), env=stack.read_env())


@dataclass(frozen=True)
class Action:
    stack: ResolvedStack
    kind: ActionKind
    summary: str
    compose_body: str | None = None
    env_body: str | None = None
    ref: str | None = None

    @property
    def name(self) -> str:
        return self.stack.name

    @property
    def mutates(self) -> bool:
        return self.kind is not ActionKind.NOOP


@dataclass
class Plan:
    actions: list[Action] = field(default_factory=list)
    # stacks that could not be planned (remote read or local file failure)
    errors: dict[str, str] = field(default_factory=dict)

    def for_stack(self, name: str) -> list[Action]:
        return [a for a in self.actions if a.name == name]

    @property
    def stack_names(self) -> list[str]:
        names: list[str] = []
        for a in self.actions:
            if a.name not in names:
                names.append(a.name)
        return names


def content_changes(stack: ResolvedStack, remote: RemoteStackState, local: LocalContent) -> list[str]:
    changes: list[str] = []
    if fingerprint(local.compose) != remote.compose_fingerprint:
        changes.append("compose changed")
    if stack.env_path is not None and env_fingerprint(local.env) != remote.env_fingerprint:
        changes.append("env changed")
    return changes


def decide(stack: ResolvedStack, remote: RemoteStackState, local: LocalContent | None = None) -> Action:
    if not stack.enabled:
        if not remote.exists:
            return Action(stack, ActionKind.NOOP, NOOP_DISABLED)
        if remote.running:
            return Action(stack, ActionKind.SET_DISABLED, "running, disabled in config", ref=remote.ref)
        return Action(stack, ActionKind.NOOP, NOOP_STOPPED, ref=remote.ref)

    if local is None:
        raise ValueError(f"local content is required to plan enabled stack '{stack.name}'")

    if not remote.exists:
        return Action(stack, ActionKind.CREATE, "not deployed", local.compose, local.env)
    if not remote.running:
        return Action(stack, ActionKind.SET_ENABLED, "stopped, enabled in config", ref=remote.ref)

    changes = content_changes(stack, remote, local)
    if changes:
        return Action(stack, ActionKind.UPDATE, ", ".join(changes), local.compose, local.env, ref=remote.ref)
    return Action(stack, ActionKind.NOOP, NOOP_UP_TO_DATE, ref=remote.ref)


def decide_redeploy(
        stack: ResolvedStack,
        remote: RemoteStackState,
        host: str = "",
        *,
        dry_run: bool = False,
) -> Action:
    if not stack.enabled:
        return Action(stack, ActionKind.NOOP, NOOP_DISABLED, ref=remote.ref)
    if not remote.exists:
        if dry_run:
            return Action(stack, ActionKind.NOOP, NOOP_NOT_FOUND)
        where = f" on {host}" if host else ""
        raise RemoteRejected(f"Stack '{stack.name}' not found{where}. Use 'sync' to create it first.")
    return Action(stack, ActionKind.REDEPLOY, "pull images and recreate", ref=remote.ref)


def plan_sync(stacks: Iterable[ResolvedStack], backend: RemoteBackend) -> Plan:
    plan = Plan()
    for stack in stacks:
        try:
            remote = backend.observe(stack)
            local = LocalContent.read(stack) if stack.enabled else None
            action = decide(stack, remote, local)
        except (StackSyncError, OSError) as e:
            log.debug("planning %s failed", stack.name, exc_info=True)
            plan.errors[stack.name] = str(e)
            continue
        log.debug("%s: %s (%s)", stack.name, action.kind.value, action.summary)
        plan.actions.append(action)
    return plan


def plan_redeploy(stacks: Iterable[ResolvedStack], backend: RemoteBackend, *, dry_run: bool = False) -> Plan:
    plan = Plan()
    for stack in stacks:
        try:
            action = decide_redeploy(stack, backend.observe(stack), backend.host, dry_run=dry_run)
        except StackSyncError as e:
            plan.errors[stack.name] = str(e)
            continue
        plan.actions.append(action)
    return plan
