from __future__ import annotations

from pathlib import Path


class StackSyncError(Exception):
    """Base error for stack-sync."""


class ConfigNotFound(StackSyncError):
    def __init__(self, path: Path | str):
        super().__init__(f"Config file not found: {path}")
        self.path = Path(path)


class ConfigInvalid(StackSyncError):
    def __init__(self, message: str, *, path: Path | str | None = None, problems: list[str] | None = None):
        self.path = Path(path) if path is not None else None
        self.problems = list(problems or [])
        text = message
        if self.path is not None:
            text = f"{text} ({self.path})"
        if self.problems:
            text = text + ":\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(text)


class StackNotFound(StackSyncError):
    def __init__(self, name: str):
        super().__init__(f"Stack '{name}' not found in config")
        self.name = name


class RemoteUnavailable(StackSyncError):
    """Network or SSH connection failure."""


class RemoteRejected(StackSyncError):
    """Backend-reported failure (HTTP error, nonzero remote exit)."""


class PartialFailure(StackSyncError):
    def __init__(self, failed: list[str], total: int):
        self.failed = list(failed)
        self.total = total
        super().__init__(f"{len(self.failed)} of {total} stack(s) failed: {', '.join(self.failed)}")
