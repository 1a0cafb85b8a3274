from __future__ import annotations

import hashlib

from .envfile import parse_env_str, render_env


def normalize(content: str) -> str:
    # a file that differs only by its final newline(s) is unchanged
    return content.rstrip("\r\n")


def fingerprint(content: str) -> str:
    return hashlib.sha256(normalize(content).encode("utf-8")).hexdigest()


def env_fingerprint(content: str | None) -> str:
    """Fingerprint of the variables in an env body, ignoring comments and layout."""
    return fingerprint(render_env(parse_env_str(content or "")))
