from __future__ import annotations

from pathlib import Path

from stack_sync_cli.envfile import EnvVar, env_from_api, parse_env_str, read_env_file, render_env
from stack_sync_cli.fingerprint import env_fingerprint, fingerprint, normalize


def test_parse_env_skips_comments_blank_and_junk() -> None:
    content = "# comment\n\nA=1\n  B = two words \nnot-a-pair\nURL=http://x/?a=b\n"

    assert parse_env_str(content) == [
        EnvVar("A", "1"),
        EnvVar("B", "two words"),
        EnvVar("URL", "http://x/?a=b"),
    ]


def test_render_and_api_shape() -> None:
    env_vars = [EnvVar("A", "1"), EnvVar("B", "")]

    assert render_env(env_vars) == "A=1\nB="
    assert [v.to_api() for v in env_vars] == [{"name": "A", "value": "1"}, {"name": "B", "value": ""}]
    assert env_from_api([{"name": "A", "value": "1"}, {"name": "B", "value": None}]) == env_vars


def test_read_env_file(tmp_path: Path) -> None:
    path = tmp_path / ".env"
    path.write_text("A=1\n# b\n", encoding="utf-8")

    assert read_env_file(path) == [EnvVar("A", "1")]


def test_fingerprint_ignores_trailing_newlines() -> None:
    for content in ("", "services: {}", "a\nb", "x\n", "y\r\n"):
        assert fingerprint(content) == fingerprint(content + "\n")
        assert fingerprint(content) == fingerprint(content + "\r\n\n")
    assert normalize("a\n\n") == "a"


def test_fingerprint_detects_changes() -> None:
    assert fingerprint("image: a") != fingerprint("image: b")
    assert fingerprint("a\n\nb") != fingerprint("a\nb")


def test_env_fingerprint_uses_canonical_form() -> None:
    assert env_fingerprint("# note\nA = 1\n\nB=2") == env_fingerprint("A=1\nB=2\n")
    assert env_fingerprint(None) == env_fingerprint("")
    assert env_fingerprint("A=1") != env_fingerprint("A=2")
