from __future__ import annotations

from pathlib import Path

import pytest

from stack_sync_cli.config import EffectiveConfig, StackDeclaration
from stack_sync_cli.errors import StackNotFound
from stack_sync_cli.path_utils import expand_tilde, resolve_relative
from stack_sync_cli.stacks import resolve_stacks


def _cfg(*decls: StackDeclaration, endpoint_id: int = 2) -> EffectiveConfig:
    return EffectiveConfig(
        host="https://p",
        api_key="k",
        endpoint_id=endpoint_id,
        mode="portainer",
        stacks={d.name: d for d in decls},
    )


def test_paths_resolve_against_declaring_layer() -> None:
    cfg = _cfg(
        StackDeclaration("web", "compose.yaml", Path("/work/proj"), env_file="../shared/.env"),
        StackDeclaration("db", "/abs/db.yaml", Path("/work")),
    )

    web, = resolve_stacks(cfg, ["web"], home=Path("/home/u"))
    db, = resolve_stacks(cfg, ["db"], home=Path("/home/u"))

    assert web.compose_path == Path("/work/proj/compose.yaml")
    assert web.env_path == Path("/work/proj/../shared/.env")
    assert db.compose_path == Path("/abs/db.yaml")
    assert db.env_path is None


def test_tilde_expands_to_home() -> None:
    cfg = _cfg(StackDeclaration("web", "~/stacks/web.yaml", Path("/work"), env_file="~/web.env"))

    web, = resolve_stacks(cfg, home=Path("/home/u"))

    assert web.compose_path == Path("/home/u/stacks/web.yaml")
    assert web.env_path == Path("/home/u/web.env")


def test_endpoint_override_and_default() -> None:
    cfg = _cfg(
        StackDeclaration("a", "a.yaml", Path("/w"), endpoint_id=9),
        StackDeclaration("b", "b.yaml", Path("/w")),
        endpoint_id=4,
    )

    a, b = resolve_stacks(cfg, home=Path("/home/u"))

    assert (a.name, a.endpoint_id) == ("a", 9)
    assert (b.name, b.endpoint_id) == ("b", 4)


def test_all_stacks_sorted_when_no_names() -> None:
    cfg = _cfg(
        StackDeclaration("zeta", "z.yaml", Path("/w")),
        StackDeclaration("alpha", "a.yaml", Path("/w"), enabled=False),
    )

    stacks = resolve_stacks(cfg, home=Path("/home/u"))

    assert [s.name for s in stacks] == ["alpha", "zeta"]
    assert stacks[0].enabled is False


def test_unknown_stack_name() -> None:
    with pytest.raises(StackNotFound, match="'nope'"):
        resolve_stacks(_cfg(), ["nope"], home=Path("/home/u"))


def test_expand_tilde_only_touches_leading_home() -> None:
    home = Path("/home/u")

    assert expand_tilde("~", home) == "/home/u"
    assert expand_tilde("~/x", home) == "/home/u/x"
    assert expand_tilde("~other/x", home) == "~other/x"
    assert expand_tilde("a/~/b", home) == "a/~/b"
    assert resolve_relative("x", Path("/base"), home) == Path("/base/x")
