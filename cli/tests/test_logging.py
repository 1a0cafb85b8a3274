from __future__ import annotations

import logging

import pytest

from stack_sync_cli import logging_


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _ours(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if isinstance(h, logging_._StderrHandler)]


def test_verbose_enables_debug_everywhere(root_logger: logging.Logger) -> None:
    logging_.setup_logging(True)

    assert root_logger.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG
    assert logging.getLogger("httpcore").level == logging.DEBUG


def test_quiet_by_default_and_single_handler(root_logger: logging.Logger) -> None:
    logging_.setup_logging(True)
    logging_.setup_logging(False)

    assert root_logger.level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    assert len(_ours(root_logger)) == 1


def test_handler_follows_current_stderr(root_logger: logging.Logger, capsys: pytest.CaptureFixture[str]) -> None:
    logging_.setup_logging(True)

    logging.getLogger("stack_sync_cli.test").debug("planning web")

    assert "DEBUG   stack_sync_cli.test: planning web" in capsys.readouterr().err
