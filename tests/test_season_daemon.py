"""
Daemon shutdown and logging setup tests.

Collaborators are MagicMocks; no worker thread or screen is used.
"""
from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

import season_daemon  # noqa: E402
from season_push.settings import WatchSettings  # noqa: E402


@pytest.fixture
def parts() -> dict[str, MagicMock]:
    return {
        "loop": MagicMock(),
        "capture": MagicMock(),
        "store": MagicMock(),
        "notifier": MagicMock(),
        "logger": MagicMock(),
    }


def _shutdown(parts: dict[str, MagicMock]) -> None:
    with patch("season_daemon.signal.signal") as mock_signal:
        season_daemon.shutdown_watcher(
            parts["loop"], parts["capture"], parts["store"], parts["notifier"],
            WatchSettings(), parts["logger"],
        )
    mock_signal.assert_called_once_with(signal.SIGTERM, signal.SIG_IGN)


class TestShutdownWatcher:

    def test_clean_exit_stops_session(self, parts) -> None:
        parts["loop"].shutdown.return_value = True
        _shutdown(parts)
        parts["loop"].stop.assert_called_once()
        parts["notifier"].send.assert_called_once_with("마구알림 OFF")
        parts["capture"].close.assert_called_once()
        parts["store"].close.assert_called_once()

    def test_stuck_worker_keeps_session(self, parts) -> None:
        parts["loop"].shutdown.return_value = False
        _shutdown(parts)
        parts["loop"].stop.assert_not_called()
        parts["logger"].warning.assert_called_once()
        # Cleanup still happens
        parts["notifier"].send.assert_called_once_with("마구알림 OFF")
        parts["capture"].close.assert_called_once()
        parts["store"].close.assert_called_once()


class TestSetupLogging:

    def test_fatal_logger_writes_only_to_fatal_log(self, tmp_path: Path) -> None:
        fatal_logger = logging.getLogger("season_push.fatal")
        handlers_before = list(fatal_logger.handlers)
        propagate_before = fatal_logger.propagate
        root_before = list(logging.getLogger().handlers)
        try:
            season_daemon.setup_logging(tmp_path / "logs")
            assert fatal_logger.propagate is False

            fatal_logger.error("worker blew up")
            for handler in fatal_logger.handlers:
                handler.flush()
            assert "worker blew up" in (tmp_path / "logs" / "fatal.log").read_text(encoding="utf-8")
        finally:
            for handler in list(fatal_logger.handlers):
                if handler not in handlers_before:
                    fatal_logger.removeHandler(handler)
                    handler.close()
            fatal_logger.propagate = propagate_before
            root = logging.getLogger()
            for handler in list(root.handlers):
                if handler not in root_before:
                    root.removeHandler(handler)
                    handler.close()
