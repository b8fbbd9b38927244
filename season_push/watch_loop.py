"""
Watch loop - polls the screen and turns confirmed signs into notifications.

One worker thread runs the whole cycle:

    wait(POLL_INTERVAL)  <- only place a stop request is noticed
    -> (IDLE? skip)
    -> WAIT_LEAGUE_NEWS timed out? fall back to WATCHING_END, notify, skip
    -> capture (None? skip)
    -> detector for the current state -> debounce -> transition -> notify

Notifications are sent inline, so a retrying send delays the next poll. That
keeps transitions strictly ordered and needs no locking for session state.
Any exception inside one iteration is logged (rate limited) and the loop
continues; nothing in the running loop can stop the process.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import numpy as np

from season_push.debouncer import Debouncer
from season_push.log_throttle import LogThrottle
from season_push.settings import WatchSettings
from season_push.sign_detector import CompositeSignDetector, DetectionResult
from season_push.telegram_notifier import Notifier
from season_push.template_matcher import to_gray
from season_push.watch_state import WatchState, WatchStateMachine

fatal_logger = logging.getLogger("season_push.fatal")


class FrameSource(Protocol):
    def capture_frame(self) -> Optional[np.ndarray]:
        ...


class SignDetector(Protocol):
    def detect(self, frame: Optional[np.ndarray]) -> DetectionResult:
        ...


@dataclass
class WatchContext:
    """Everything the worker needs, built once at startup and passed in."""

    settings: WatchSettings
    notifier: Notifier
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("season_push.watch"))


class WatchLoop:
    """Owns the state machine, debouncers and the polling worker."""

    def __init__(
        self,
        context: WatchContext,
        capture: FrameSource,
        end_detector: SignDetector,
        league_detector: SignDetector,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.context = context
        self.settings = context.settings
        self.logger = context.logger
        self.notifier = context.notifier

        self.capture = capture
        self.end_detector = end_detector
        self.league_detector = league_detector

        self.end_debounce = Debouncer(self.settings.confirm_count)
        self.league_debounce = Debouncer(self.settings.league_confirm_count)
        self.machine = WatchStateMachine(
            self.end_debounce,
            self.league_debounce,
            wait_timeout_ms=self.settings.wait_league_news_timeout_ms,
            clock=clock,
        )

        self.iteration = 0
        self._error_throttle = LogThrottle(self.settings.loop_error_log_interval, clock)
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def state(self) -> WatchState:
        return self.machine.state

    @property
    def session(self):
        return self.machine.session

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Begin watching (IDLE -> WATCHING_END)."""
        return self.machine.start()

    def stop(self) -> bool:
        """Stop watching (ANY -> IDLE). The worker keeps polling but does nothing."""
        return self.machine.stop()

    # ------------------------------------------------------------------
    # One iteration
    # ------------------------------------------------------------------

    def run_iteration(self) -> None:
        """Capture, detect and transition once. Never raises."""
        self.iteration += 1
        if self.machine.state is WatchState.IDLE:
            return

        try:
            self._step()
        except Exception:
            if self._error_throttle.ready():
                self.logger.exception(f"[{self.iteration}] Loop exception (capture/detect)")
                fatal_logger.exception(f"[{self.iteration}] Loop exception (capture/detect)")

    def _step(self) -> None:
        # Timeout is checked before any capture/detection work
        if self.machine.state is WatchState.WAIT_LEAGUE_NEWS and self.machine.is_wait_timed_out():
            self._on_wait_timeout()
            return

        frame = self.capture.capture_frame()
        if frame is None or frame.size == 0:
            return

        # One grayscale conversion shared by every gate this iteration
        gray = to_gray(frame)

        if self.machine.state is WatchState.WATCHING_END:
            result = self.end_detector.detect(gray)
            self.logger.debug(f"[{self.iteration}] END: {result.reason}")
            if self.end_debounce.check(result.hit):
                self._on_end_confirmed(result)

        elif self.machine.state is WatchState.WAIT_LEAGUE_NEWS:
            result = self.league_detector.detect(gray)
            self.logger.debug(f"[{self.iteration}] LEAGUE NEWS: {result.reason}")
            if self.league_debounce.check(result.hit):
                self._on_league_confirmed(result)

    def _on_end_confirmed(self, result: DetectionResult) -> None:
        self.logger.info(f"[{self.iteration}] END detected: {result.reason}")
        session = self.machine.session
        if not session.sent_end_detected:
            session.sent_end_detected = True
            self.notifier.send(self.settings.msg_end_detected)
        self.machine.end_confirmed(result.reason)

    def _on_league_confirmed(self, result: DetectionResult) -> None:
        self.logger.info(f"[{self.iteration}] LEAGUE_NEWS detected: {result.reason}")
        session = self.machine.session
        if not session.sent_league_detected:
            session.sent_league_detected = True
            self.notifier.send(self.settings.msg_league_detected)
        self.machine.league_confirmed(result.reason)

    def _on_wait_timeout(self) -> None:
        self.logger.error(
            f"[{self.iteration}] WAIT_LEAGUE_NEWS timeout ({self.settings.wait_league_news_timeout_ms}ms). "
            f"Fallback to WATCHING_END."
        )
        self.notifier.send(self.settings.msg_wait_timeout)
        self.machine.timeout()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Poll until stop_event is set.

        The event is only checked at the interval wait, so an in-flight
        capture/match/notify always completes.
        """
        event = stop_event or self._stop_event
        self.logger.info(f"Starting watch loop (interval: {self.settings.poll_interval}s)")
        while not event.wait(self.settings.poll_interval):
            self.run_iteration()
        self.logger.info("Watcher loop cancelled. Exiting worker.")

    def start_worker(self) -> threading.Thread:
        """Run the loop on a background thread."""
        if self._worker is not None and self._worker.is_alive():
            return self._worker
        self._stop_event.clear()
        self._worker = threading.Thread(target=self.run, name="season-watch", daemon=True)
        self._worker.start()
        return self._worker

    def shutdown(self, timeout: float = 3.0) -> bool:
        """
        Request cancellation and wait briefly for the worker.

        Returns:
            True if the worker exited within timeout (or was never started)
        """
        self._stop_event.set()
        if self._worker is None:
            return True
        self._worker.join(timeout)
        return not self._worker.is_alive()
