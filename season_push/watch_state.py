"""
Watch state machine.

    IDLE --start--> WATCHING_END --end_confirmed--> WAIT_LEAGUE_NEWS
                         ^                               |
                         +---- league_confirmed ---------+
                         +---- timeout (5 min) ----------+

    any --stop--> IDLE

IDLE does no capture or detection. WAIT_LEAGUE_NEWS remembers when it was
entered; if the league news screen never shows up within the timeout the
machine falls back to WATCHING_END with the same resets as a real detection.

The session (entry time + per-cycle "already notified" flags) lives here so
every transition applies its side effects in one place.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from season_push.debouncer import Debouncer

logger = logging.getLogger(__name__)


class WatchState(Enum):
    IDLE = "idle"
    WATCHING_END = "watching_end"
    WAIT_LEAGUE_NEWS = "wait_league_news"


@dataclass
class WatchSession:
    """Mutable per-process watch state. Only touched by the worker thread."""

    state: WatchState = WatchState.IDLE
    wait_entered_at: Optional[float] = None
    sent_end_detected: bool = False
    sent_league_detected: bool = False

    def clear_cycle_flags(self) -> None:
        self.sent_end_detected = False
        self.sent_league_detected = False


class WatchStateMachine:
    """Explicit transitions between IDLE, WATCHING_END and WAIT_LEAGUE_NEWS."""

    def __init__(
        self,
        end_debounce: Debouncer,
        league_debounce: Debouncer,
        wait_timeout_ms: int = 300_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.end_debounce = end_debounce
        self.league_debounce = league_debounce
        self.wait_timeout_ms = wait_timeout_ms
        self.clock = clock
        self.session = WatchSession()

    @property
    def state(self) -> WatchState:
        return self.session.state

    def _move(self, to: WatchState, trigger: str, detail: str = "") -> None:
        before = self.session.state
        self.session.state = to
        suffix = f" | detail={detail}" if detail else ""
        logger.info(f"[State] {before.name} -> {to.name} | trigger={trigger}{suffix}")

    def _ignored(self, trigger: str) -> bool:
        logger.debug(f"[State] {trigger} ignored in {self.session.state.name}")
        return False

    def start(self) -> bool:
        """IDLE -> WATCHING_END."""
        if self.session.state is not WatchState.IDLE:
            return self._ignored("Start")
        # Each Start begins a fresh cycle: no streak or sent flag survives a Stop
        self.session.wait_entered_at = None
        self.end_debounce.reset()
        self.league_debounce.reset()
        self.session.clear_cycle_flags()
        self._move(WatchState.WATCHING_END, "Start")
        return True

    def stop(self) -> bool:
        """ANY -> IDLE."""
        self.session.wait_entered_at = None
        if self.session.state is WatchState.IDLE:
            return self._ignored("Stop")
        self._move(WatchState.IDLE, "Stop")
        return True

    def end_confirmed(self, detail: str = "") -> bool:
        """WATCHING_END -> WAIT_LEAGUE_NEWS; starts the wait timer."""
        if self.session.state is not WatchState.WATCHING_END:
            return self._ignored("EndConfirmed")
        self.session.wait_entered_at = self.clock()
        self.league_debounce.reset()
        self._move(WatchState.WAIT_LEAGUE_NEWS, "EndDetected->WaitLeagueNews", detail)
        return True

    def league_confirmed(self, detail: str = "") -> bool:
        """WAIT_LEAGUE_NEWS -> WATCHING_END after the league news screen."""
        if self.session.state is not WatchState.WAIT_LEAGUE_NEWS:
            return self._ignored("LeagueConfirmed")
        self._back_to_watching_end("LeagueDetected->WatchingEnd", detail)
        return True

    def timeout(self) -> bool:
        """WAIT_LEAGUE_NEWS -> WATCHING_END when the league news never showed."""
        if self.session.state is not WatchState.WAIT_LEAGUE_NEWS:
            return self._ignored("Timeout")
        self._back_to_watching_end("WaitLeagueNewsTimeout")
        return True

    def _back_to_watching_end(self, trigger: str, detail: str = "") -> None:
        self.session.wait_entered_at = None
        self.end_debounce.reset()
        self.league_debounce.reset()
        self.session.clear_cycle_flags()
        self._move(WatchState.WATCHING_END, trigger, detail)

    def wait_elapsed_ms(self) -> Optional[float]:
        """Milliseconds spent in WAIT_LEAGUE_NEWS, or None outside it."""
        if self.session.state is not WatchState.WAIT_LEAGUE_NEWS or self.session.wait_entered_at is None:
            return None
        return (self.clock() - self.session.wait_entered_at) * 1000.0

    def is_wait_timed_out(self) -> bool:
        elapsed = self.wait_elapsed_ms()
        return elapsed is not None and elapsed >= self.wait_timeout_ms
