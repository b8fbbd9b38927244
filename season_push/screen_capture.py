"""
Screen Capture - grabs one monitor as a BGR numpy array.

Uses mss for the raw grab and PIL's BGRX decoder to drop the padding byte,
then converts to cv2 BGR for template matching.

The watcher calls capture_frame() every poll. It never raises: any failure
returns None so the loop just skips that iteration. Errors are logged at most
once per error_log_interval to avoid flooding the log while the monitor is
asleep or the session is locked.
"""
from __future__ import annotations

import logging
from typing import Optional

import cv2
import mss
import numpy as np
from PIL import Image

from season_push.log_throttle import LogThrottle

logger = logging.getLogger(__name__)


class ScreenCapture:
    """Capture collaborator for the watch loop."""

    def __init__(self, screen_index: int = 1, error_log_interval: float = 2.0):
        """
        Args:
            screen_index: 0-based monitor index (0 = primary). Out-of-range
                          indexes fall back to the primary monitor.
            error_log_interval: Seconds between repeated capture error logs
        """
        self.screen_index = screen_index
        self._sct = None
        self._monitor = None
        self._error_throttle = LogThrottle(error_log_interval)

    def _ensure_monitor(self) -> dict:
        if self._sct is None:
            self._sct = mss.mss()
            # mss: monitors[0] is the virtual union of all screens, [1..] are real ones
            screens = self._sct.monitors[1:]
            index = self.screen_index
            if index < 0 or index >= len(screens):
                logger.warning(f"[CAPTURE] Screen index {index} not available ({len(screens)} screens), using 0")
                index = 0
            self._monitor = screens[index]
            logger.info(
                f"[CAPTURE] Screen {index}: {self._monitor['width']}x{self._monitor['height']} "
                f"+{self._monitor['left']},{self._monitor['top']}"
            )
        return self._monitor

    def capture_frame(self) -> Optional[np.ndarray]:
        """
        Capture the configured monitor.

        Returns:
            np.ndarray: BGR image (H x W x 3), or None on failure
        """
        try:
            monitor = self._ensure_monitor()
            if monitor["width"] <= 0 or monitor["height"] <= 0:
                return None

            shot = self._sct.grab(monitor)
            img = Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")

            # Convert PIL RGB to cv2 BGR
            return cv2.cvtColor(np.array(img), cv2.COLOR_RGB2BGR)
        except Exception as e:
            if self._error_throttle.ready():
                logger.error(f"[CAPTURE] capture_frame failed: {e!r}")
            # Drop the handle so the next poll re-enumerates monitors
            self.close()
            return None

    def close(self) -> None:
        if self._sct is not None:
            try:
                self._sct.close()
            except Exception:
                pass
            self._sct = None
            self._monitor = None
