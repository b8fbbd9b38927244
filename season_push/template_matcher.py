"""
ROI template matching on normalized rectangles.

Uses cv2.TM_CCOEFF_NORMED (higher = better, ~1.0 is a perfect match).
ROIs are given as fractions of the frame so the same sign definition works at
any capture resolution, as long as the ROI in pixels stays at least as large
as the template.

Usage:
    from season_push.template_matcher import NormalizedRect, score

    rect = NormalizedRect(0.44, 0.905, 0.14, 0.07)
    s = score(frame, rect, template)   # -1.0 when the ROI is too small

If the ROI is smaller than the template (capture resolution dropped below the
tuning resolution), FAIL_SCORE is returned instead of letting OpenCV raise.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

# Returned when matching is impossible; below any realistic threshold
FAIL_SCORE = -1.0


@dataclass(frozen=True)
class NormalizedRect:
    """Rectangle as fractions (0..1) of frame width/height."""

    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_tuple(cls, values: Tuple[float, float, float, float]) -> "NormalizedRect":
        x, y, w, h = values
        return cls(float(x), float(y), float(w), float(h))


def _clamp(v: int, lo: int, hi: int) -> int:
    return lo if v < lo else (hi if v > hi else v)


def to_pixel_rect(rect: NormalizedRect, width: int, height: int) -> Tuple[int, int, int, int]:
    """
    Map a normalized rect to pixel (x, y, w, h) inside a width x height frame.

    Origin is clamped to [0, dim-1], size to [1, dim - origin].
    """
    x = int(round(width * rect.x))
    y = int(round(height * rect.y))
    w = int(round(width * rect.w))
    h = int(round(height * rect.h))

    x = _clamp(x, 0, width - 1)
    y = _clamp(y, 0, height - 1)
    w = _clamp(w, 1, width - x)
    h = _clamp(h, 1, height - y)
    return x, y, w, h


def to_gray(frame: np.ndarray) -> np.ndarray:
    """Convert a 1/3/4-channel frame to grayscale. 2-D input is returned as-is."""
    if frame.ndim == 2:
        return frame

    channels = frame.shape[2]
    if channels == 1:
        return frame[:, :, 0]
    if channels == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if channels == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)

    raise ValueError(f"Unsupported channel count: {channels}")


def match_in_roi(
    gray: np.ndarray,
    rect: NormalizedRect,
    template: Optional[np.ndarray],
) -> Tuple[float, str]:
    """
    Match template inside the ROI of an already-grayscale frame.

    Returns:
        (score, diag)
        - score: max TM_CCOEFF_NORMED value, or FAIL_SCORE if matching is impossible
        - diag: "roi=WxH, tpl=WxH" for log lines
    """
    frame_h, frame_w = gray.shape[:2]
    x, y, w, h = to_pixel_rect(rect, frame_w, frame_h)

    if template is None or template.size == 0:
        return FAIL_SCORE, f"roi={w}x{h}, tpl=0x0"

    th, tw = template.shape[:2]
    diag = f"roi={w}x{h}, tpl={tw}x{th}"

    # matchTemplate requires image >= template
    if w < tw or h < th:
        return FAIL_SCORE, diag

    crop = gray[y:y + h, x:x + w]
    result = cv2.matchTemplate(crop, template, cv2.TM_CCOEFF_NORMED)
    _, max_val, _, _ = cv2.minMaxLoc(result)

    if not math.isfinite(max_val):
        return FAIL_SCORE, diag
    return float(max_val), diag


def score(frame: np.ndarray, rect: NormalizedRect, template: Optional[np.ndarray]) -> float:
    """
    Similarity between template and the best position inside rect.

    Args:
        frame: BGR, BGRA or grayscale image (grayscale is used without copying)
        rect: Normalized search rectangle
        template: Grayscale reference image

    Returns:
        Score in about -1..1, or FAIL_SCORE if the ROI is smaller than the template
    """
    return match_in_roi(to_gray(frame), rect, template)[0]
