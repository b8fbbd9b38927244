"""
Composite sign detector - AND-gated ROI template matching.

A sign is a short, ordered list of gates. Each gate is one template inside
one normalized ROI with its own threshold:

    END sign:         confirm button + REWARD label (both required)
    LEAGUE NEWS sign: title + subtitle (required), next button (only when
                      LEAGUE_REQUIRE_NEXT is set)

Detection logic:
1. Convert the frame to grayscale once
2. Score gates in order
3. First required gate under its threshold -> miss (later gates skipped)
4. Optional gates are scored for the log line only
5. All required gates pass -> hit

The reason string always carries every score computed so far plus the
deciding gate's ROI/template size and the frame size. It is for logs only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from season_push.settings import WatchSettings
from season_push.template_matcher import NormalizedRect, match_in_roi, to_gray
from season_push.template_store import TemplateLoadError, TemplateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class GateSpec:
    """One visual feature of a sign."""

    name: str
    rect: NormalizedRect
    template: np.ndarray
    threshold: float
    required: bool = True


@dataclass(frozen=True)
class DetectionResult:
    """Hit/miss for one frame plus a human-readable reason."""

    hit: bool
    reason: str

    @classmethod
    def ok(cls, reason: str) -> "DetectionResult":
        return cls(True, reason)

    @classmethod
    def fail(cls, reason: str) -> "DetectionResult":
        return cls(False, reason)


def _format_scores(scores: Sequence[tuple[str, float]]) -> str:
    return ", ".join(f"{name}={value:.3f}" for name, value in scores)


class CompositeSignDetector:
    """Generic AND-gated matcher; one instance per sign."""

    def __init__(self, name: str, gates: Sequence[GateSpec]) -> None:
        if not gates:
            raise ValueError(f"{name}: at least one gate is required")
        for gate in gates:
            if gate.template is None or gate.template.size == 0:
                raise TemplateLoadError(f"{name}: template for gate '{gate.name}' is empty")

        self.name = name
        self.gates: List[GateSpec] = list(gates)

    def detect(self, frame: Optional[np.ndarray]) -> DetectionResult:
        """
        Evaluate all gates against one frame.

        Args:
            frame: BGR/BGRA/grayscale frame (grayscale is shared without copying)

        Returns:
            DetectionResult
        """
        if frame is None or frame.size == 0:
            return DetectionResult.fail("frame empty")

        gray = to_gray(frame)
        frame_size = f"{gray.shape[1]}x{gray.shape[0]}"

        scores: list[tuple[str, float]] = []
        for gate in self.gates:
            value, diag = match_in_roi(gray, gate.rect, gate.template)

            if gate.required and value < gate.threshold:
                prev = f" ({_format_scores(scores)})" if scores else ""
                return DetectionResult.fail(
                    f"{gate.name}<{value:.3f}>{prev} {diag} frame={frame_size}"
                )

            scores.append((gate.name, value))

        return DetectionResult.ok(f"hit {_format_scores(scores)} frame={frame_size}")


def build_end_detector(settings: WatchSettings, store: TemplateStore) -> CompositeSignDetector:
    """END sign: confirm button (1st gate) + REWARD label (2nd gate)."""
    gates = [
        GateSpec(
            name="confirm",
            rect=NormalizedRect.from_tuple(settings.end_confirm_roi),
            template=store.load(settings.end_confirm_template),
            threshold=settings.end_confirm_threshold,
        ),
        GateSpec(
            name="reward",
            rect=NormalizedRect.from_tuple(settings.end_reward_roi),
            template=store.load(settings.end_reward_template),
            threshold=settings.end_reward_threshold,
        ),
    ]
    logger.info(
        f"[DETECTOR] END: confirm>={settings.end_confirm_threshold}, "
        f"reward>={settings.end_reward_threshold}"
    )
    return CompositeSignDetector("end", gates)


def build_league_news_detector(settings: WatchSettings, store: TemplateStore) -> CompositeSignDetector:
    """LEAGUE NEWS sign: title + subtitle, plus the next button when required."""
    gates = [
        GateSpec(
            name="title",
            rect=NormalizedRect.from_tuple(settings.league_title_roi),
            template=store.load(settings.league_title_template),
            threshold=settings.league_title_threshold,
        ),
        GateSpec(
            name="subtitle",
            rect=NormalizedRect.from_tuple(settings.league_subtitle_roi),
            template=store.load(settings.league_subtitle_template),
            threshold=settings.league_subtitle_threshold,
        ),
    ]

    # The next button template is only needed (and only loaded) when it gates
    if settings.league_require_next:
        gates.append(
            GateSpec(
                name="next",
                rect=NormalizedRect.from_tuple(settings.league_next_roi),
                template=store.load(settings.league_next_template),
                threshold=settings.league_next_threshold,
            )
        )

    logger.info(
        f"[DETECTOR] LEAGUE NEWS: title>={settings.league_title_threshold}, "
        f"subtitle>={settings.league_subtitle_threshold}, require_next={settings.league_require_next}"
    )
    return CompositeSignDetector("league_news", gates)
