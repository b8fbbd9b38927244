"""
Pytest configuration and shared fixtures for season push tests.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable
from unittest.mock import MagicMock

import cv2
import numpy as np
import pytest

# Add project root to path so imports work
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from season_push.settings import WatchSettings
from season_push.template_matcher import NormalizedRect, to_pixel_rect

if TYPE_CHECKING:
    import numpy.typing as npt


# =============================================================================
# Frame / Template Helpers
# =============================================================================

FRAME_W = 800
FRAME_H = 600


def make_template(seed: int, width: int = 24, height: int = 16) -> npt.NDArray[np.uint8]:
    """Textured grayscale template (random noise correlates ~1.0 only with itself)."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (height, width), dtype=np.uint8)


def noise_frame(seed: int = 1000, width: int = FRAME_W, height: int = FRAME_H) -> npt.NDArray[np.uint8]:
    """BGR noise frame that matches no template."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (height, width, 3), dtype=np.uint8)


def paste(
    frame: npt.NDArray[np.uint8],
    template: npt.NDArray[np.uint8],
    rect: NormalizedRect,
    offset: tuple[int, int] = (3, 2),
) -> npt.NDArray[np.uint8]:
    """Paste a grayscale template inside rect (in place) and return the frame."""
    height, width = frame.shape[:2]
    x, y, _, _ = to_pixel_rect(rect, width, height)
    x += offset[0]
    y += offset[1]
    th, tw = template.shape
    if frame.ndim == 3:
        frame[y:y + th, x:x + tw] = template[:, :, None]
    else:
        frame[y:y + th, x:x + tw] = template
    return frame


def write_png(path: Path, image: npt.NDArray[np.uint8]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    assert cv2.imwrite(str(path), image)
    return path


# =============================================================================
# Frame Fixtures
# =============================================================================

@pytest.fixture
def sample_frame() -> npt.NDArray[np.uint8]:
    """Black BGR frame for testing."""
    return np.zeros((FRAME_H, FRAME_W, 3), dtype=np.uint8)


@pytest.fixture
def random_frame() -> npt.NDArray[np.uint8]:
    """Random noise BGR frame for testing."""
    return noise_frame()


# =============================================================================
# Sign Fixtures
# =============================================================================

# Small ROIs on an 800x600 frame, each comfortably larger than a 24x16 template
CONFIRM_RECT = NormalizedRect(0.10, 0.10, 0.10, 0.10)
REWARD_RECT = NormalizedRect(0.50, 0.10, 0.10, 0.10)
TITLE_RECT = NormalizedRect(0.10, 0.60, 0.10, 0.10)
SUBTITLE_RECT = NormalizedRect(0.50, 0.60, 0.10, 0.10)


@pytest.fixture
def templates() -> dict[str, npt.NDArray[np.uint8]]:
    """One distinct template per gate."""
    return {
        "confirm": make_template(1),
        "reward": make_template(2),
        "title": make_template(3),
        "subtitle": make_template(4),
        "next": make_template(5),
    }


@pytest.fixture
def end_frame(templates) -> npt.NDArray[np.uint8]:
    """Frame showing the END sign."""
    frame = noise_frame()
    paste(frame, templates["confirm"], CONFIRM_RECT)
    paste(frame, templates["reward"], REWARD_RECT)
    return frame


@pytest.fixture
def league_frame(templates) -> npt.NDArray[np.uint8]:
    """Frame showing the LEAGUE NEWS sign."""
    frame = noise_frame()
    paste(frame, templates["title"], TITLE_RECT)
    paste(frame, templates["subtitle"], SUBTITLE_RECT)
    return frame


@pytest.fixture
def template_dir(tmp_path: Path, templates) -> Path:
    """Template directory populated with PNGs named like the real assets."""
    directory = tmp_path / "templates"
    settings = WatchSettings()
    write_png(directory / settings.end_confirm_template, templates["confirm"])
    write_png(directory / settings.end_reward_template, templates["reward"])
    write_png(directory / settings.league_title_template, templates["title"])
    write_png(directory / settings.league_subtitle_template, templates["subtitle"])
    write_png(directory / settings.league_next_template, templates["next"])
    return directory


@pytest.fixture
def test_settings(template_dir: Path, tmp_path: Path) -> WatchSettings:
    """Settings wired to the test templates and test ROIs."""
    return WatchSettings(
        template_dir=template_dir,
        log_dir=tmp_path / "logs",
        end_confirm_roi=(CONFIRM_RECT.x, CONFIRM_RECT.y, CONFIRM_RECT.w, CONFIRM_RECT.h),
        end_reward_roi=(REWARD_RECT.x, REWARD_RECT.y, REWARD_RECT.w, REWARD_RECT.h),
        league_title_roi=(TITLE_RECT.x, TITLE_RECT.y, TITLE_RECT.w, TITLE_RECT.h),
        league_subtitle_roi=(SUBTITLE_RECT.x, SUBTITLE_RECT.y, SUBTITLE_RECT.w, SUBTITLE_RECT.h),
        telegram_bot_token="TOKEN",
        telegram_chat_id="CHAT",
    )


# =============================================================================
# Collaborator Mock Fixtures
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_transport() -> MagicMock:
    """Transport that always succeeds and records messages."""
    transport = MagicMock()
    transport.is_configured = True
    transport.send_text = MagicMock(return_value=(True, '{"ok":true}'))
    return transport


@pytest.fixture
def mock_capture_factory() -> Callable[..., MagicMock]:
    """Factory for a capture collaborator returning the given frames in order."""
    def _create_mock(*frames: Any) -> MagicMock:
        capture = MagicMock()
        if len(frames) == 1:
            capture.capture_frame = MagicMock(return_value=frames[0])
        else:
            capture.capture_frame = MagicMock(side_effect=list(frames))
        return capture
    return _create_mock
