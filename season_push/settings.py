"""
Immutable snapshot of config.py values for one watcher process.

config.py is the single source of defaults (with config_local.py overrides).
load_settings() copies those values into a frozen WatchSettings so the worker
never reads module globals after startup, and tests can build their own.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

Rect = Tuple[float, float, float, float]


@dataclass(frozen=True)
class WatchSettings:
    """All fixed knobs the watcher needs."""

    # Timing
    poll_interval: float = 0.5
    confirm_count: int = 3
    league_confirm_count: int = 1
    wait_league_news_timeout_ms: int = 300_000
    capture_error_log_interval: float = 2.0
    loop_error_log_interval: float = 2.0
    screen_index: int = 1

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_timeout: float = 10.0
    telegram_retry_count: int = 5
    telegram_backoff_unit_ms: int = 250

    # Paths
    template_dir: Path = field(default_factory=lambda: Path("templates") / "ground_truth")
    log_dir: Path = field(default_factory=lambda: Path("logs"))

    # END sign
    end_confirm_roi: Rect = (0.44, 0.905, 0.14, 0.07)
    end_reward_roi: Rect = (0.33, 0.47, 0.34, 0.16)
    end_confirm_template: str = "tpl_end_confirm_gray.png"
    end_reward_template: str = "tpl_end_reward_gray.png"
    end_confirm_threshold: float = 0.93
    end_reward_threshold: float = 0.88

    # LEAGUE NEWS sign
    league_title_roi: Rect = (0.42, 0.17, 0.26, 0.12)
    league_subtitle_roi: Rect = (0.40, 0.23, 0.30, 0.10)
    league_next_roi: Rect = (0.44, 0.70, 0.18, 0.12)
    league_title_template: str = "tpl_lobby_title_gray_new.png"
    league_subtitle_template: str = "tpl_lobby_subtitle_gray_new.png"
    league_next_template: str = "tpl_lobby_next_gray.png"
    league_title_threshold: float = 0.93
    league_subtitle_threshold: float = 0.93
    league_next_threshold: float = 0.90
    league_require_next: bool = False

    # Messages
    msg_app_on: str = "마구알림 ON"
    msg_app_off: str = "마구알림 OFF"
    msg_end_detected: str = "경기종료"
    msg_league_detected: str = "대기모드 전환"
    msg_wait_timeout: str = "대기모드 전환 : 타임아웃"


def load_settings(**overrides) -> WatchSettings:
    """
    Build WatchSettings from config.py.

    Args:
        **overrides: Field values that win over config.py (e.g. from CLI flags)

    Returns:
        WatchSettings snapshot
    """
    import config

    values = dict(
        poll_interval=config.POLL_INTERVAL,
        confirm_count=config.CONFIRM_COUNT,
        league_confirm_count=config.LEAGUE_CONFIRM_COUNT,
        wait_league_news_timeout_ms=config.WAIT_LEAGUE_NEWS_TIMEOUT_MS,
        capture_error_log_interval=config.CAPTURE_ERROR_LOG_INTERVAL,
        loop_error_log_interval=config.LOOP_ERROR_LOG_INTERVAL,
        screen_index=config.SCREEN_INDEX,
        telegram_bot_token=config.TELEGRAM_BOT_TOKEN,
        telegram_chat_id=config.TELEGRAM_CHAT_ID,
        telegram_timeout=config.TELEGRAM_TIMEOUT,
        telegram_retry_count=config.TELEGRAM_RETRY_COUNT,
        telegram_backoff_unit_ms=config.TELEGRAM_BACKOFF_UNIT_MS,
        template_dir=Path(config.TEMPLATE_DIR),
        log_dir=Path(config.LOG_DIR),
        end_confirm_roi=tuple(config.END_CONFIRM_ROI),
        end_reward_roi=tuple(config.END_REWARD_ROI),
        end_confirm_template=config.END_CONFIRM_TEMPLATE,
        end_reward_template=config.END_REWARD_TEMPLATE,
        end_confirm_threshold=config.END_CONFIRM_THRESHOLD,
        end_reward_threshold=config.END_REWARD_THRESHOLD,
        league_title_roi=tuple(config.LEAGUE_TITLE_ROI),
        league_subtitle_roi=tuple(config.LEAGUE_SUBTITLE_ROI),
        league_next_roi=tuple(config.LEAGUE_NEXT_ROI),
        league_title_template=config.LEAGUE_TITLE_TEMPLATE,
        league_subtitle_template=config.LEAGUE_SUBTITLE_TEMPLATE,
        league_next_template=config.LEAGUE_NEXT_TEMPLATE,
        league_title_threshold=config.LEAGUE_TITLE_THRESHOLD,
        league_subtitle_threshold=config.LEAGUE_SUBTITLE_THRESHOLD,
        league_next_threshold=config.LEAGUE_NEXT_THRESHOLD,
        league_require_next=config.LEAGUE_REQUIRE_NEXT,
        msg_app_on=config.MSG_APP_ON,
        msg_app_off=config.MSG_APP_OFF,
        msg_end_detected=config.MSG_END_DETECTED,
        msg_league_detected=config.MSG_LEAGUE_DETECTED,
        msg_wait_timeout=config.MSG_WAIT_TIMEOUT,
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return WatchSettings(**values)
