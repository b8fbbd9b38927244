"""
Configuration loader - loads parameters from config_local.py or environment variables.

Usage:
    from config import POLL_INTERVAL, CONFIRM_COUNT

Setup:
    1. Copy config_local.py.example to config_local.py
    2. Fill in your Telegram bot token and chat id in config_local.py
    3. Optionally override any default parameters
    4. config_local.py is gitignored so your token stays safe
"""
import os
from pathlib import Path

# =============================================================================
# DEFAULT PARAMETERS (can be overridden in config_local.py)
# =============================================================================

# Telegram (sendMessage). Leave empty to fall back to environment variables.
TELEGRAM_BOT_TOKEN = ""
TELEGRAM_CHAT_ID = ""
TELEGRAM_TIMEOUT = 10.0            # Seconds per HTTP call
TELEGRAM_RETRY_COUNT = 5           # Total attempts per message (never fewer than 2)
TELEGRAM_BACKOFF_UNIT_MS = 250     # Backoff before retry N is UNIT * N ms

# Watch loop timing
POLL_INTERVAL = 0.5                # Seconds between captures
CONFIRM_COUNT = 3                  # Consecutive END hits required
LEAGUE_CONFIRM_COUNT = 1           # Consecutive LEAGUE NEWS hits required (1 = instant)
WAIT_LEAGUE_NEWS_TIMEOUT_MS = 300_000  # 5 minutes in WAIT_LEAGUE_NEWS before falling back

# Rate limit for repeated error logs (seconds)
CAPTURE_ERROR_LOG_INTERVAL = 2.0
LOOP_ERROR_LOG_INTERVAL = 2.0

# Capture
# 0-based monitor index. 1 = secondary monitor (where the game client runs).
# Falls back to the primary monitor when the index does not exist.
SCREEN_INDEX = 1

# Paths
BASE_DIR = Path(__file__).resolve().parent
TEMPLATE_DIR = BASE_DIR / "templates" / "ground_truth"
LOG_DIR = BASE_DIR / "logs"

# =============================================================================
# SIGN DEFINITIONS
# =============================================================================
# ROIs are normalized (x, y, w, h) fractions of the captured frame.
# Templates are grayscale PNGs in TEMPLATE_DIR, cropped at the tuning resolution.

# END sign (season result screen): Confirm button + REWARD label bar
END_CONFIRM_ROI = (0.44, 0.905, 0.14, 0.07)   # Bottom "confirm" button
END_REWARD_ROI = (0.33, 0.47, 0.34, 0.16)     # REWARD label plus part of the frame above it
END_CONFIRM_TEMPLATE = "tpl_end_confirm_gray.png"
END_REWARD_TEMPLATE = "tpl_end_reward_gray.png"
# Tuned between 0.86 and 0.93 over time - adjust per capture setup
END_CONFIRM_THRESHOLD = 0.93
END_REWARD_THRESHOLD = 0.88

# LEAGUE NEWS sign (lobby "league result - all stadium news"), tuned at 2048x1152
LEAGUE_TITLE_ROI = (0.42, 0.17, 0.26, 0.12)
LEAGUE_SUBTITLE_ROI = (0.40, 0.23, 0.30, 0.10)
LEAGUE_NEXT_ROI = (0.44, 0.70, 0.18, 0.12)
LEAGUE_TITLE_TEMPLATE = "tpl_lobby_title_gray_new.png"
LEAGUE_SUBTITLE_TEMPLATE = "tpl_lobby_subtitle_gray_new.png"
LEAGUE_NEXT_TEMPLATE = "tpl_lobby_next_gray.png"
LEAGUE_TITLE_THRESHOLD = 0.93
LEAGUE_SUBTITLE_THRESHOLD = 0.93
LEAGUE_NEXT_THRESHOLD = 0.90
LEAGUE_REQUIRE_NEXT = False        # Also require the "next" button gate

# =============================================================================
# NOTIFICATION TEXTS
# =============================================================================
MSG_APP_ON = "마구알림 ON"
MSG_APP_OFF = "마구알림 OFF"
MSG_END_DETECTED = "경기종료"
MSG_LEAGUE_DETECTED = "대기모드 전환"
MSG_WAIT_TIMEOUT = "대기모드 전환 : 타임아웃"

# =============================================================================
# LOAD LOCAL OVERRIDES
# =============================================================================

# Try to load from config_local.py first (for local development)
try:
    from config_local import *
    print("Loaded config from config_local.py")
except ImportError:
    pass

# Fall back to environment variables for secrets
if not TELEGRAM_BOT_TOKEN:
    TELEGRAM_BOT_TOKEN = os.environ.get('TELEGRAM_BOT_TOKEN', '')
if not TELEGRAM_CHAT_ID:
    TELEGRAM_CHAT_ID = os.environ.get('TELEGRAM_CHAT_ID', '')
