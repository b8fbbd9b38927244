#!/usr/bin/env python3
"""
Season Push Daemon

Watches the game client's monitor every 0.5 seconds and sends a Telegram
message when a season-mode match ends and when the lobby league news screen
appears (i.e. the client is back to waiting).

Flow:
- Startup: "ON" message, state WATCHING_END
- END sign (confirm button + REWARD label), 3 consecutive frames -> "end" message,
  state WAIT_LEAGUE_NEWS
- LEAGUE NEWS sign (title + subtitle) -> "waiting" message, back to WATCHING_END
- No league news within 5 minutes -> "waiting : timeout" message, back to WATCHING_END
- Ctrl+C / SIGTERM: "OFF" message, exit

Missing or broken templates abort startup (exit code 1).

Usage:
    python scripts/season_daemon.py [--interval SECONDS] [--screen INDEX] [--debug] [--no-notify]
"""

import argparse
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from season_push.screen_capture import ScreenCapture
from season_push.settings import WatchSettings, load_settings
from season_push.sign_detector import build_end_detector, build_league_news_detector
from season_push.telegram_notifier import Notifier, NullTransport, TelegramTransport
from season_push.template_store import TemplateLoadError, TemplateStore
from season_push.watch_loop import WatchContext, WatchLoop


def setup_logging(log_dir: Path, debug: bool = False) -> logging.Logger:
    """
    Configure logging with dual file output plus console.

    - logs/daemon_<timestamp>.log: this run
    - logs/current_daemon.log: always the latest run
    - logs/fatal.log: loop exceptions and fatal errors (appended)
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"daemon_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    current_log = log_dir / 'current_daemon.log'

    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.FileHandler(current_log, mode='w', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )

    fatal_handler = logging.FileHandler(log_dir / 'fatal.log', encoding='utf-8')
    fatal_handler.setFormatter(logging.Formatter('%(asctime)s %(message)s\n' + '-' * 120))
    fatal_logger = logging.getLogger('season_push.fatal')
    fatal_logger.addHandler(fatal_handler)
    # Loop exceptions already reach the console through the loop logger
    fatal_logger.propagate = False

    logger = logging.getLogger('SeasonDaemon')
    logger.info(f"Log file: {log_file}")
    return logger


def build_notifier(settings: WatchSettings, enabled: bool = True) -> Notifier:
    if enabled:
        transport = TelegramTransport(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            timeout=settings.telegram_timeout,
        )
    else:
        transport = NullTransport()
    return Notifier(
        transport,
        max_attempts=settings.telegram_retry_count,
        backoff_unit_ms=settings.telegram_backoff_unit_ms,
    )


def shutdown_watcher(loop, capture, store, notifier, settings, logger, timeout: float = 3.0) -> None:
    """
    Stop the worker, send OFF and release capture/templates.

    The session is only touched here once the worker has exited; a worker
    stuck in a retrying send keeps ownership and is abandoned (daemon thread).
    """
    # A second SIGTERM must not interrupt cleanup
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

    if loop.shutdown(timeout=timeout):
        loop.stop()
    else:
        logger.warning(f"Worker did not exit within {timeout:g}s")
    notifier.send(settings.msg_app_off)
    capture.close()
    store.close()
    logger.info("Season push exiting.")


def main():
    parser = argparse.ArgumentParser(
        description="Season mode end / league news watcher with Telegram push"
    )
    parser.add_argument(
        '--interval',
        type=float,
        default=None,
        help="Poll interval in seconds (default: 0.5 from config)"
    )
    parser.add_argument(
        '--screen',
        type=int,
        default=None,
        help="0-based monitor index to watch (default: 1 from config)"
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help="Enable debug logging (logs every detection reason, not just hits)"
    )
    parser.add_argument(
        '--no-notify',
        action='store_true',
        help="Log notifications instead of sending them"
    )

    args = parser.parse_args()

    settings = load_settings(poll_interval=args.interval, screen_index=args.screen)
    logger = setup_logging(settings.log_dir, debug=args.debug)
    notifier = build_notifier(settings, enabled=not args.no_notify)

    store = TemplateStore(settings.template_dir)
    try:
        end_detector = build_end_detector(settings, store)
        league_detector = build_league_news_detector(settings, store)
    except (TemplateLoadError, ValueError) as e:
        logger.error(f"STARTUP FAILED: {e}")
        logging.getLogger('season_push.fatal').error(f"Startup failed: {e}")
        store.close()
        sys.exit(1)

    capture = ScreenCapture(settings.screen_index, settings.capture_error_log_interval)
    context = WatchContext(settings=settings, notifier=notifier, logger=logger)
    loop = WatchLoop(context, capture, end_detector, league_detector)

    # SIGTERM behaves like Ctrl+C
    def _on_sigterm(signum, frame):
        raise KeyboardInterrupt
    signal.signal(signal.SIGTERM, _on_sigterm)

    loop.start()
    logger.info("Season push started.")
    notifier.send(settings.msg_app_on)

    worker = loop.start_worker()
    exit_code = 0
    try:
        while worker.is_alive():
            worker.join(0.5)
    except KeyboardInterrupt:
        print("\n\nStopped by user")
    except Exception as e:
        logger.exception(f"ERROR: {e}")
        exit_code = 1
    finally:
        shutdown_watcher(loop, capture, store, notifier, settings, logger)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
