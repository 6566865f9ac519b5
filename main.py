#!/usr/bin/env python3
"""
VideoSummaryBot v1.0.0 — Main entry point.
Wires the transcript pipeline, the summarizer and the Telegram transport.
"""

import sys
import os
import logging
import signal
import traceback
from pathlib import Path
from datetime import datetime

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from summarybot.core.constants import APP_NAME, APP_VERSION, LOG_DIR
from summarybot.core.config import AppConfig, ConfigError
from summarybot.core.cancellation import CancelScope
from summarybot.core.diagnostics import find_ytdlp, get_diagnostics
from summarybot.core.subtitle_store import SubtitleStore
from summarybot.core.captions_fetch import TranscriptAcquirer
from summarybot.core.summarizer import OpenAISummarizer
from summarybot.core.summarize_video import SummarizeVideo
from summarybot.core.job_queue import JobQueueManager
from summarybot.bot.telegram_bot import TelegramBot

logger = logging.getLogger("summarybot")


def setup_logging(development: bool):
    """Log to stdout, and to LOG_DIR/app.log when the directory is writable."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / "app.log", encoding="utf-8"))
    except OSError:
        pass  # stdout only

    logging.basicConfig(
        level=logging.DEBUG if development else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
    # urllib3 logs full request URLs, including the bot token
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def check_prerequisites(config: AppConfig) -> str:
    """Check that yt-dlp is available; exit if not. Returns its resolved path."""
    ytdlp = find_ytdlp(config.get('ytdlp_path'))
    if not ytdlp:
        logger.error("yt-dlp not found (YT_DLP_PATH=%s). PATH = %s",
                     config.get('ytdlp_path'), os.environ.get("PATH", ""))
        sys.exit(1)

    info = get_diagnostics(ytdlp, config.work_dir)
    logger.info("yt-dlp found at: %s (version %s)", ytdlp, info["ytdlp_version"])
    if not info["work_dir"]["writable"]:
        logger.warning("Work dir %s is missing or not writable", config.work_dir)
    return ytdlp


def build_manager(config: AppConfig, ytdlp: str, bot: TelegramBot) -> JobQueueManager:
    work_dir = config.work_dir
    work_dir.mkdir(parents=True, exist_ok=True)

    store = SubtitleStore(
        work_dir,
        primary_language=config.get('primary_language'),
        secondary_language=config.get('secondary_language'),
    )
    acquirer = TranscriptAcquirer(
        store,
        executable=ytdlp,
        languages=[config.get('primary_language'), config.get('secondary_language')],
        cookies_path=config.cookies_path,
    )
    summarizer = OpenAISummarizer(
        config.openai_api_key,
        model=config.get('openai_model'),
        base_url=config.get('openai_base_url'),
        language=config.get('summary_language'),
    )
    use_case = SummarizeVideo(acquirer, summarizer, store,
                              language=config.get('summary_language'))
    return JobQueueManager(use_case, bot, task_interval_sec=config.task_interval_sec)


def main():
    config = AppConfig()
    setup_logging(config.is_development)

    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("Work dir: %s", config.work_dir)
    logger.info("=" * 60)

    try:
        config.require()
    except ConfigError as e:
        logger.critical("Configuration error: %s", e)
        sys.exit(1)

    ytdlp = check_prerequisites(config)

    run_scope = CancelScope()

    def _shutdown(signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        run_scope.cancel()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        bot = TelegramBot(config.telegram_token)
        manager = build_manager(config, ytdlp, bot)
        bot.manager = manager

        manager.start(run_scope)
        bot.run(run_scope)
        manager.stop(timeout=10)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        sys.exit(1)


if __name__ == "__main__":
    main()
