"""
Shared constants for VideoSummaryBot.
Imported by every other module.
"""

import os
import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "VideoSummaryBot"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

DEFAULT_WORK_DIR = pathlib.Path(os.getcwd())
LOG_DIR = HOME / ".local" / "state" / APP_NAME / "logs"
CONFIG_ENV_VAR = "SUMMARYBOT_CONFIG"

# ── Job status values ─────────────────────────────────────────────────
class JobStatus:
    SUBMITTED = "SUBMITTED"
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

# ── Admission outcomes ────────────────────────────────────────────────
class Admission:
    QUEUED = "QUEUED"
    REJECTED = "REJECTED"
    QUEUE_FULL = "QUEUE_FULL"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Identifier resolution
    INVALID_INPUT = "ERR_INVALID_INPUT"
    UNSUPPORTED_HOST = "ERR_UNSUPPORTED_HOST"

    # Transcript acquisition
    NO_SUBTITLES = "ERR_NO_SUBTITLES"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    EMPTY_TRANSCRIPT = "ERR_EMPTY_TRANSCRIPT"
    EXTRACTION_FAILED = "ERR_EXTRACTION_FAILED"
    CANCELLED = "ERR_CANCELLED"

    # Admission
    QUEUE_FULL = "ERR_QUEUE_FULL"

    # Generation
    SUMMARIZER_FAILED = "ERR_SUMMARIZER_FAILED"

# Transcript acquisition moves on to the next language on these
RETRYABLE_ERRORS = {
    ErrorCode.RATE_LIMITED,
    ErrorCode.NO_SUBTITLES,
}

# ── Queue / worker ────────────────────────────────────────────────────
QUEUE_CAPACITY = 200
JOB_TIMEOUT_SEC = 180
DEFAULT_TASK_INTERVAL_SEC = 3
QUEUE_POLL_SEC = 0.5

# ── Transcript acquisition ────────────────────────────────────────────
MAX_EXTRACTION_ATTEMPTS = 3
BACKOFF_BASE_SEC = 5.0
SUBTITLE_EXT = "srt"
DEFAULT_PRIMARY_LANGUAGE = "ru"
DEFAULT_SECONDARY_LANGUAGE = "en"
DEFAULT_YTDLP = "yt-dlp"

NO_SUBTITLES_MARKERS = ("no subtitles", "subtitles for language")
RATE_LIMIT_MARKERS = ("too many requests", "http error 429")

# ── Video site ────────────────────────────────────────────────────────
YOUTUBE_HOSTS = frozenset({
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
})
YOUTUBE_SHORT_HOST = "youtu.be"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
LINK_HINT = "youtu"

# ── Summarizer ────────────────────────────────────────────────────────
OPENAI_API_BASE = "https://api.openai.com/v1"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
OPENAI_TEMPERATURE = 0.3
DEFAULT_SUMMARY_LANGUAGE = "Russian"

PROMPT_TEMPLATE = (
    "Summarize the following video in {language}. Use Telegram Markdown "
    "(asterisks for bold, underscores for italics, backticks for inline code) "
    "and structure the summary into logical paragraphs or lists as needed."
    "\n\n{transcript}"
)
SYSTEM_PROMPT_TEMPLATE = (
    "You are a concise assistant responding in {language}. Format the answer "
    "using Telegram Markdown (bold with *, italic with _, code with `) and feel "
    "free to use numbered or bulleted lists."
)

# ── Telegram ──────────────────────────────────────────────────────────
TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_POLL_TIMEOUT_SEC = 30
TELEGRAM_MAX_MESSAGE_LEN = 4096

# ── User-facing notices ───────────────────────────────────────────────
class Messages:
    GUIDANCE = "Please send a link to a YouTube video."
    QUEUED = "Link added to the queue. Position: {position}"
    QUEUE_FULL = "The queue is full, please try again later."
    PROCESSING = "Processing started... This may take a few minutes."
    FAILED = "Sorry, the video could not be summarized."
