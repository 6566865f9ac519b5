"""
Captions fetching via yt-dlp, with language fallback and rate-limit backoff.

Uses --write-subs and --write-auto-subs, SRT format, no media download.
Language groups are tried in order; each tag gets up to
MAX_EXTRACTION_ATTEMPTS runs of yt-dlp.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from summarybot.core.cancellation import CancelScope
from summarybot.core.constants import (
    ErrorCode, MAX_EXTRACTION_ATTEMPTS, BACKOFF_BASE_SEC, SUBTITLE_EXT,
    DEFAULT_PRIMARY_LANGUAGE, DEFAULT_SECONDARY_LANGUAGE, DEFAULT_YTDLP,
    NO_SUBTITLES_MARKERS, RATE_LIMIT_MARKERS,
)
from summarybot.core.error_codes import JobError, cancelled_error
from summarybot.core.models import CommandResult
from summarybot.core.security_utils import SubprocessRunner
from summarybot.core.subtitle_store import SubtitleStore
from summarybot.core.url_parse import build_watch_url

logger = logging.getLogger(__name__)


def language_group(language: str) -> list[str]:
    """A language plus its regional variants, e.g. ['en', 'en.*']."""
    return [language, f"{language}.*"]


def classify_output(result: CommandResult) -> str | None:
    """
    Map a yt-dlp run to an error code, or None for a clean exit.
    Only non-zero exits are classified.
    """
    if result.ok:
        return None
    lower = result.output.lower()
    if any(marker in lower for marker in NO_SUBTITLES_MARKERS):
        return ErrorCode.NO_SUBTITLES
    if any(marker in lower for marker in RATE_LIMIT_MARKERS):
        return ErrorCode.RATE_LIMITED
    return ErrorCode.EXTRACTION_FAILED


def wait_or_cancel(seconds: float, scope: CancelScope) -> bool:
    """Default backoff waiter. Returns True if cancelled."""
    return scope.wait(seconds)


@dataclass
class RetryState:
    """Position and backoff of one fetch_transcript call."""
    group_index: int = 0
    tag_index: int = 0
    attempt: int = 0
    backoff_sec: float = BACKOFF_BASE_SEC
    base_backoff_sec: float = BACKOFF_BASE_SEC
    last_error: Optional[JobError] = None

    def next_tag(self):
        self.tag_index += 1
        self.attempt = 0

    def next_group(self):
        self.group_index += 1
        self.tag_index = 0
        self.attempt = 0
        self.backoff_sec = self.base_backoff_sec

    def grow_backoff(self):
        self.backoff_sec *= 2


class TranscriptAcquirer:
    """Fetches transcripts by calling the local yt-dlp executable."""

    def __init__(self, store: SubtitleStore,
                 executable: str = DEFAULT_YTDLP,
                 runner=None,
                 languages: list[str] | None = None,
                 max_attempts: int = MAX_EXTRACTION_ATTEMPTS,
                 backoff_base_sec: float = BACKOFF_BASE_SEC,
                 waiter: Callable[[float, CancelScope], bool] = wait_or_cancel,
                 cookies_path: Path | None = None):
        self.store = store
        self.executable = executable
        self.runner = runner or SubprocessRunner()
        languages = languages or [DEFAULT_PRIMARY_LANGUAGE, DEFAULT_SECONDARY_LANGUAGE]
        self.groups = [language_group(lang) for lang in languages]
        self.max_attempts = max_attempts
        self.backoff_base_sec = backoff_base_sec
        self.waiter = waiter
        self.cookies_path = cookies_path

    # ── yt-dlp invocation ─────────────────────────────────────────────

    def build_args(self, video_id: str, tag: str) -> list[str]:
        args = [
            self.executable,
            "--skip-download",
            "--write-subs",
            "--write-auto-subs",
            "--sub-format", SUBTITLE_EXT,
            "--sub-langs", tag,
            "--no-playlist",
            "--ignore-config",
            "-o", str(self.store.work_dir / "%(id)s.%(ext)s"),
        ]
        if self.cookies_path and Path(self.cookies_path).exists():
            args.extend(["--cookies", str(self.cookies_path)])
        args.append(build_watch_url(video_id))
        return args

    def _download(self, video_id: str, tag: str, scope: CancelScope) -> str:
        """One yt-dlp run for one tag. Returns the transcript or raises JobError."""
        before = self.store.artifact_state(video_id)
        result = self.runner.run(self.build_args(video_id, tag), scope)
        if scope.cancelled:
            raise cancelled_error("transcript fetch")

        output = result.output.strip()
        code = classify_output(result)
        if code == ErrorCode.NO_SUBTITLES:
            raise JobError(code, f"no subtitles for language {tag}")
        if code == ErrorCode.RATE_LIMITED:
            raise JobError(code, f"rate limited by youtube: {output[:300]}")
        if code == ErrorCode.EXTRACTION_FAILED:
            raise JobError(code, f"yt-dlp failed (rc={result.returncode}): {output[:500]}")

        transcript = self.store.find_existing(video_id)
        if transcript:
            return transcript
        # Only files this run created or rewrote count as its output
        if self.store.artifact_state(video_id) != before:
            raise JobError(ErrorCode.EMPTY_TRANSCRIPT, "empty transcript returned")
        raise JobError(ErrorCode.NO_SUBTITLES, f"no subtitles downloaded for language {tag}")

    # ── Fallback / retry policy ───────────────────────────────────────

    def fetch_transcript(self, video_id: str, scope: CancelScope) -> str:
        """
        Return the transcript text for video_id.
        Raises JobError with the last retryable error once every
        language in every group has been exhausted. Non-retryable errors
        (extraction failure, empty transcript) abort immediately.
        The rate-limit backoff restarts at its base for each group.
        """
        state = RetryState(backoff_sec=self.backoff_base_sec,
                           base_backoff_sec=self.backoff_base_sec)

        while state.group_index < len(self.groups):
            group = self.groups[state.group_index]
            transcript = self._fetch_group(video_id, group, state, scope)
            if transcript:
                return transcript
            state.next_group()

        if state.last_error is not None:
            raise state.last_error
        raise JobError(ErrorCode.NO_SUBTITLES, "no subtitles downloaded")

    def _fetch_group(self, video_id: str, group: list[str],
                     state: RetryState, scope: CancelScope) -> str | None:
        while state.tag_index < len(group):
            tag = group[state.tag_index]

            # Reuse subtitles downloaded earlier
            existing = self.store.find_existing(video_id)
            if existing:
                logger.info("Reusing existing subtitles video_id=%s", video_id)
                return existing

            while state.attempt < self.max_attempts:
                if scope.cancelled:
                    raise cancelled_error("transcript fetch")
                state.attempt += 1
                logger.info("Fetching subtitles video_id=%s lang=%s attempt=%d",
                            video_id, tag, state.attempt)
                try:
                    return self._download(video_id, tag, scope)
                except JobError as e:
                    if e.code == ErrorCode.CANCELLED:
                        raise
                    state.last_error = e

                    if e.code == ErrorCode.RATE_LIMITED and state.attempt < self.max_attempts:
                        logger.warning("Rate limited video_id=%s lang=%s, retrying in %.1fs",
                                       video_id, tag, state.backoff_sec)
                        if self.waiter(state.backoff_sec, scope):
                            raise cancelled_error("transcript fetch")
                        state.grow_backoff()
                        continue

                    if e.retryable:
                        logger.info("Giving up on lang=%s video_id=%s: %s",
                                    tag, video_id, e.message)
                        break

                    raise

            state.next_tag()

        return None
