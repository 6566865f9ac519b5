"""
SummarizeVideo: URL → transcript → summary, with artifact cleanup on every exit.
"""

import logging

from summarybot.core.cancellation import CancelScope
from summarybot.core.constants import (
    ErrorCode, PROMPT_TEMPLATE, DEFAULT_SUMMARY_LANGUAGE,
)
from summarybot.core.error_codes import JobError
from summarybot.core.url_parse import resolve_video_id

logger = logging.getLogger(__name__)


def build_prompt(transcript: str, language: str = DEFAULT_SUMMARY_LANGUAGE) -> str:
    return PROMPT_TEMPLATE.format(language=language, transcript=transcript)


class SummarizeVideo:
    """
    Orchestrates transcript retrieval and summary generation.

    `transcripts` needs fetch_transcript(video_id, scope), `summarizer` needs
    summarize(prompt, scope), `store` needs cleanup(video_id).
    """

    def __init__(self, transcripts, summarizer, store,
                 language: str = DEFAULT_SUMMARY_LANGUAGE):
        self.transcripts = transcripts
        self.summarizer = summarizer
        self.store = store
        self.language = language

    def execute(self, video_url: str, scope: CancelScope) -> str:
        try:
            video_id = resolve_video_id(video_url)
        except JobError as e:
            logger.error("Failed to parse video url error=%s", e)
            raise

        # Subtitle files are removed whatever happens below
        try:
            logger.info("Fetching transcript video_id=%s", video_id)
            try:
                transcript = self.transcripts.fetch_transcript(video_id, scope)
            except JobError as e:
                logger.error("Failed to fetch transcript video_id=%s error=%s", video_id, e)
                raise e.with_context("fetch transcript") from e

            prompt = build_prompt(transcript, self.language)
            logger.info("Sending transcript to summarizer video_id=%s length=%d",
                        video_id, len(transcript))

            try:
                summary = self.summarizer.summarize(prompt, scope)
            except JobError as e:
                logger.error("Failed to summarize video video_id=%s error=%s", video_id, e)
                raise e.with_context("summarize video") from e
            except Exception as e:
                logger.error("Failed to summarize video video_id=%s error=%s", video_id, e)
                raise JobError(ErrorCode.SUMMARIZER_FAILED, f"summarize video: {e}") from e

            logger.info("Summary generated video_id=%s", video_id)
            return summary
        finally:
            self._cleanup_subtitles(video_id)

    def _cleanup_subtitles(self, video_id: str):
        try:
            self.store.cleanup(video_id)
        except Exception as e:
            logger.error("Subtitle cleanup failed video_id=%s error=%s", video_id, e)
