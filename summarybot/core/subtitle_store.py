"""
Subtitle artifact store: lookup and cleanup of files written by yt-dlp.

Artifacts live in the working directory as <video_id>.<lang>.<ext>.
"""

import glob
import logging
from pathlib import Path

from summarybot.core.captions_parse import parse_srt_file
from summarybot.core.constants import (
    SUBTITLE_EXT, DEFAULT_PRIMARY_LANGUAGE, DEFAULT_SECONDARY_LANGUAGE,
)

logger = logging.getLogger(__name__)


def _has_language_tag(name: str, language: str) -> bool:
    lower = name.lower()
    return f".{language}." in lower or f".{language}-" in lower


def order_artifacts(paths: list[Path], primary: str, secondary: str) -> list[Path]:
    """
    Sort artifacts by preference: primary language first, then secondary,
    then the rest in lexicographic order.
    """
    def rank(path: Path):
        if _has_language_tag(path.name, primary):
            return (0, path.name)
        if _has_language_tag(path.name, secondary):
            return (1, path.name)
        return (2, path.name)
    return sorted(paths, key=rank)


def choose_artifact(paths: list[Path], primary: str, secondary: str) -> Path | None:
    ordered = order_artifacts(paths, primary, secondary)
    return ordered[0] if ordered else None


class SubtitleStore:
    """On-disk cache of downloaded subtitles, keyed by video id."""

    def __init__(self, work_dir: Path,
                 primary_language: str = DEFAULT_PRIMARY_LANGUAGE,
                 secondary_language: str = DEFAULT_SECONDARY_LANGUAGE,
                 ext: str = SUBTITLE_EXT):
        self.work_dir = Path(work_dir)
        self.primary_language = primary_language
        self.secondary_language = secondary_language
        self.ext = ext

    def artifacts(self, video_id: str) -> list[Path]:
        pattern = f"{glob.escape(video_id)}.*.{self.ext}"
        return sorted(self.work_dir.glob(pattern))

    def artifact_state(self, video_id: str) -> dict[str, tuple[int, int]]:
        """Name -> (size, mtime_ns) of every artifact, to detect what a run wrote."""
        state = {}
        for path in self.artifacts(video_id):
            try:
                st = path.stat()
            except OSError:
                continue
            state[path.name] = (st.st_size, st.st_mtime_ns)
        return state

    def find_existing(self, video_id: str) -> str | None:
        """
        Return the flattened transcript of the preferred artifact.
        Returns None when there is none, or when that file is unreadable or empty.
        """
        path = choose_artifact(self.artifacts(video_id),
                               self.primary_language, self.secondary_language)
        if path is None:
            return None
        try:
            text = parse_srt_file(path)
        except OSError as e:
            logger.warning("Failed to read subtitles %s: %s", path, e)
            return None
        if not text:
            logger.debug("Subtitle file %s is empty", path)
            return None
        return text

    def cleanup(self, video_id: str) -> list[Path]:
        """
        Delete every artifact for video_id, any language or extension.
        Best-effort: failures are logged, never raised.
        """
        removed = []
        pattern = f"{glob.escape(video_id)}.*.*"
        for path in sorted(self.work_dir.glob(pattern)):
            try:
                path.unlink()
                removed.append(path)
                logger.info("Removed subtitle file file=%s", path)
            except OSError as e:
                logger.error("Failed to remove subtitle file file=%s error=%s", path, e)
        return removed
