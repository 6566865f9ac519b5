"""
SRT captions parsing → flat transcript text.
Drops cue numbers and timing lines, joins the remaining lines with spaces.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_TIMING_ARROW = "-->"


def _is_cue_number(line: str) -> bool:
    return line.isascii() and line.isdigit()


def parse_srt_to_text(content: str) -> str:
    """
    Convert SRT subtitle content to a single line of plain text.
    """
    parts = []
    for line in content.splitlines():
        stripped = line.strip().lstrip('\ufeff')
        if not stripped:
            continue
        if _TIMING_ARROW in stripped or _is_cue_number(stripped):
            continue
        parts.append(stripped)
    return ' '.join(parts)


def parse_srt_file(srt_path: Path) -> str:
    """Read an SRT file from disk and flatten it."""
    content = srt_path.read_text(encoding='utf-8', errors='replace')
    return parse_srt_to_text(content)
