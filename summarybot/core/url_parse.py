"""
YouTube URL parsing and validation.
"""

import re
from urllib.parse import urlsplit, parse_qs

from summarybot.core.constants import (
    YOUTUBE_HOSTS, YOUTUBE_SHORT_HOST, YOUTUBE_WATCH_URL, LINK_HINT,
)
from summarybot.core.error_codes import JobError, ErrorCode

_HOSTNAME_RE = re.compile(r"[a-z0-9.-]+")


def resolve_video_id(url: str) -> str:
    """
    Resolve a free-form YouTube URL to its video identifier.
    Raises JobError(INVALID_INPUT) or JobError(UNSUPPORTED_HOST).
    """
    raw = (url or "").strip()
    if not raw:
        raise JobError(ErrorCode.INVALID_INPUT, "empty video url")

    if not raw.startswith(("http://", "https://")):
        raw = "https://" + raw

    try:
        parsed = urlsplit(raw)
        host = (parsed.hostname or "").lower()
    except ValueError:
        raise JobError(ErrorCode.INVALID_INPUT, f"malformed video url: {url}")

    if not _HOSTNAME_RE.fullmatch(host):
        raise JobError(ErrorCode.INVALID_INPUT, f"malformed video url: {url}")

    path = parsed.path

    if host == YOUTUBE_SHORT_HOST:
        video_id = path.strip("/")
        if not video_id:
            raise JobError(ErrorCode.INVALID_INPUT, f"missing video id: {url}")
        return video_id

    if host not in YOUTUBE_HOSTS:
        raise JobError(ErrorCode.UNSUPPORTED_HOST, f"unsupported video host: {host or url}")

    if path in ("/watch", "/", ""):
        v = parse_qs(parsed.query).get("v", [""])[0]
        if not v:
            raise JobError(ErrorCode.INVALID_INPUT, f"missing 'v' parameter: {url}")
        return v

    if path.startswith("/shorts/"):
        video_id = path[len("/shorts/"):].strip("/")
        if not video_id:
            raise JobError(ErrorCode.INVALID_INPUT, f"missing shorts id: {url}")
        return video_id

    # Anything else on a known host: last non-empty path segment
    segments = [s for s in path.split("/") if s]
    if segments:
        return segments[-1]

    raise JobError(ErrorCode.INVALID_INPUT, f"no video id in url: {url}")


def looks_like_video_link(text: str) -> bool:
    """Quick admission check: does the text mention the video site at all."""
    return LINK_HINT in (text or "").lower()


def build_watch_url(video_id: str) -> str:
    return YOUTUBE_WATCH_URL.format(video_id=video_id)
