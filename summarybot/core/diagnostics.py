"""
Diagnostics: tool version detection and system checks.
"""

import os
import shutil
import logging
from pathlib import Path

from summarybot.core.security_utils import run_subprocess_capture
from summarybot.core.constants import DEFAULT_YTDLP

logger = logging.getLogger(__name__)


def find_ytdlp(ytdlp_path: str = DEFAULT_YTDLP) -> str | None:
    """Resolve the yt-dlp executable: explicit path first, then PATH lookup."""
    candidate = Path(ytdlp_path).expanduser()
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate.resolve())
    return shutil.which(ytdlp_path)


def get_ytdlp_version(ytdlp_path: str = DEFAULT_YTDLP) -> str:
    """Return yt-dlp version string, or error message."""
    try:
        result = run_subprocess_capture([ytdlp_path, "--version"], timeout=10)
        if result.returncode == 0:
            return result.stdout.strip()
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def check_work_dir(work_dir: Path) -> dict:
    """Check that the subtitle working directory exists and is writable."""
    return {
        "path": str(work_dir),
        "exists": work_dir.is_dir(),
        "writable": work_dir.is_dir() and os.access(work_dir, os.W_OK),
    }


def get_diagnostics(ytdlp_path: str, work_dir: Path) -> dict:
    """Gather all diagnostic information."""
    return {
        "ytdlp_path": find_ytdlp(ytdlp_path),
        "ytdlp_version": get_ytdlp_version(ytdlp_path),
        "work_dir": check_work_dir(work_dir),
    }
