"""
Safe subprocess execution for VideoSummaryBot.
- Argument arrays only, shell=True is never used
- Combined stdout/stderr capture
- Cancellation-aware runner for the extraction tool
"""

import subprocess
import logging

from summarybot.core.cancellation import CancelScope
from summarybot.core.models import CommandResult

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SEC = 0.25


def _check_args(args):
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")


def run_subprocess(args: list[str], **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden.
    """
    _check_args(args)

    # Force shell=False: drop any caller-supplied value
    kwargs.pop('shell', None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.run(args, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300, **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        **kwargs,
    )


class SubprocessRunner:
    """
    Runs a command with stdout and stderr merged, killing it if the
    scope is cancelled. Returns a CommandResult; the caller inspects it.
    """

    def __init__(self, cwd=None):
        self.cwd = cwd

    def run(self, args: list[str], scope: CancelScope) -> CommandResult:
        _check_args(args)
        logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))

        proc = subprocess.Popen(
            args,
            shell=False,
            cwd=self.cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            errors='replace',
        )
        while True:
            try:
                output, _ = proc.communicate(timeout=_POLL_INTERVAL_SEC)
                return CommandResult(returncode=proc.returncode, output=output or "")
            except subprocess.TimeoutExpired:
                if scope.cancelled:
                    proc.kill()
                    output, _ = proc.communicate()
                    logger.info("Subprocess killed on cancellation pid=%s", proc.pid)
                    return CommandResult(returncode=proc.returncode, output=output or "")
