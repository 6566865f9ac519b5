"""
Standardised error handling for VideoSummaryBot.
"""

from summarybot.core.constants import ErrorCode, RETRYABLE_ERRORS


class JobError(Exception):
    """Raised when a job encounters a known error condition."""

    def __init__(self, code: str, message: str, retryable: bool | None = None):
        self.code = code
        self.message = message
        # auto-detect retryable from code if not explicitly set
        self.retryable = retryable if retryable is not None else (code in RETRYABLE_ERRORS)
        super().__init__(f"[{code}] {message}")

    def with_context(self, prefix: str) -> "JobError":
        """Return a copy of this error with a stage prefix on the message."""
        return JobError(self.code, f"{prefix}: {self.message}", self.retryable)


def cancelled_error(what: str = "operation") -> JobError:
    return JobError(ErrorCode.CANCELLED, f"{what} cancelled")
