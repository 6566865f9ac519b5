"""
Data models (plain dataclasses) for VideoSummaryBot.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from summarybot.core.constants import JobStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    chat_id: int
    url: str
    enqueued_at: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: str = JobStatus.SUBMITTED
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class CommandResult:
    returncode: int
    output: str = ""                 # stdout and stderr combined

    @property
    def ok(self) -> bool:
        return self.returncode == 0
