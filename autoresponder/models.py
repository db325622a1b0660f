"""
Data models for the Vacation Responder
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class LabelStatus(str, Enum):
    """How a label id was obtained"""
    CREATED = "created"
    FOUND = "found"


class OutcomeStatus(str, Enum):
    """Result of handling a single candidate message"""
    REPLIED = "replied"
    SKIPPED = "skipped"          # malformed message, nothing sent
    SEND_FAILED = "send_failed"
    LABEL_FAILED = "label_failed"  # reply sent, label not applied
    FAILED = "failed"


class Reply(BaseModel):
    """A composed vacation reply, never persisted"""
    recipient: str
    subject: str
    in_reply_to: str
    references: str
    body: str
    sender: str = "me"


class LabelResolution(BaseModel):
    """Tagged result of a create-or-get label call"""
    label_id: str
    name: str
    status: LabelStatus

    @property
    def created(self) -> bool:
        return self.status == LabelStatus.CREATED


class MessageOutcome(BaseModel):
    """What happened to one candidate message during a run"""
    message_id: str
    status: OutcomeStatus
    recipient: Optional[str] = None
    subject: Optional[str] = None
    error: Optional[str] = None


class TriageReport(BaseModel):
    """Summary of one triage run"""
    run_id: str
    label_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    candidates: int = 0
    outcomes: List[MessageOutcome] = Field(default_factory=list)
    interrupted: bool = False
    error: Optional[str] = None

    # each outcome is counted exactly once: replied (a reply went out),
    # skipped, or failed (no reply went out)
    @property
    def replied_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status in (OutcomeStatus.REPLIED, OutcomeStatus.LABEL_FAILED))

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.SKIPPED)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status in (OutcomeStatus.SEND_FAILED, OutcomeStatus.FAILED))


class TriggerResponse(BaseModel):
    """Acknowledgment returned by the trigger endpoint"""
    status: str  # started, already_running
    message: str
    label_name: str


class ResponderStatus(BaseModel):
    """Current status of the responder"""
    is_running: bool
    tick_in_progress: bool = False
    label_name: str
    label_id: Optional[str] = None
    runs_completed: int = 0
    started_at: Optional[datetime] = None
    last_report: Optional[TriageReport] = None
    history: Dict[str, Any] = Field(default_factory=dict)
    config: Dict[str, Any] = Field(default_factory=dict)
