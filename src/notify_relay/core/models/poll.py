import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PollOutcome(StrEnum):
    pending = "pending"
    terminal_success = "terminal_success"
    terminal_failure = "terminal_failure"  # unknown assembly state
    malformed = "malformed"
    transport_error = "transport_error"


class SessionState(StrEnum):
    pending = "pending"
    delivered = "delivered"
    exhausted = "exhausted"


TERMINAL_STATES = {SessionState.delivered, SessionState.exhausted}


class StatusClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: PollOutcome
    status: str
    body: Dict[str, Any]


class PollAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    attempt_number: int = Field(ge=1)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    outcome: PollOutcome
    detail: Optional[str] = None


class PollSession(BaseModel):
    """One bounded polling run against a single tracking URL.

    Notes:
    - A session is created per intercepted proxy response and never shared.
    - `attempts` only grows; its length never exceeds `max_attempts`.
    - `state` leaves `pending` exactly once, to `delivered` or `exhausted`.
    """

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    tracking_url: str
    max_attempts: int = Field(ge=1)
    interval_ms: int = Field(gt=0)
    attempts: List[PollAttempt] = Field(default_factory=list)
    state: SessionState = SessionState.pending

    @property
    def attempts_made(self) -> int:
        return len(self.attempts)

    @property
    def attempts_left(self) -> int:
        return self.max_attempts - len(self.attempts)

    def is_in_terminal_state(self) -> bool:
        return self.state in TERMINAL_STATES

    def record(self, outcome: PollOutcome, detail: Optional[str] = None) -> PollAttempt:
        if self.is_in_terminal_state():
            raise RuntimeError(f"session {self.session_id} already {self.state}")
        if self.attempts_left <= 0:
            raise RuntimeError(f"session {self.session_id} has no attempts left")
        attempt = PollAttempt(
            attempt_number=len(self.attempts) + 1,
            outcome=outcome,
            detail=detail,
        )
        self.attempts.append(attempt)
        return attempt

    def finish(self, state: SessionState) -> None:
        if state not in TERMINAL_STATES:
            raise ValueError(f"{state} is not a terminal state")
        if self.is_in_terminal_state():
            raise RuntimeError(f"session {self.session_id} already {self.state}")
        self.state = state


class NotificationPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw_status_body: str
    signature: str

    def as_form(self) -> Dict[str, str]:
        return {"transloadit": self.raw_status_body, "signature": self.signature}
