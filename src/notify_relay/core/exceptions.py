from typing import Optional

from notify_relay.core.models.poll import PollOutcome
from notify_relay.core.models.problem import ProblemResponse


class RelayError(Exception):
    """Base exception for relay failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
    """
    def __init__(self, message: str, diagnostic: Optional[str] = None):
        self.message = message
        self.diagnostic = diagnostic
        super().__init__(message)


# Tracking URL extraction (proxy side)

class MalformedUpstreamResponse(RelayError):
    """Raised when the proxied upstream body is not a JSON object."""


class MissingTrackingField(RelayError):
    """Raised when the upstream JSON body carries no usable tracking URL.

    Attributes:
        field: Name of the field that was looked up
    """
    def __init__(self, field: str, diagnostic: Optional[str] = None):
        self.field = field
        super().__init__(f"Upstream response has no '{field}' field", diagnostic=diagnostic)


# Status checks

class MalformedStatusResponse(RelayError):
    """Raised when a status check body cannot be classified."""


class StatusNotComplete(RelayError):
    """Retry signal: a status check finished without terminal success.

    Attributes:
        outcome: Classified outcome of the attempt
    """
    def __init__(self, outcome: PollOutcome, message: str, diagnostic: Optional[str] = None):
        self.outcome = outcome
        super().__init__(message, diagnostic=diagnostic)


class RetryExhausted(RelayError):
    """Raised when a poll session used up its attempt budget.

    Attributes:
        tracking_url: URL that was polled
        attempts: Number of attempts made
        last_outcome: Outcome of the final attempt
    """
    def __init__(
        self,
        tracking_url: str,
        attempts: int,
        last_outcome: Optional[PollOutcome] = None,
    ):
        self.tracking_url = tracking_url
        self.attempts = attempts
        self.last_outcome = last_outcome
        message = f"No attempts left for {tracking_url} after {attempts} checks"
        super().__init__(message, diagnostic=str(last_outcome) if last_outcome else None)


# Transport

class TransportError(RelayError):
    """Raised when an outbound HTTP exchange fails.

    Attributes:
        url: Target URL of the failed request
        status: HTTP status to report to an inbound caller (502 / 504)
    """
    def __init__(
        self,
        message: str,
        url: str,
        status: int = 502,
        diagnostic: Optional[str] = None,
    ):
        self.url = url
        self.status = status
        super().__init__(message, diagnostic=diagnostic)

    def to_problem(self, instance: Optional[str] = None) -> ProblemResponse:
        title = "Upstream Timeout" if self.status == 504 else "Upstream Connection Error"
        return ProblemResponse(
            type="about:blank",
            title=title,
            status=self.status,
            detail=self.message,
            instance=instance,
        )


class NotificationDeliveryFailure(RelayError):
    """Raised when the notify endpoint rejects or never receives a notification.

    Attributes:
        notify_url: Configured webhook URL
        upstream_status: HTTP status returned by the webhook (if any)
    """
    def __init__(
        self,
        notify_url: str,
        upstream_status: Optional[int] = None,
        diagnostic: Optional[str] = None,
    ):
        self.notify_url = notify_url
        self.upstream_status = upstream_status
        if upstream_status is None:
            message = f"Notification to {notify_url} could not be sent"
        else:
            message = f"Notification to {notify_url} rejected with status {upstream_status}"
        super().__init__(message, diagnostic=diagnostic)
