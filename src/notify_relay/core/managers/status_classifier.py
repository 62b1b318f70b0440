"""Classification of assembly status-check bodies.

The status endpoint answers with a JSON object whose `ok` field names the
assembly state. Only three states are known; everything else is reported
as a terminal failure (unknown state) and left to the poll scheduler to
decide what to do with it.
"""

import json
from typing import Any, Dict

from notify_relay.core.exceptions import MalformedStatusResponse
from notify_relay.core.models.poll import PollOutcome, StatusClassification

STATUS_FIELD = "ok"

STATUS_OUTCOMES: Dict[str, PollOutcome] = {
    "ASSEMBLY_COMPLETED": PollOutcome.terminal_success,
    "ASSEMBLY_UPLOADING": PollOutcome.pending,
    "ASSEMBLY_EXECUTING": PollOutcome.pending,
}


def classify(body: str | bytes) -> StatusClassification:
    """Map a raw status body to a `StatusClassification`.

    Raises:
        MalformedStatusResponse: body is not a JSON object or its status field
            is missing or falsy.
    """
    try:
        parsed: Any = json.loads(body)
    except (ValueError, TypeError) as exc:
        raise MalformedStatusResponse(
            "Status response is not valid JSON", diagnostic=str(exc)
        ) from exc

    if not isinstance(parsed, dict):
        raise MalformedStatusResponse(
            "Status response is not a JSON object",
            diagnostic=type(parsed).__name__,
        )

    status = parsed.get(STATUS_FIELD)
    if not status:
        raise MalformedStatusResponse(f"No {STATUS_FIELD} field found in status response")

    status = str(status)
    outcome = STATUS_OUTCOMES.get(status, PollOutcome.terminal_failure)
    return StatusClassification(outcome=outcome, status=status, body=parsed)
