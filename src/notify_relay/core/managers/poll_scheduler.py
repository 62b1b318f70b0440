"""PollScheduler: bounded, fixed-interval polling of assembly tracking URLs.

Responsibilities:
1. Start one independent session (asyncio task) per tracking URL handed in.
2. Check the status immediately, then every `interval` until terminal success
   or until the attempt budget is spent.
3. Hand the completed status body to the NotificationDispatcher exactly once.
4. Track running sessions so they can be joined or shut down.

Every outcome other than terminal success (pending, unknown state, malformed
body, transport error) consumes one attempt and is retried.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Set

from notify_relay.core.config import RelayConfig
from notify_relay.core.exceptions import (
    MalformedStatusResponse,
    RetryExhausted,
    StatusNotComplete,
    TransportError,
)
from notify_relay.core.interfaces.http_client import HttpClientPort
from notify_relay.core.interfaces.retry import RetryPort
from notify_relay.core.logging_config import correlation_id_var
from notify_relay.core.managers.notification_dispatcher import NotificationDispatcher
from notify_relay.core.managers.status_classifier import classify
from notify_relay.core.models.poll import PollOutcome, PollSession, SessionState
from notify_relay.core.settings import logger

PENDING_MESSAGES = {
    "ASSEMBLY_UPLOADING": "%s is still uploading.",
    "ASSEMBLY_EXECUTING": "%s is still executing.",
}


class PollScheduler:
    """Drives PollSessions against tracking URLs.

    Attributes:
        config: Immutable relay configuration (interval, attempt budget, timeouts)
    """

    def __init__(
        self,
        http_client: HttpClientPort,
        dispatcher: NotificationDispatcher,
        config: RelayConfig,
        retry_port: RetryPort,
    ) -> None:
        self._http = http_client
        self._dispatcher = dispatcher
        self.config = config
        self._retry = retry_port
        self._sessions: Set[asyncio.Task] = set()
        self._shutdown = False

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def new_session(self, tracking_url: str) -> PollSession:
        return PollSession(
            tracking_url=tracking_url,
            max_attempts=self.config.poll_max_attempts,
            interval_ms=self.config.poll_interval_ms,
        )

    def start(self, tracking_url: str) -> Optional[PollSession]:
        """Schedule a new session in the background; None once shut down."""
        if self._shutdown:
            logger.warning("[poll:start] shutting down, not polling %s", tracking_url)
            return None
        session = self.new_session(tracking_url)
        logger.debug(
            "[poll:start] scheduling session=%s url=%s", session.session_id, tracking_url
        )
        task = asyncio.create_task(self.run(session))
        self._sessions.add(task)
        task.add_done_callback(self._sessions.discard)
        return session

    async def run(self, session: PollSession) -> PollSession:
        """Poll until delivered or exhausted; never raises for remote failures."""
        # Tasks run in a copied context, so this only tags this session's logs
        correlation_id_var.set(session.session_id)
        try:
            body = await self._retry.execute(
                self._check,
                session,
                attempts=session.max_attempts,
                wait=session.interval_ms / 1000.0,
                exception_types=(StatusNotComplete,),
            )
        except StatusNotComplete as exc:
            session.finish(SessionState.exhausted)
            exhausted = RetryExhausted(session.tracking_url, session.attempts_made, exc.outcome)
            logger.info("[poll:exhausted] %s, giving up.", exhausted.message)
            return session
        except Exception as exc:
            logger.error(
                "[poll:error] unexpected failure session=%s url=%s error=%s",
                session.session_id,
                session.tracking_url,
                exc,
            )
            if not session.is_in_terminal_state():
                session.finish(SessionState.exhausted)
            return session

        logger.debug("[poll:completed] %s valid response, notifying.", session.tracking_url)
        try:
            await self._dispatcher.deliver(body)
        except Exception as exc:
            logger.error(
                "[notify:error] unexpected failure session=%s url=%s error=%s",
                session.session_id,
                self.config.notify_url,
                exc,
            )
        finally:
            # The completed body was handed over; the session ends here even if cancelled
            session.finish(SessionState.delivered)
        return session

    async def _check(self, session: PollSession) -> Dict[str, Any]:
        """One status check. Returns the parsed body on terminal success."""
        url = session.tracking_url
        attempt_number = session.attempts_made + 1
        logger.debug("[poll:check] attempt=%s/%s url=%s", attempt_number, session.max_attempts, url)

        try:
            text = await self._http.get_text(url, timeout=self.config.request_timeout)
        except TransportError as exc:
            session.record(PollOutcome.transport_error, exc.message)
            logger.debug("[poll:check] fetch error url=%s err=%s", url, exc.message)
            raise StatusNotComplete(PollOutcome.transport_error, exc.message) from exc

        try:
            classification = classify(text)
        except MalformedStatusResponse as exc:
            session.record(PollOutcome.malformed, exc.message)
            logger.info("%s returned an unusable status body: %s", url, exc.message)
            raise StatusNotComplete(PollOutcome.malformed, exc.message) from exc

        session.record(classification.outcome, classification.status)

        if classification.outcome == PollOutcome.terminal_success:
            logger.info("%s completed.", url)
            return classification.body

        if classification.outcome == PollOutcome.pending:
            logger.info(PENDING_MESSAGES[classification.status], url)
        else:
            logger.info("%s - unknown assembly state found: %s", url, classification.status)

        raise StatusNotComplete(
            classification.outcome,
            f"{url} not completed ({classification.status})",
        )

    async def join(self) -> None:
        """Wait until every running session has finished."""
        while self._sessions:
            await asyncio.gather(*list(self._sessions), return_exceptions=True)

    async def shutdown(self, grace: Optional[float] = None) -> None:
        """Stop accepting sessions, give running ones `grace` seconds, cancel the rest."""
        self._shutdown = True
        grace = self.config.shutdown_grace if grace is None else grace
        if not self._sessions:
            return
        tasks = list(self._sessions)
        pending = set(tasks)
        if grace > 0:
            _, pending = await asyncio.wait(tasks, timeout=grace)
        if pending:
            logger.warning("[poll:shutdown] cancelling %s unfinished session(s)", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
