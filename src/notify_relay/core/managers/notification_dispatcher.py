from __future__ import annotations

from typing import Any, Dict, Optional

from notify_relay.core.config import RelayConfig
from notify_relay.core.exceptions import NotificationDeliveryFailure, TransportError
from notify_relay.core.interfaces.http_client import HttpClientPort
from notify_relay.core.interfaces.retry import RetryPort
from notify_relay.core.models.poll import NotificationPayload
from notify_relay.core.settings import logger
from notify_relay.core.utils.js_json import stringify
from notify_relay.core.utils.signer import sign


def serialize(body: Dict[str, Any]) -> str:
    """Compact JSON text of `body` as a JavaScript sender would have signed it."""
    return stringify(body)


class NotificationDispatcher:
    """Signs a completed status body and POSTs it to the notify endpoint.

    Delivery is fire-and-forget: failures are logged, never raised, and the
    proxied caller never learns about them. With `notify_max_attempts > 1`
    the POST is repeated at the poll interval until accepted.
    """

    def __init__(
        self,
        http_client: HttpClientPort,
        config: RelayConfig,
        retry_port: Optional[RetryPort] = None,
    ) -> None:
        self._http = http_client
        self.config = config
        self._retry = retry_port

    def build_payload(self, body: Dict[str, Any]) -> NotificationPayload:
        serialized = serialize(body)
        return NotificationPayload(
            raw_status_body=serialized,
            signature=sign(self.config.secret_bytes, serialized),
        )

    async def deliver(self, body: Dict[str, Any]) -> Optional[NotificationPayload]:
        """Send the notification; return the payload if the webhook accepted it."""
        payload = self.build_payload(body)
        try:
            if self._retry is not None and self.config.notify_max_attempts > 1:
                await self._retry.execute(
                    self._post,
                    payload,
                    attempts=self.config.notify_max_attempts,
                    wait=self.config.poll_interval,
                    exception_types=(NotificationDeliveryFailure,),
                )
            else:
                await self._post(payload)
        except NotificationDeliveryFailure as exc:
            logger.error(
                "[notify:failed] %s diagnostic=%s", exc.message, exc.diagnostic
            )
            return None

        logger.info("[notify:sent] delivered notification to %s", self.config.notify_url)
        return payload

    async def _post(self, payload: NotificationPayload) -> None:
        notify_url = self.config.notify_url
        logger.debug("[notify:post] posting notification to %s", notify_url)
        try:
            status = await self._http.post_form(
                notify_url,
                payload.as_form(),
                timeout=self.config.request_timeout,
            )
        except TransportError as exc:
            raise NotificationDeliveryFailure(notify_url, diagnostic=exc.message) from exc

        if not 200 <= status < 300:
            raise NotificationDeliveryFailure(notify_url, upstream_status=status)
