"""ProxyInterceptor: forwards inbound requests and watches the answers.

Forwarding and observing are two separate steps. The web adapter sends the
upstream response back to the caller first and only then hands it to
`observe`, once per request, so nothing found (or not found) in the body
can change what the caller receives.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple

from notify_relay.core.config import RelayConfig
from notify_relay.core.exceptions import MalformedUpstreamResponse, MissingTrackingField
from notify_relay.core.interfaces.http_client import HttpClientPort
from notify_relay.core.managers.poll_scheduler import PollScheduler
from notify_relay.core.models.exchange import InboundRequest, UpstreamResponse
from notify_relay.core.models.poll import PollSession
from notify_relay.core.settings import logger

TRACKING_FIELD = "assembly_url"

# RFC 7230 hop-by-hop headers, plus headers the transport recomputes
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}
REQUEST_SKIP_HEADERS = HOP_BY_HOP_HEADERS | {"host", "content-length"}
# aiohttp hands back decoded bodies, so the original encoding must not be announced
RESPONSE_SKIP_HEADERS = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}


def filter_headers(headers: List[Tuple[str, str]], skip: set[str]) -> List[Tuple[str, str]]:
    return [(key, value) for key, value in headers if key.lower() not in skip]


def extract_tracking_url(body: bytes) -> str:
    """Pull the assembly tracking URL out of an upstream JSON body.

    Raises:
        MalformedUpstreamResponse: body is not a JSON object.
        MissingTrackingField: the tracking field is absent, empty or not a string.
    """
    try:
        parsed: Any = json.loads(body)
    except (ValueError, TypeError) as exc:
        raise MalformedUpstreamResponse(
            "Upstream response is not valid JSON", diagnostic=str(exc)
        ) from exc

    if not isinstance(parsed, dict):
        raise MalformedUpstreamResponse(
            "Upstream response is not a JSON object", diagnostic=type(parsed).__name__
        )

    tracking_url = parsed.get(TRACKING_FIELD)
    if not tracking_url or not isinstance(tracking_url, str):
        raise MissingTrackingField(TRACKING_FIELD, diagnostic=repr(tracking_url))
    return tracking_url


class ProxyInterceptor:
    """Forwards requests to the configured target and starts polling from the answers."""

    def __init__(
        self,
        http_client: HttpClientPort,
        scheduler: PollScheduler,
        config: RelayConfig,
    ) -> None:
        self._http = http_client
        self._scheduler = scheduler
        self.config = config

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    def upstream_url(self, inbound: InboundRequest) -> str:
        url = self.config.target.rstrip("/") + inbound.path
        if inbound.query:
            url += "?" + inbound.query
        return url

    async def forward(self, inbound: InboundRequest) -> UpstreamResponse:
        """Send the inbound request to the target; TransportError if unreachable."""
        url = self.upstream_url(inbound)
        logger.debug("[proxy:forward] %s %s -> %s", inbound.method, inbound.path, url)
        upstream = await self._http.forward(
            inbound.method,
            url,
            filter_headers(inbound.headers, REQUEST_SKIP_HEADERS),
            inbound.body,
            timeout=self.config.request_timeout,
        )
        logger.debug("[proxy:forward] upstream status=%s bytes=%s", upstream.status, len(upstream.body))
        return UpstreamResponse(
            status=upstream.status,
            headers=filter_headers(upstream.headers, RESPONSE_SKIP_HEADERS),
            body=upstream.body,
        )

    async def observe(self, upstream: UpstreamResponse) -> Optional[PollSession]:
        """Start polling for the tracking URL in `upstream`, if there is one.

        Extraction failures are logged and swallowed; they only mean no polling.
        """
        try:
            tracking_url = extract_tracking_url(upstream.body)
        except MalformedUpstreamResponse as exc:
            logger.warning(
                "[proxy:observe] %s (status=%s) diagnostic=%s",
                exc.message,
                upstream.status,
                exc.diagnostic,
            )
            return None
        except MissingTrackingField as exc:
            logger.warning("[proxy:observe] %s (status=%s)", exc.message, upstream.status)
            return None

        logger.info("Received proxy response, polling assemblyUrl: %s", tracking_url)
        return self._scheduler.start(tracking_url)
