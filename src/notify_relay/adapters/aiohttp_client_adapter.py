# notify_relay/adapters/aiohttp_client_adapter.py
import asyncio
import aiohttp
from multidict import CIMultiDict
from typing import Dict, List, Optional, Tuple

from notify_relay.core.interfaces.http_client import HttpClientPort
from notify_relay.core.exceptions import TransportError
from notify_relay.core.models.exchange import UpstreamResponse
from notify_relay.core.settings import logger


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self):
        self._session: Optional[aiohttp.ClientSession] = None
        # Default client timeout configuration for individual requests.
        # Callers pass a total timeout; sock_read/sock_connect stay at these values.
        self._default_total: float = 10.0
        self._default_sock_read: float = 10.0
        self._default_sock_connect: float = 5.0
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=self._default_total,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        # Cookies must pass through untouched, never be remembered across requests
        self._session = aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self._session

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        if timeout is None:
            return self._default_client_timeout
        # Keep adapter-level sock_read/sock_connect values but apply provided total
        return aiohttp.ClientTimeout(
            total=timeout,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    async def forward(
        self,
        method: str,
        url: str,
        headers: List[Tuple[str, str]],
        body: bytes,
        timeout: float | None = None,
    ) -> UpstreamResponse:
        session = self._require_session()
        try:
            async with session.request(
                method,
                url,
                headers=CIMultiDict(headers),
                data=body or None,
                allow_redirects=False,
                timeout=self._client_timeout(timeout),
            ) as response:
                payload = await response.read()
                return UpstreamResponse(
                    status=response.status,
                    headers=list(response.headers.items()),
                    body=payload,
                )
        except asyncio.TimeoutError as exc:
            logger.error("Timeout when forwarding to upstream. URL: %s", url)
            raise TransportError(
                "The request to the upstream service timed out.", url, status=504
            ) from exc
        except aiohttp.ClientError as client_error:
            logger.error(
                "Connection error when forwarding to upstream. URL: %s, Error: %s",
                url,
                str(client_error),
            )
            raise TransportError(
                "There was a connection error with the upstream service.",
                url,
                diagnostic=str(client_error),
            ) from client_error

    async def get_text(self, url: str, timeout: float | None = None) -> str:
        session = self._require_session()
        try:
            async with session.get(url, timeout=self._client_timeout(timeout)) as response:
                # Status bodies are classified whatever the HTTP status says
                if response.status >= 400:
                    logger.debug("Status check returned HTTP %s. URL: %s", response.status, url)
                return await response.text()
        except asyncio.TimeoutError as exc:
            logger.warning("Timeout when checking status. URL: %s", url)
            raise TransportError("The status check timed out.", url, status=504) from exc
        except aiohttp.ClientError as client_error:
            logger.warning(
                "Connection error when checking status. URL: %s, Error: %s",
                url,
                str(client_error),
            )
            raise TransportError(
                "There was a connection error during the status check.",
                url,
                diagnostic=str(client_error),
            ) from client_error

    async def post_form(
        self,
        url: str,
        data: Dict[str, str],
        timeout: float | None = None,
    ) -> int:
        session = self._require_session()
        try:
            # A plain dict is sent as application/x-www-form-urlencoded
            async with session.post(url, data=data, timeout=self._client_timeout(timeout)) as response:
                await response.read()
                return response.status
        except asyncio.TimeoutError as exc:
            logger.error("Timeout when POSTing form. URL: %s", url)
            raise TransportError("The notification request timed out.", url, status=504) from exc
        except aiohttp.ClientError as client_err:
            logger.error("Connection error when POSTing form. URL: %s, Error: %s", url, str(client_err))
            raise TransportError(
                "There was a connection error with the notify endpoint.",
                url,
                diagnostic=str(client_err),
            ) from client_err

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
