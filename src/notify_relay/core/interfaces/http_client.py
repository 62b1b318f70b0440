# notify_relay/core/interfaces/http_client.py
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from notify_relay.core.models.exchange import UpstreamResponse


class HttpClientPort(ABC):
    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        """Async context manager entry method"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit method"""
        pass

    @abstractmethod
    async def forward(
        self,
        method: str,
        url: str,
        headers: List[Tuple[str, str]],
        body: bytes,
        timeout: float | None = None,
    ) -> UpstreamResponse:
        """Send a request verbatim and return the fully buffered response.

        Redirects are not followed; any HTTP status is returned as-is.
        Network failures raise TransportError.
        """
        pass

    @abstractmethod
    async def get_text(self, url: str, timeout: float | None = None) -> str:
        """Make a GET request and return the body as text, whatever the status.

        Network failures raise TransportError.
        """
        pass

    @abstractmethod
    async def post_form(
        self,
        url: str,
        data: Dict[str, str],
        timeout: float | None = None,
    ) -> int:
        """POST url-encoded form fields and return the HTTP status code.

        Network failures raise TransportError.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the HTTP client session"""
        pass
