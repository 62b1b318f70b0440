from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class InboundRequest(BaseModel):
    """Request received on the listen port, to be forwarded as-is."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    query: Optional[str] = None
    headers: List[Tuple[str, str]] = []
    body: bytes = b""


class UpstreamResponse(BaseModel):
    """Fully buffered upstream response.

    Headers are kept as ordered pairs so repeated headers (Set-Cookie) survive.
    """

    model_config = ConfigDict(frozen=True)

    status: int
    headers: List[Tuple[str, str]] = []
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None
