"""Configuration model for the relay components.

`RelayConfig` is produced once at startup (usually from `RelaySettings`) and
handed by reference to every component. It is frozen, so no component can
change another component's view of the configuration.
"""

from urllib.parse import urlsplit

from pydantic import BaseModel, Field, SecretStr, field_validator


class RelayConfig(BaseModel):
    """Immutable relay configuration.

    Attributes:
        target: Upstream base URL every inbound request is forwarded to
        listen_host: Interface the inbound server binds to
        listen_port: Port the inbound server binds to (0 picks a free port)
        poll_interval_ms: Fixed wait between two status checks of one session
        poll_max_attempts: Status checks a session may make before giving up
        notify_url: Webhook receiving the signed completion notification
        shared_secret: Key used to sign notifications
        notify_max_attempts: Delivery attempts per notification (1 = fire and forget)
        request_timeout: Total timeout in seconds for each outbound request
        shutdown_grace: Seconds shutdown waits for in-flight sessions
    """

    target: str = "https://api2.transloadit.com/assemblies/"
    listen_host: str = "0.0.0.0"
    listen_port: int = Field(default=8888, ge=0, le=65535)
    poll_interval_ms: int = Field(default=2000, gt=0)
    poll_max_attempts: int = Field(default=10, ge=1)
    notify_url: str = "http://127.0.0.1:3000/transloadit"
    shared_secret: SecretStr = SecretStr("")
    notify_max_attempts: int = Field(default=1, ge=1, le=10)
    request_timeout: float = Field(default=10.0, gt=0)
    shutdown_grace: float = Field(default=5.0, ge=0)

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("target", "notify_url")
    @classmethod
    def ensure_http_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"'{value}' is not an absolute http(s) URL")
        return value

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @property
    def secret_bytes(self) -> bytes:
        return self.shared_secret.get_secret_value().encode("utf-8")

    @classmethod
    def from_app_settings(cls, settings) -> "RelayConfig":
        """Factory method to construct config from a RelaySettings instance."""
        return cls(
            target=settings.RELAY_TARGET,
            listen_host=settings.RELAY_HOST,
            listen_port=settings.RELAY_PORT,
            poll_interval_ms=settings.RELAY_POLL_INTERVAL_MS,
            poll_max_attempts=settings.RELAY_POLL_MAX_ATTEMPTS,
            notify_url=settings.RELAY_NOTIFY_URL,
            shared_secret=settings.RELAY_SECRET,
            notify_max_attempts=settings.RELAY_NOTIFY_MAX_ATTEMPTS,
            request_timeout=settings.RELAY_REQUEST_TIMEOUT,
            shutdown_grace=settings.RELAY_SHUTDOWN_GRACE,
        )
