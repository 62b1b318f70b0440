# Logging adapter for application-wide logging
from notify_relay.adapters.logging_adapter import LoggingAdapter

from pydantic import SecretStr
from pydantic_settings import BaseSettings
from rich import print

from notify_relay.core.interfaces.logging import LoggingPort

# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class RelaySettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }
    RELAY_LOG_LEVEL: str = "INFO"
    # Upstream the proxy forwards every inbound request to
    RELAY_TARGET: str = "https://api2.transloadit.com/assemblies/"
    RELAY_HOST: str = "0.0.0.0"
    RELAY_PORT: int = 8888
    RELAY_POLL_INTERVAL_MS: int = 2000
    RELAY_POLL_MAX_ATTEMPTS: int = 10
    RELAY_NOTIFY_URL: str = "http://127.0.0.1:3000/transloadit"
    RELAY_NOTIFY_MAX_ATTEMPTS: int = 1
    RELAY_SECRET: SecretStr = SecretStr("")
    RELAY_REQUEST_TIMEOUT: float = 10.0  # seconds
    # How long shutdown waits for in-flight poll sessions before cancelling them
    RELAY_SHUTDOWN_GRACE: float = 5.0  # seconds

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("Relay Settings:")
        print(self)


app_settings = RelaySettings()

logger = LoggingAdapter("notify_relay", app_settings.RELAY_LOG_LEVEL)
