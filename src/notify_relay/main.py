# main.py
import asyncio

from notify_relay.core.config import RelayConfig
from notify_relay.core.logging_config import configure_logging
from notify_relay.core.settings import app_settings, logger
from notify_relay.relay_service import RelayService


# main lives at the outermost layer (not in core)
# Loads settings once, configures logging and runs the service

def main():
    # Central logging configuration BEFORE the server starts so uvicorn adopts level/format
    configure_logging(app_settings.RELAY_LOG_LEVEL)
    app_settings.print_settings(logger)

    config = RelayConfig.from_app_settings(app_settings)
    asyncio.run(RelayService().serve(config))


if __name__ == "__main__":
    main()
