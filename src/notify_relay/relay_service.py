"""RelayService: start/stop lifecycle around the wired relay app.

Shutdown limitation: `stop()` does not wait for poll sessions to finish.
Sessions still running get `shutdown_grace` seconds and are then cancelled,
so a job that completes after shutdown is never notified.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from notify_relay.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from notify_relay.adapters.retry_tenacity import TenacityRetryAdapter
from notify_relay.adapters.web.fastapi import create_app
from notify_relay.core.config import RelayConfig
from notify_relay.core.interfaces.http_client import HttpClientPort
from notify_relay.core.managers.notification_dispatcher import NotificationDispatcher
from notify_relay.core.managers.poll_scheduler import PollScheduler
from notify_relay.core.managers.proxy_interceptor import ProxyInterceptor
from notify_relay.core.settings import logger


def build_interceptor(client: HttpClientPort, config: RelayConfig) -> ProxyInterceptor:
    """Wire ProxyInterceptor -> PollScheduler -> NotificationDispatcher."""
    retry_adapter = TenacityRetryAdapter(
        attempts=config.poll_max_attempts,
        wait=config.poll_interval,
    )
    dispatcher = NotificationDispatcher(client, config, retry_port=retry_adapter)
    scheduler = PollScheduler(client, dispatcher, config, retry_port=retry_adapter)
    return ProxyInterceptor(client, scheduler, config)


def build_app(
    config: RelayConfig,
    http_client: Optional[HttpClientPort] = None,
) -> FastAPI:
    return create_app(
        http_client=http_client or AioHttpClientAdapter(),
        interceptor_factory=lambda client: build_interceptor(client, config),
    )


class RelayService:
    """Owns the listen socket and the proxy target binding."""

    def __init__(
        self,
        http_client_factory: Callable[[], HttpClientPort] = AioHttpClientAdapter,
    ) -> None:
        self._http_client_factory = http_client_factory
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None
        self.config: Optional[RelayConfig] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually listened on (useful when configured with port 0)."""
        if self._server is None or not self._server.servers:
            return None
        sockets = self._server.servers[0].sockets
        return sockets[0].getsockname()[1] if sockets else None

    async def start(self, config: RelayConfig) -> None:
        """Validate config, bind the listener and wait until requests are accepted."""
        if self.running:
            raise RuntimeError("relay already running")
        config = RelayConfig.model_validate(config.model_dump())
        self.config = config

        app = build_app(config, self._http_client_factory())
        server_config = uvicorn.Config(
            app,
            host=config.listen_host,
            port=config.listen_port,
            # Let uvicorn inherit existing logging (separate sinks & correlation ids)
            log_config=None,
            lifespan="on",
            # Upstream headers are relayed as they are
            server_header=False,
            date_header=False,
        )
        self._server = uvicorn.Server(server_config)
        self._task = asyncio.create_task(self._server.serve())

        while not self._server.started:
            if self._task.done():
                await self._task
                raise RuntimeError("relay server stopped during startup")
            await asyncio.sleep(0.05)

        logger.info(
            "Listening on http://%s:%s, forwarding to %s, notifying %s",
            config.listen_host,
            self.bound_port,
            config.target,
            config.notify_url,
        )

    async def stop(self) -> None:
        """Close the listener and the proxy transport."""
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        try:
            await self._task
        finally:
            self._server = None
            self._task = None
        logger.info("Relay stopped")

    async def serve(self, config: RelayConfig) -> None:
        """Run until the server exits (signals are handled by uvicorn)."""
        await self.start(config)
        task = self._task
        if task is not None:
            await task
