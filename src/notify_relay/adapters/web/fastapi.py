# notify_relay/adapters/web/fastapi.py
from contextlib import asynccontextmanager
from typing import Callable

import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from starlette.background import BackgroundTask

from notify_relay.core.exceptions import TransportError
from notify_relay.core.interfaces.http_client import HttpClientPort
from notify_relay.core.logging_config import correlation_id_var
from notify_relay.core.managers.proxy_interceptor import ProxyInterceptor
from notify_relay.core.models.exchange import InboundRequest
from notify_relay.core.models.problem import ProblemResponse
from notify_relay.core.settings import logger

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


# Note: this is a driver adapter. It only translates HTTP to core calls;
# the interceptor (and everything behind it) is built by the composition root.
def create_app(
    http_client: HttpClientPort,
    interceptor_factory: Callable[[HttpClientPort], ProxyInterceptor],
) -> FastAPI:
    """Create the relay FastAPI app.

    Every path and method is proxied, so the generated docs/openapi routes are
    switched off to keep the whole URL space for the upstream.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with http_client as client:
            interceptor = interceptor_factory(client)
            app.state.interceptor = interceptor
            try:
                yield
            finally:
                # Sessions still polling get a grace period, then are cancelled
                # before the HTTP client they depend on is closed.
                await interceptor.scheduler.shutdown()

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    def render_problem(
        problem: ProblemResponse,
        *,
        include_request_id: bool = False,
    ) -> JSONResponse:
        payload = jsonable_encoder(problem.model_dump(exclude_none=True))
        response = JSONResponse(
            status_code=problem.status,
            content=payload,
            media_type="application/problem+json",
        )
        if include_request_id and problem.additional and problem.additional.requestId:
            response.headers["X-Request-ID"] = problem.additional.requestId
        return response

    # Correlation ID middleware: assigns per-request id (header override) and exposes it to logging
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        incoming = request.headers.get("x-request-id")
        cid = incoming or uuid.uuid4().hex[:12]
        correlation_id_var.set(cid)
        try:
            response = await call_next(request)
        finally:
            # ensure context is reset to avoid leak across reused worker tasks
            correlation_id_var.set("-")
        response.headers["X-Request-ID"] = cid
        return response

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        cid = correlation_id_var.get()
        problem = exc.to_problem(instance=str(request.url)).with_request_id(cid)
        return render_problem(problem, include_request_id=True)

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request, path: str):
        raw_path = request.scope.get("raw_path")
        inbound = InboundRequest(
            method=request.method,
            path=raw_path.decode("latin-1") if raw_path else request.url.path,
            query=request.url.query or None,
            headers=list(request.headers.items()),
            body=await request.body(),
        )
        interceptor: ProxyInterceptor = request.app.state.interceptor
        upstream = await interceptor.forward(inbound)
        logger.info(
            "[proxy] %s %s -> %s", inbound.method, inbound.path, upstream.status
        )

        # The body is observed only after it has been sent to the caller
        response = Response(
            content=upstream.body,
            status_code=upstream.status,
            background=BackgroundTask(interceptor.observe, upstream),
        )
        for key, value in upstream.headers:
            response.headers.append(key, value)
        return response

    return app
