# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from loguru import logger
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from coreason_relay.body import select_body_source
from coreason_relay.config import GatewayConfig
from coreason_relay.invoker import UpstreamInvoker, build_upstream_client
from coreason_relay.logging_utils import configure_logging
from coreason_relay.models import InboundRequest
from coreason_relay.pipeline import RelayPipeline

RELAY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def build_inbound_request(request: Request) -> InboundRequest:
    """
    Adapts a Starlette request to the pipeline's inbound shape.
    The body is read lazily from the raw stream (Starlette replays it if already buffered).
    """
    # raw_path keeps the percent-encoding exactly as the caller sent it
    raw_path = request.scope.get("raw_path")
    path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"").decode("latin-1")
    if query:
        path = f"{path}?{query}"

    headers = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in request.headers.raw]

    return InboundRequest(
        method=request.method,
        path=path,
        headers=headers,
        body=select_body_source(stream=request.stream()),
        client_host=request.client.host if request.client else None,
    )


def create_app(
    config: Optional[GatewayConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Builds the gateway application.

    Args:
        config: Injected configuration. Loaded from the environment at startup when omitted.
        transport: Optional HTTPX transport for the upstream client.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Loads the configuration once and manages the shared upstream client.
        """
        gateway_config = config or GatewayConfig.from_env()
        client = build_upstream_client(transport)
        app.state.config = gateway_config
        app.state.http_client = client
        app.state.pipeline = RelayPipeline(gateway_config, UpstreamInvoker(client, gateway_config.timeout_ms))
        logger.bind(
            origin_url=gateway_config.origin_url,
            timeout_ms=gateway_config.timeout_ms,
            response_mode=gateway_config.response_mode.value,
        ).info("Relay gateway started.")
        yield
        await client.aclose()

    # Docs routes are disabled so every path reaches the origin
    app = FastAPI(title="CoReason Relay Gateway", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    @app.exception_handler(Exception)
    async def last_resort_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Ensures no unhandled fault reaches the server.
        Returns a 502 gateway_error instead of the default 500.
        """
        logger.exception("Unexpected gateway crash.")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"ok": False, "error": "gateway_error", "detail": str(exc) or exc.__class__.__name__},
            media_type="application/json; charset=utf-8",
        )

    @app.api_route("/{full_path:path}", methods=RELAY_METHODS, include_in_schema=False)
    async def relay(request: Request) -> Response:
        """
        Forwards any method and path to the configured origin.
        """
        pipeline: RelayPipeline = request.app.state.pipeline
        return await pipeline.handle(build_inbound_request(request))

    FastAPIInstrumentor.instrument_app(app)

    return app


app = create_app()


@logger.catch  # type: ignore[misc]
def run_server() -> None:
    """Entry point for the coreason-relay command. Configured via ENV."""
    configure_logging()
    host = os.environ.get("RELAY_HOST", "0.0.0.0")
    port = int(os.environ.get("RELAY_PORT", "8080"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()  # pragma: no cover
