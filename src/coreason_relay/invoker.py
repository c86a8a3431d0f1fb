# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

import asyncio
import time
from typing import Optional

import httpx
from loguru import logger
from opentelemetry import trace

from coreason_relay.exceptions import UpstreamTimeoutError, UpstreamTransportError
from coreason_relay.models import OutboundRequest, UpstreamResponse

tracer = trace.get_tracer("relay.upstream")


def build_upstream_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Creates the shared HTTPX client used for upstream calls.
    Default client headers are cleared so nothing is sent that the caller did not send.
    The invoker owns the deadline, so no HTTPX-level timeout is set.
    """
    client = httpx.AsyncClient(transport=transport, timeout=None, follow_redirects=False)
    client.headers.clear()
    return client


class UpstreamInvoker:
    """
    Performs the single outbound call under a hard wall-clock deadline.
    """

    def __init__(self, client: httpx.AsyncClient, timeout_ms: int):
        self.client = client
        self.timeout_ms = timeout_ms

    async def invoke(self, outbound: OutboundRequest, raw: bool = True) -> UpstreamResponse:
        """
        Sends the request and drains the full response body into memory.

        Args:
            outbound: The sanitized request to send.
            raw: Keep the body exactly as received on the wire (no Content-Encoding decoding).

        Returns:
            UpstreamResponse: Status, headers and body of the upstream reply.

        Raises:
            UpstreamTimeoutError: If the deadline elapsed before the body was drained.
            UpstreamTransportError: For any other transport failure.
        """
        started = time.monotonic()
        with tracer.start_as_current_span(
            "relay.upstream", attributes={"http.method": outbound.method, "http.url": outbound.url}
        ) as span:
            try:
                # Bytes pairs keep obs-text values intact; str values are ASCII-encoded by httpx
                request = self.client.build_request(
                    method=outbound.method,
                    url=outbound.url,
                    headers=[(k.encode("latin-1"), v.encode("latin-1")) for k, v in outbound.headers],
                    content=outbound.content,
                )
                async with asyncio.timeout(self.timeout_ms / 1000):
                    response = await self.client.send(request, stream=True)
                    try:
                        # Some transports hand back a body that is already loaded
                        if raw and not response.is_stream_consumed:
                            content = b"".join([chunk async for chunk in response.aiter_raw()])
                        else:
                            content = await response.aread()
                    finally:
                        await response.aclose()
            except (TimeoutError, httpx.TimeoutException) as e:
                logger.bind(url=outbound.url, timeout_ms=self.timeout_ms).warning("Upstream call timed out.")
                raise UpstreamTimeoutError(self.timeout_ms) from e
            except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
                logger.bind(url=outbound.url).error(f"Upstream call failed: {e!r}")
                raise UpstreamTransportError(str(e) or e.__class__.__name__) from e

            span.set_attribute("http.status_code", response.status_code)

        logger.bind(
            url=outbound.url,
            status=response.status_code,
            elapsed_ms=round((time.monotonic() - started) * 1000),
        ).debug("Upstream call completed.")

        return UpstreamResponse(
            status_code=response.status_code,
            headers=[(k.decode("latin-1"), v.decode("latin-1")) for k, v in response.headers.raw],
            content=content,
        )
