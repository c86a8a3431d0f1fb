# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

from fastapi import Response
from loguru import logger

from coreason_relay.body import capture_body
from coreason_relay.config import GatewayConfig, ResponseMode
from coreason_relay.exceptions import RelayError, UpstreamTransportError
from coreason_relay.headers import cors_headers, sanitize_request_headers
from coreason_relay.invoker import UpstreamInvoker
from coreason_relay.logging_utils import redact_headers
from coreason_relay.models import InboundRequest, OutboundRequest
from coreason_relay.reconstructor import error_response, preflight_response, reconstruct
from coreason_relay.resolver import resolve_target


class RelayPipeline:
    """
    Forwards one inbound request to the configured origin and builds the reply.
    Holds only the immutable configuration and the shared invoker.
    """

    def __init__(self, config: GatewayConfig, invoker: UpstreamInvoker):
        self.config = config
        self.invoker = invoker
        self.cors = cors_headers(config)

    async def handle(self, inbound: InboundRequest) -> Response:
        """
        Runs resolve -> sanitize/capture -> invoke -> reconstruct.
        Every failure is translated into exactly one error response.
        """
        method = inbound.method.upper()

        if method == "OPTIONS":
            return preflight_response(self.cors)

        try:
            return await self._forward(method, inbound)
        except RelayError as e:
            logger.bind(method=method, path=inbound.path, error=e.code).warning(f"Relay failed: {e.detail}")
            return error_response(e, self.cors)
        except Exception as e:
            logger.exception(f"Unexpected relay failure for {method} {inbound.path}")
            return error_response(UpstreamTransportError(str(e) or e.__class__.__name__), self.cors)

    async def _forward(self, method: str, inbound: InboundRequest) -> Response:
        # 1. Resolve target (fails before any network activity)
        target = resolve_target(self.config.origin_url, inbound.path)

        # 2. Capture body and sanitize headers
        captured = await capture_body(method, inbound.body)
        headers = sanitize_request_headers(
            inbound.headers,
            client_host=inbound.client_host,
            content_type=captured.content_type if captured else None,
        )
        outbound = OutboundRequest(
            method=method,
            url=target,
            headers=headers,
            content=captured.content if captured else None,
        )
        logger.bind(method=method, target=target, headers=redact_headers(headers)).debug("Forwarding request.")

        # 3. Invoke upstream
        passthrough = self.config.response_mode is ResponseMode.PASSTHROUGH
        upstream = await self.invoker.invoke(outbound, raw=passthrough)

        # 4. Reconstruct
        return reconstruct(self.config.response_mode, method, upstream, self.cors)
