# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

from typing import Any, Callable, Generator, List, Optional

import httpx
import pytest
from loguru import logger

UPSTREAM_ORIGIN = "http://upstream.test"


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Replies with the exact bytes and content type it received."""
    headers = {"Content-Type": request.headers.get("content-type", "application/octet-stream")}
    return httpx.Response(200, content=request.content, headers=headers)


class UpstreamRecorder:
    """
    Fake origin for httpx.MockTransport.
    Records every request it receives and delegates the reply to `handler`.
    """

    def __init__(self, handler: Optional[Callable[[httpx.Request], Any]] = None):
        self.handler = handler or echo_handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture  # type: ignore[misc]
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest.fixture  # type: ignore[misc]
def make_upstream() -> Callable[..., UpstreamRecorder]:
    """Factory for fake origins with a custom reply handler."""
    return UpstreamRecorder


@pytest.fixture  # type: ignore[misc]
def capture_logs() -> Generator[List[str], None, None]:
    """Fixture to capture loguru logs."""
    logs: List[str] = []
    handler_id = logger.add(lambda msg: logs.append(str(msg)), level="DEBUG")
    yield logs
    logger.remove(handler_id)
