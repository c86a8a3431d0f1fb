# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

import json
from collections.abc import Mapping
from typing import Any, AsyncIterable, Optional, Protocol, Union, runtime_checkable
from urllib.parse import urlencode

from loguru import logger

from coreason_relay.exceptions import BodyCaptureError
from coreason_relay.models import CapturedBody

# Methods whose outbound request never carries a body
BODYLESS_METHODS = frozenset({"GET", "HEAD", "TRACE"})

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

Chunk = Union[bytes, bytearray, memoryview, str]


@runtime_checkable
class BodySource(Protocol):
    """Anything that can produce the bytes the caller sent."""

    async def read(self) -> CapturedBody: ...


class RawBodySource:
    """A byte buffer the runtime already materialized."""

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self.data = bytes(data)

    async def read(self) -> CapturedBody:
        return CapturedBody(self.data)


class TextBodySource:
    """A string the runtime already materialized. Sent as UTF-8."""

    def __init__(self, text: str):
        self.text = text

    async def read(self) -> CapturedBody:
        return CapturedBody(self.text.encode("utf-8"))


class StreamBodySource:
    """
    A streamed body, accumulated until end-of-stream.
    Binary chunks are concatenated untouched in arrival order.
    """

    def __init__(self, stream: AsyncIterable[Chunk]):
        self.stream = stream

    async def read(self) -> CapturedBody:
        chunks = []
        try:
            async for chunk in self.stream:
                if isinstance(chunk, str):
                    chunks.append(chunk.encode("utf-8"))
                else:
                    chunks.append(bytes(chunk))
        except Exception as e:
            raise BodyCaptureError(f"Failed to read request stream: {e}") from e
        return CapturedBody(b"".join(chunks))


class ParsedBodySource:
    """
    Best-effort reconstruction of a body the runtime already parsed into an object.
    Form content types are re-encoded as key=value pairs, everything else as JSON.
    """

    def __init__(self, payload: Any, content_type: str = ""):
        self.payload = payload
        self.content_type = content_type or ""

    async def read(self) -> CapturedBody:
        if FORM_CONTENT_TYPE in self.content_type.lower() and isinstance(self.payload, Mapping):
            encoded = urlencode(list(self.payload.items()), doseq=True)
            return CapturedBody(encoded.encode("utf-8"))

        try:
            encoded = json.dumps(self.payload, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise BodyCaptureError(f"Parsed body is not JSON serializable: {e}") from e
        return CapturedBody(encoded.encode("utf-8"), content_type=JSON_CONTENT_TYPE)


class FallbackBodySource:
    """Reads `primary`; only consults `fallback` when the primary produced no bytes."""

    def __init__(self, primary: BodySource, fallback: BodySource):
        self.primary = primary
        self.fallback = fallback

    async def read(self) -> CapturedBody:
        captured = await self.primary.read()
        if captured.content:
            return captured
        return await self.fallback.read()


class EmptyBodySource:
    async def read(self) -> CapturedBody:
        return CapturedBody()


def select_body_source(
    body: Any = None,
    stream: Optional[AsyncIterable[Chunk]] = None,
    content_type: str = "",
) -> BodySource:
    """
    Picks the adapter for whatever the hosting runtime exposes.
    Order: raw bytes, then str, then the stream (falling back to a parsed object
    when the stream turns out empty), then a parsed object alone.

    Args:
        body: A pre-materialized body: bytes, str or a parsed object.
        stream: The raw request stream, if still available.
        content_type: The inbound Content-Type, used to re-encode parsed objects.
    """
    if isinstance(body, (bytes, bytearray, memoryview)):
        return RawBodySource(body)
    if isinstance(body, str):
        return TextBodySource(body)

    parsed = ParsedBodySource(body, content_type) if body is not None else None

    if stream is not None:
        source: BodySource = StreamBodySource(stream)
        return FallbackBodySource(source, parsed) if parsed else source
    if parsed is not None:
        return parsed
    return EmptyBodySource()


async def capture_body(method: str, source: BodySource) -> Optional[CapturedBody]:
    """
    Obtains the outbound body for the request.

    Returns:
        Optional[CapturedBody]: None when no body should be sent, i.e. for body-less
        methods, empty payloads and capture failures.
    """
    if method.upper() in BODYLESS_METHODS:
        return None

    try:
        captured = await source.read()
    except Exception as e:
        # Non-fatal: the request proceeds without a body
        logger.bind(method=method).warning(f"Body capture failed, forwarding empty body: {e}")
        return None

    if not captured.content:
        return None
    return captured
