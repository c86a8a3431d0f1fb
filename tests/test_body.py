# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

from typing import AsyncIterator, List

import pytest

from coreason_relay.body import (
    EmptyBodySource,
    FallbackBodySource,
    ParsedBodySource,
    RawBodySource,
    StreamBodySource,
    TextBodySource,
    capture_body,
    select_body_source,
)
from coreason_relay.exceptions import BodyCaptureError


async def _chunks(parts: List[bytes]) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


async def _broken_stream() -> AsyncIterator[bytes]:
    yield b"partial"
    raise ConnectionResetError("client went away")


@pytest.mark.asyncio  # type: ignore[misc]
async def test_stream_preserves_binary_in_arrival_order() -> None:
    parts = [bytes(range(0, 128)), b"\x00\xff\xfe", bytes(range(128, 256))]
    captured = await StreamBodySource(_chunks(parts)).read()
    assert captured.content == b"".join(parts)
    assert captured.content_type is None


@pytest.mark.asyncio  # type: ignore[misc]
async def test_stream_error_raises_capture_error() -> None:
    with pytest.raises(BodyCaptureError, match="client went away"):
        await StreamBodySource(_broken_stream()).read()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_text_source_encodes_utf8() -> None:
    captured = await TextBodySource("héllo ✓").read()
    assert captured.content == "héllo ✓".encode("utf-8")


@pytest.mark.asyncio  # type: ignore[misc]
async def test_parsed_object_serialized_as_json() -> None:
    captured = await ParsedBodySource({"a": 1, "name": "Ω"}, "").read()
    assert captured.content == '{"a":1,"name":"Ω"}'.encode("utf-8")
    assert captured.content_type == "application/json"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_parsed_object_form_encoded() -> None:
    source = ParsedBodySource({"a": "1", "b": "two words", "tags": ["x", "y"]}, "application/x-www-form-urlencoded")
    captured = await source.read()
    assert captured.content == b"a=1&b=two+words&tags=x&tags=y"
    assert captured.content_type is None


@pytest.mark.asyncio  # type: ignore[misc]
async def test_parsed_object_not_serializable() -> None:
    with pytest.raises(BodyCaptureError):
        await ParsedBodySource({"obj": object()}, "application/json").read()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_fallback_used_only_when_primary_empty() -> None:
    full = FallbackBodySource(RawBodySource(b"raw"), TextBodySource("fallback"))
    assert (await full.read()).content == b"raw"

    empty = FallbackBodySource(StreamBodySource(_chunks([])), ParsedBodySource({"k": "v"}))
    captured = await empty.read()
    assert captured.content == b'{"k":"v"}'
    assert captured.content_type == "application/json"


def test_select_body_source_resolution_order() -> None:
    assert isinstance(select_body_source(b"bytes", stream=_chunks([b"x"])), RawBodySource)
    assert isinstance(select_body_source(bytearray(b"x")), RawBodySource)
    assert isinstance(select_body_source("text", stream=_chunks([b"x"])), TextBodySource)
    assert isinstance(select_body_source(stream=_chunks([b"x"])), StreamBodySource)
    assert isinstance(select_body_source({"a": 1}, stream=_chunks([])), FallbackBodySource)
    assert isinstance(select_body_source({"a": 1}), ParsedBodySource)
    assert isinstance(select_body_source(), EmptyBodySource)


@pytest.mark.asyncio  # type: ignore[misc]
@pytest.mark.parametrize("method", ["GET", "HEAD", "TRACE", "get"])  # type: ignore[misc]
async def test_bodyless_methods_never_carry_body(method: str) -> None:
    assert await capture_body(method, RawBodySource(b"ignored")) is None


@pytest.mark.asyncio  # type: ignore[misc]
async def test_empty_capture_sends_no_body() -> None:
    assert await capture_body("POST", EmptyBodySource()) is None
    assert await capture_body("POST", RawBodySource(b"")) is None


@pytest.mark.asyncio  # type: ignore[misc]
async def test_capture_failure_is_non_fatal(capture_logs: List[str]) -> None:
    assert await capture_body("POST", StreamBodySource(_broken_stream())) is None
    assert any("Body capture failed" in msg for msg in capture_logs)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_capture_returns_bytes_for_body_methods() -> None:
    captured = await capture_body("PUT", RawBodySource(b"payload"))
    assert captured is not None
    assert captured.content == b"payload"
