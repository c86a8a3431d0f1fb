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
import math
from typing import Any, Dict, NoReturn

from fastapi import Response, status
from fastapi.responses import JSONResponse

from coreason_relay.config import ResponseMode
from coreason_relay.exceptions import RelayError
from coreason_relay.headers import apply_cors, sanitize_response_headers
from coreason_relay.models import Envelope, HeaderList, UpstreamResponse

JSON_MEDIA_TYPE = "application/json; charset=utf-8"


def _build_response(status_code: int, content: bytes, headers: HeaderList) -> Response:
    # Headers are appended one by one so repeated fields (e.g. Set-Cookie) survive
    response = Response(content=content, status_code=status_code)
    for name, value in headers:
        response.headers.append(name, value)
    return response


def _json_response(status_code: int, payload: Dict[str, Any], cors: HeaderList) -> Response:
    response = JSONResponse(content=payload, status_code=status_code, media_type=JSON_MEDIA_TYPE)
    for name, value in cors:
        response.headers.append(name, value)
    return response


def _reject_constant(token: str) -> NoReturn:
    # NaN and Infinity are accepted by json.loads but are not JSON
    raise ValueError(f"non-standard JSON constant {token}")


def _parse_finite_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"number out of range {token}")
    return value


def build_envelope(upstream: UpstreamResponse) -> Envelope:
    """
    Wraps the upstream reply. `data` is set when the body parses as JSON (even to null),
    `text` otherwise. Never both.
    """
    ok = 200 <= upstream.status_code < 300
    try:
        parsed = json.loads(upstream.content, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except ValueError:
        return Envelope(ok=ok, status=upstream.status_code, text=upstream.content.decode("utf-8", errors="replace"))
    return Envelope(ok=ok, status=upstream.status_code, data=parsed)


def passthrough_response(method: str, upstream: UpstreamResponse, cors: HeaderList) -> Response:
    """Returns the upstream status, sanitized headers and bytes unchanged. HEAD never carries a body."""
    content = b"" if method.upper() == "HEAD" else upstream.content
    headers = apply_cors(sanitize_response_headers(upstream.headers), cors)
    return _build_response(upstream.status_code, content, headers)


def envelope_response(method: str, upstream: UpstreamResponse, cors: HeaderList) -> Response:
    """Returns a 200 JSON envelope describing the upstream reply."""
    if method.upper() == "HEAD":
        return _build_response(status.HTTP_200_OK, b"", [("Content-Type", JSON_MEDIA_TYPE)] + cors)
    envelope = build_envelope(upstream)
    return _json_response(status.HTTP_200_OK, envelope.model_dump(exclude_unset=True), cors)


def reconstruct(mode: ResponseMode, method: str, upstream: UpstreamResponse, cors: HeaderList) -> Response:
    if mode is ResponseMode.ENVELOPE:
        return envelope_response(method, upstream, cors)
    return passthrough_response(method, upstream, cors)


def preflight_response(cors: HeaderList) -> Response:
    return _build_response(status.HTTP_204_NO_CONTENT, b"", cors)


def error_response(error: RelayError, cors: HeaderList) -> Response:
    return _json_response(error.status_code, {"ok": False, "error": error.code, "detail": error.detail}, cors)
