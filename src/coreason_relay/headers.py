# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

from typing import Iterable, Optional, Tuple

from coreason_relay.config import GatewayConfig
from coreason_relay.models import HeaderList

# Headers to strip on both legs of the proxy
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    }
)

FORWARDED_FOR_HEADER = "X-Forwarded-For"

CORS_ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With"
CORS_ALLOW_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS,HEAD"


def is_hop_by_hop(name: str) -> bool:
    return name.lower() in HOP_BY_HOP_HEADERS


def strip_hop_by_hop(headers: Iterable[Tuple[str, str]]) -> HeaderList:
    """Returns the headers without hop-by-hop fields, keeping order, casing and duplicates."""
    return [(name, value) for name, value in headers if not is_hop_by_hop(name)]


def has_header(headers: HeaderList, name: str) -> bool:
    target = name.lower()
    return any(k.lower() == target for k, _ in headers)


def merge_forwarded_for(headers: HeaderList, client_host: Optional[str]) -> HeaderList:
    """
    Appends the client address to X-Forwarded-For.
    Values the caller already sent are kept; repeated X-Forwarded-For lines are folded into the first.
    """
    if not client_host:
        return headers

    existing = [v.strip() for k, v in headers if k.lower() == FORWARDED_FOR_HEADER.lower() and v.strip()]
    merged = ", ".join(existing + [client_host])

    result: HeaderList = []
    placed = False
    for name, value in headers:
        if name.lower() == FORWARDED_FOR_HEADER.lower():
            if not placed:
                result.append((name, merged))
                placed = True
            continue
        result.append((name, value))

    if not placed:
        result.append((FORWARDED_FOR_HEADER, merged))
    return result


def sanitize_request_headers(
    headers: Iterable[Tuple[str, str]],
    client_host: Optional[str] = None,
    content_type: Optional[str] = None,
) -> HeaderList:
    """
    Builds the outbound header list for the upstream request.

    Args:
        headers: The inbound header pairs.
        client_host: The caller's address, merged into X-Forwarded-For.
        content_type: Content type of a re-encoded body. Only applied when the caller sent none.

    Returns:
        HeaderList: The sanitized header pairs.
    """
    outbound = merge_forwarded_for(strip_hop_by_hop(headers), client_host)

    if content_type and not has_header(outbound, "content-type"):
        outbound.append(("Content-Type", content_type))

    return outbound


def sanitize_response_headers(headers: Iterable[Tuple[str, str]]) -> HeaderList:
    """Copies upstream headers for the caller, minus hop-by-hop fields. Nothing is added."""
    return strip_hop_by_hop(headers)


def apply_cors(headers: HeaderList, cors: HeaderList) -> HeaderList:
    """Replaces any upstream copies of the configured CORS headers, so each is sent once."""
    if not cors:
        return headers
    overridden = {name.lower() for name, _ in cors}
    return [(name, value) for name, value in headers if name.lower() not in overridden] + cors


def cors_headers(config: GatewayConfig) -> HeaderList:
    if not config.cors_enabled:
        return []
    return [
        ("Access-Control-Allow-Origin", config.allowed_client_origin),
        ("Access-Control-Allow-Headers", CORS_ALLOW_HEADERS),
        ("Access-Control-Allow-Methods", CORS_ALLOW_METHODS),
        ("Access-Control-Allow-Credentials", "true"),
    ]
