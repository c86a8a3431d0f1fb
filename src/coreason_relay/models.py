# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from coreason_relay.body import BodySource

HeaderList = List[Tuple[str, str]]


@dataclass(frozen=True)
class CapturedBody:
    """
    Bytes obtained from the inbound request.
    `content_type` is only set when the bytes were rebuilt from a parsed object.
    """

    content: bytes = b""
    content_type: Optional[str] = None


@dataclass(frozen=True)
class InboundRequest:
    """The caller's request as handed over by the hosting runtime."""

    method: str
    path: str
    headers: HeaderList
    body: "BodySource"
    client_host: Optional[str] = None


@dataclass(frozen=True)
class OutboundRequest:
    method: str
    url: str
    headers: HeaderList
    content: Optional[bytes] = None


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    headers: HeaderList = field(default_factory=list)
    content: bytes = b""


class Envelope(BaseModel):
    """
    Normalized JSON shape returned in envelope mode.
    Serialize with `exclude_unset=True`: `data` and `text` are mutually exclusive,
    and an explicitly set `data=None` means the upstream sent JSON null.
    """

    ok: bool = Field(..., description="Whether the upstream status was in the 2xx range")
    status: int = Field(..., description="The upstream status code")
    data: Any = Field(None, description="The upstream body parsed as JSON")
    text: Optional[str] = Field(None, description="The upstream body as text when it is not JSON")
