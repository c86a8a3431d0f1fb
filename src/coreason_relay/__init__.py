# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

"""
Stateless single-origin HTTP reverse-proxy gateway.
"""

__version__ = "0.1.0"

from coreason_relay.config import GatewayConfig, ResponseMode
from coreason_relay.exceptions import (
    BodyCaptureError,
    MisconfiguredError,
    RelayError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from coreason_relay.pipeline import RelayPipeline

__all__ = [
    "__version__",
    "BodyCaptureError",
    "GatewayConfig",
    "MisconfiguredError",
    "RelayError",
    "RelayPipeline",
    "ResponseMode",
    "UpstreamTimeoutError",
    "UpstreamTransportError",
]
