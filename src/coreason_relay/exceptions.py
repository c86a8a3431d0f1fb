# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay


class RelayError(Exception):
    """Base exception for all Relay errors surfaced to the caller."""

    status_code: int = 502
    code: str = "gateway_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MisconfiguredError(RelayError):
    """Raised when required configuration is missing. Detected before any network I/O."""

    status_code = 500
    code = "gateway_misconfigured"


class UpstreamTimeoutError(RelayError):
    """Raised when the upstream call does not complete within the configured deadline."""

    status_code = 504
    code = "gateway_timeout"

    def __init__(self, timeout_ms: int):
        super().__init__(f"upstream timeout {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class UpstreamTransportError(RelayError):
    """Raised for any other upstream failure (DNS, refused connection, TLS, premature close)."""

    status_code = 502
    code = "gateway_error"


class BodyCaptureError(Exception):
    """Raised by a body source when the inbound payload cannot be read. Never reaches the caller."""

    pass
