# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

import os
from enum import Enum
from typing import Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT_MS = 10000


class ResponseMode(str, Enum):
    """Selects how the upstream response is shaped for the caller."""

    PASSTHROUGH = "passthrough"
    ENVELOPE = "envelope"


class GatewayConfig(BaseModel):
    """
    Immutable gateway configuration.
    Built once at startup and passed explicitly into the pipeline.
    """

    model_config = ConfigDict(frozen=True)

    origin_url: str = Field("", description="Origin template, optionally containing a '{path}' placeholder")
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0, description="Upstream deadline in milliseconds")
    allowed_client_origin: str = Field("", description="CORS allow-origin. Empty disables CORS headers")
    response_mode: ResponseMode = Field(ResponseMode.PASSTHROUGH, description="Response shaping mode")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def cors_enabled(self) -> bool:
        return bool(self.allowed_client_origin)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        """
        Loads the configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            pydantic.ValidationError: If TIMEOUT_MS or RESPONSE_MODE hold invalid values.
        """
        env = os.environ if environ is None else environ

        config = cls(
            origin_url=env.get("ORIGIN_URL", "").strip(),
            timeout_ms=env.get("TIMEOUT_MS") or DEFAULT_TIMEOUT_MS,
            allowed_client_origin=env.get("ALLOWED_CLIENT_ORIGIN", ""),
            response_mode=(env.get("RESPONSE_MODE") or ResponseMode.PASSTHROUGH.value).lower(),
        )

        if not config.origin_url:
            logger.warning("ORIGIN_URL not set in environment. Every request will be rejected as misconfigured.")

        return config
