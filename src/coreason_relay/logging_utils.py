# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

import logging
import os
import sys
from types import FrameType
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler

# Header values never written to logs
SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "x-auth-token",
}

# Add any additional sensitive headers from environment configuration
_extra_headers = os.environ.get("RELAY_SENSITIVE_HEADERS", "")
if _extra_headers:
    SENSITIVE_HEADERS.update(h.strip().lower() for h in _extra_headers.split(",") if h.strip())


def redact_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Returns a copy of the header pairs that is safe to log.
    Values of sensitive headers are replaced with "[REDACTED]".
    """
    return [(name, "[REDACTED]" if name.lower() in SENSITIVE_HEADERS else value) for name, value in headers]


def _trace_context_patcher(record: Dict[str, Any]) -> None:
    """
    Loguru patcher to inject trace_id and span_id into extra.
    """
    span = trace.get_current_span()
    if not span:
        return

    ctx = span.get_span_context()
    if ctx.is_valid:
        record["extra"]["trace_id"] = f"{ctx.trace_id:032x}"
        record["extra"]["span_id"] = f"{ctx.span_id:016x}"
    else:
        record["extra"]["trace_id"] = "0" * 32
        record["extra"]["span_id"] = "0" * 16


class InterceptHandler(logging.Handler):
    """
    Redirects standard logging (uvicorn, httpx) to Loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Find caller from where originated the logged message
        frame: Optional[FrameType] = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(logger_provider: Optional[LoggerProvider] = None) -> None:
    """
    Configures Loguru with:
    1. Console sink (Text or JSON)
    2. Optional file sink (JSON with rotation), disabled when LOG_FILE is empty
    3. Optional OpenTelemetry sink
    4. Trace context patcher
    5. Standard library logging interception

    Args:
        logger_provider: Optional OTel LoggerProvider.
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get("LOG_FORMAT", "TEXT").upper()
    log_file = os.environ.get("LOG_FILE", "logs/app.log")

    logger.remove()

    if log_format == "JSON":
        logger.add(sys.stderr, level=log_level, serialize=True)
    else:
        fmt = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "trace_id={extra[trace_id]} span_id={extra[span_id]} | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )
        logger.add(sys.stderr, level=log_level, format=fmt)

    if log_file:
        logger.add(log_file, rotation="500 MB", retention="10 days", serialize=True, enqueue=True, level=log_level)

    if logger_provider:
        otel_handler = LoggingHandler(logger_provider=logger_provider, level=logging.NOTSET)
        logger.add(otel_handler, level=log_level)

    logger.configure(patcher=_trace_context_patcher)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
