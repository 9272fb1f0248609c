"""Trace recording."""

from .trace_logger import (
    TraceLogger,
    TraceLoggerConfig,
    TraceRecord,
    read_trace,
)
