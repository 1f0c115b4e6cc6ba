"""Structured logging module using structlog."""

from .structured_logger import (
    app_context_processor,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = ["app_context_processor", "bind_context", "clear_context", "configure_logging", "get_logger"]
