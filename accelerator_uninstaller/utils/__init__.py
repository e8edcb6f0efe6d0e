"""Shared utilities."""

from .aws_helpers import (
    client_config,
    create_client,
    get_error_code,
    get_error_message,
    is_stack_not_found,
    chunked,
)
from .logging_config import get_logger, set_debug

__all__ = [
    "client_config",
    "create_client",
    "get_error_code",
    "get_error_message",
    "is_stack_not_found",
    "chunked",
    "get_logger",
    "set_debug",
]
