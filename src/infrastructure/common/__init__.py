"""Common infrastructure utilities."""

from .error_handling import (
    handle_repository_errors,
    safe_call_async,
    handle_db_errors,
    ErrorMappingRule,
)

__all__ = [
    "handle_repository_errors",
    "safe_call_async",
    "handle_db_errors",
    "ErrorMappingRule",
]
