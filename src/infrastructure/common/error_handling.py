"""Error handling decorators and utilities.

This module provides decorators and utilities for consistent error handling
across the infrastructure layer: mapping library exceptions onto domain
errors, and running best-effort calls whose failure must not propagate.
"""

import inspect
from functools import wraps
from typing import TypeVar, Callable, Any, Optional, Type, Tuple
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError

from src.domain.exceptions import DomainException, ModerationError, PersistenceError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ErrorMappingRule:
    """Rule for mapping infrastructure errors to domain errors."""

    source_exception: Type[Exception]
    target_exception: Type[DomainException]
    message_template: Optional[str] = None
    should_log: bool = True
    log_level: str = "error"


# Default error mapping rules
DEFAULT_ERROR_MAPPINGS = [
    ErrorMappingRule(
        source_exception=SQLAlchemyError,
        target_exception=PersistenceError,
        message_template="Database error: {original_message}",
    ),
]


def handle_repository_errors(
    error_mappings: Optional[list[ErrorMappingRule]] = None,
) -> Callable[[F], F]:
    """Decorator for handling repository layer errors.

    Maps infrastructure exceptions to domain exceptions. Domain exceptions
    raised inside the wrapped call pass through untouched.

    Args:
        error_mappings: Custom error mapping rules

    Returns:
        Decorated function
    """
    mappings = error_mappings or DEFAULT_ERROR_MAPPINGS

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except DomainException:
                    raise
                except Exception as e:
                    _handle_error(e, mappings, func.__name__)

            return async_wrapper
        else:

            @wraps(func)
            def sync_wrapper(*args, **kwargs):
                try:
                    return func(*args, **kwargs)
                except DomainException:
                    raise
                except Exception as e:
                    _handle_error(e, mappings, func.__name__)

            return sync_wrapper

    return decorator


def _handle_error(
    error: Exception, mappings: list[ErrorMappingRule], func_name: str
) -> None:
    """Handle error using mapping rules."""
    for rule in mappings:
        if isinstance(error, rule.source_exception):
            if rule.should_log:
                log_method = getattr(logger, rule.log_level.lower())
                log_method("Repository error", function=func_name, error=str(error))

            message = (
                rule.message_template.format(original_message=str(error))
                if rule.message_template
                else str(error)
            )

            if issubclass(rule.target_exception, ModerationError):
                raise rule.target_exception(message, cause=error) from error
            raise rule.target_exception(message) from error

    # If no mapping found, re-raise original exception
    logger.error("Unhandled error", function=func_name, error=str(error))
    raise error


async def safe_call_async(
    func: Callable,
    *args,
    default_return: Any = None,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    log_errors: bool = True,
    **kwargs,
) -> Any:
    """Safely call an async function with error handling.

    Args:
        func: Async function to call
        *args: Positional arguments
        default_return: Value to return on error
        exceptions: Exception types to catch
        log_errors: Whether to log caught errors
        **kwargs: Keyword arguments

    Returns:
        Function result or default_return on error
    """
    try:
        return await func(*args, **kwargs)
    except exceptions as e:
        if log_errors:
            logger.warning(
                "Best-effort call failed",
                function=getattr(func, "__name__", repr(func)),
                error=str(e),
                error_type=type(e).__name__,
            )
        return default_return


# Convenience decorator for repository methods
handle_db_errors = handle_repository_errors()
