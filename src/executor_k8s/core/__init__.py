"""Core primitives shared by the executor: errors, logging, settings, secrets."""

from executor_k8s.core.errors import (
    CircuitOpenError,
    ConfigError,
    ErrorCategory,
    ExecutorError,
    MalformedLocatorError,
    MissingSecretError,
    PodLookupError,
    PodNotFoundError,
    StatusError,
    TemplateNotFoundError,
    TemplateParseError,
    TransportError,
    categorize_error,
    is_retryable,
)
from executor_k8s.core.logging import LogContext, configure_logging, get_logger
from executor_k8s.core.settings import ExecutorSettings

__all__ = [
    "CircuitOpenError",
    "ConfigError",
    "ErrorCategory",
    "ExecutorError",
    "ExecutorSettings",
    "LogContext",
    "MalformedLocatorError",
    "MissingSecretError",
    "PodLookupError",
    "PodNotFoundError",
    "StatusError",
    "TemplateNotFoundError",
    "TemplateParseError",
    "TransportError",
    "categorize_error",
    "configure_logging",
    "get_logger",
    "is_retryable",
]
