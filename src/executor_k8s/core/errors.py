"""
Structured error types for the Kubernetes build executor.

Every failure the executor raises on its own carries a category, a retry
hint, and a small context mapping (usually the ``build_id``) so callers can
route, log, and decide on retries without parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the executor can report
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the build id and platform response
    - **Pass-through transport errors:** Network failures reach the caller
      as the exact ``httpx`` exception that was raised

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       ExecutorError                              │
        │  (category, retryable, retry_after, context, cause)              │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  MalformedLocatorError  TemplateParseError   ConfigError         │
        │  (VALIDATION)           (PARSE)              (CONFIG)            │
        │                                                  │               │
        │                                    TemplateNotFoundError         │
        │                                    MissingSecretError            │
        │                                                                  │
        │  CircuitOpenError       StatusError          PodLookupError      │
        │  (NETWORK, retryable)   (PLATFORM)           (PLATFORM)          │
        │                                                  │               │
        │                                           PodNotFoundError       │
        │                                           (NOT_FOUND)            │
        └─────────────────────────────────────────────────────────────────┘

        TransportError == httpx.TransportError (never wrapped)

Examples:
    >>> error = StatusError("Failed to delete job: {}", status_code=500, body={})
    >>> error.category
    <ErrorCategory.PLATFORM: 'PLATFORM'>
    >>> error.retryable
    True

Tags:
    exception, error-hierarchy, retry-logic, kubernetes, executor

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

import httpx

# Network-level failures from the HTTP client. Surfaced to callers unchanged.
TransportError = httpx.TransportError


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NETWORK = "NETWORK"           # Connection, timeout, DNS, open circuit
    PLATFORM = "PLATFORM"         # Non-success answer from the cluster API
    NOT_FOUND = "NOT_FOUND"       # Resource the build needs does not exist
    PARSE = "PARSE"               # Rendered manifest is not valid YAML
    VALIDATION = "VALIDATION"     # Bad request input (SCM URL)
    CONFIG = "CONFIG"             # Missing token, template, settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


def serialize_body(body: Any) -> str:
    """Compact JSON rendering of a response body, as embedded in messages."""
    try:
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return json.dumps(str(body))


class ExecutorError(Exception):
    """
    Base exception for all executor errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can be
    overridden per instance.

    Attributes:
        message: Human-readable description
        category: ErrorCategory for routing
        retryable: Whether the same call may succeed later
        retry_after: Suggested delay in seconds, when known
        context: Free-form metadata (``build_id``, ``url``, ...)
        cause: Underlying exception, also set as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: float | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ExecutorError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PodNotFoundError(build_id).with_context(namespace="default")
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# INPUT ERRORS
# =============================================================================


class MalformedLocatorError(ExecutorError):
    """SCM URL cannot be split into organization and repository."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, url: str, reason: str = "expected scheme:host:org/repo.git[#branch]", **kwargs: Any):
        super().__init__(f"Malformed SCM URL {url!r}: {reason}", **kwargs)
        self.url = url


class TemplateParseError(ExecutorError):
    """Rendered manifest is not a valid YAML mapping."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(ExecutorError):
    """Executor cannot be constructed from the given configuration."""

    default_category = ErrorCategory.CONFIG


class TemplateNotFoundError(ConfigError):
    """Job template file does not exist."""

    def __init__(self, path: Any, **kwargs: Any):
        super().__init__(f"Job template not found: {path}", **kwargs)
        self.path = path


class MissingSecretError(ConfigError):
    """Raised when a secret cannot be resolved from any backend."""

    def __init__(self, key: str, tried_backends: list[str] | None = None, **kwargs: Any):
        self.key = key
        self.tried_backends = tried_backends or []

        msg = f"Secret not found: {key}"
        if tried_backends:
            msg += f" (tried: {', '.join(tried_backends)})"
        super().__init__(msg, **kwargs)


# =============================================================================
# PLATFORM ERRORS
# =============================================================================


class CircuitOpenError(ExecutorError):
    """Raised when the circuit is open and rejecting requests."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True

    def __init__(self, message: str = "Circuit breaker is open", **kwargs: Any):
        super().__init__(message, **kwargs)


class StatusError(ExecutorError):
    """The cluster answered, but not with the expected status code."""

    default_category = ErrorCategory.PLATFORM

    def __init__(self, message: str, *, status_code: int, body: Any = None, **kwargs: Any):
        kwargs.setdefault("retryable", status_code >= 500 or status_code == 429)
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["status_code"] = self.status_code
        return result


class PodLookupError(ExecutorError):
    """The pod list for a build could not be read."""

    default_category = ErrorCategory.PLATFORM

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class PodNotFoundError(PodLookupError):
    """No pod carries the build's label yet."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = True

    def __init__(self, build_id: str, **kwargs: Any):
        context = {"build_id": build_id, **(kwargs.pop("context", None) or {})}
        super().__init__(
            f"No pod found for build {build_id}",
            status_code=200,
            context=context,
            **kwargs,
        )
        self.build_id = build_id


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, ExecutorError):
        return error.retryable
    return isinstance(error, (httpx.TransportError, ConnectionError))


def get_retry_after(error: Exception) -> float | None:
    """Get retry delay from error, if specified."""
    if isinstance(error, ExecutorError):
        return error.retry_after
    return None


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, ExecutorError):
        return error.category
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ExecutorError",
    "MalformedLocatorError",
    "TemplateParseError",
    "ConfigError",
    "TemplateNotFoundError",
    "MissingSecretError",
    "CircuitOpenError",
    "StatusError",
    "PodLookupError",
    "PodNotFoundError",
    "TransportError",
    "serialize_body",
    "is_retryable",
    "get_retry_after",
    "categorize_error",
]
