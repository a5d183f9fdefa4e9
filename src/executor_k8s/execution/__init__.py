"""Execution layer: circuit breaker, resilient transport, and executors."""

from executor_k8s.execution.circuit_breaker import CircuitBreaker, CircuitState, CircuitStats
from executor_k8s.execution.transport import (
    LogStream,
    PlatformResponse,
    RequestSpec,
    ResilientTransport,
    build_async_client,
)

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "CircuitStats",
    "LogStream",
    "PlatformResponse",
    "RequestSpec",
    "ResilientTransport",
    "build_async_client",
]
