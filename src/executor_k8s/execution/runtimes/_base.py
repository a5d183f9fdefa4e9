"""Base executor with shared lifecycle logic.

Provides ``BaseExecutor`` with the common patterns around every operation
(log context, structured logging, latency timing for health) and
``StubExecutor`` for tests.

Architecture:

    .. code-block:: text

        BuildExecutor (Protocol)
              │
              ▼
        BaseExecutor (Abstract Base)
        ├── start()  → log context + logging → _do_start()
        ├── stop()   → log context + logging → _do_stop()
        ├── stream() → log context + logging → _do_stream()
        └── health() → latency timing        → _do_health()
              │
        ┌─────┴──────────────────┐
        │                        │
        ▼                        ▼
    K8sExecutor              StubExecutor
    (cluster API)            (in-memory for tests)

    Failures are logged and re-raised unchanged: the caller sees exactly
    the exception the backend produced.

Usage:
    # In tests:
    executor = StubExecutor(log_lines=["hello"])
    await executor.start(request)
    logs = await executor.stream(StreamRequest(request.build_id))

Tags:
    executor, base, abstract, adapter-ABC
"""

from __future__ import annotations

import time

import httpx

from executor_k8s.core.errors import PodNotFoundError, StatusError
from executor_k8s.core.logging import LogContext, get_logger
from executor_k8s.execution.runtimes._types import (
    BuildRequest,
    ExecutorHealth,
    StopRequest,
    StreamRequest,
)
from executor_k8s.execution.transport import LogStream

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Base executor
# ---------------------------------------------------------------------------

class BaseExecutor:
    """Base class for executors with shared lifecycle logic.

    Subclasses MUST implement:
        _do_start, _do_stop, _do_stream, _do_health

    .. code-block:: text

        start(request)
          ├── bind build_id into the log context
          ├── log: executor.start
          ├── _do_start(request)  ← subclass implements
          ├── log: executor.started
          └── on error: log executor.start_failed, re-raise

        health()
          ├── start timer
          ├── _do_health()  ← subclass implements
          ├── compute latency_ms
          └── on error: return ExecutorHealth(healthy=False)
    """

    @property
    def executor_name(self) -> str:
        """Unique name for this executor."""
        raise NotImplementedError

    @property
    def host(self) -> str:
        return self.executor_name

    async def start(self, request: BuildRequest) -> None:
        """Start a build."""
        async with LogContext(build_id=request.build_id, operation="start"):
            logger.info(
                "executor.start",
                executor=self.executor_name,
                job_id=request.job_id,
                pipeline_id=request.pipeline_id,
                job_name=request.job_name,
            )
            try:
                await self._do_start(request)
            except Exception as exc:
                logger.error("executor.start_failed", error=str(exc), error_type=type(exc).__name__)
                raise
            logger.info("executor.started")

    async def stop(self, request: StopRequest) -> None:
        """Stop a build."""
        async with LogContext(build_id=request.build_id, operation="stop"):
            logger.info("executor.stop", executor=self.executor_name)
            try:
                await self._do_stop(request)
            except Exception as exc:
                logger.error("executor.stop_failed", error=str(exc), error_type=type(exc).__name__)
                raise
            logger.info("executor.stopped")

    async def stream(self, request: StreamRequest) -> LogStream:
        """Attach to a build's logs. The caller closes the returned stream."""
        async with LogContext(build_id=request.build_id, operation="stream"):
            logger.info("executor.stream", executor=self.executor_name)
            try:
                stream = await self._do_stream(request)
            except Exception as exc:
                logger.error("executor.stream_failed", error=str(exc), error_type=type(exc).__name__)
                raise
            logger.info("executor.streaming", status_code=stream.status_code)
            return stream

    async def health(self) -> ExecutorHealth:
        """Health check with latency timing. Never raises."""
        started = time.perf_counter()
        try:
            result = await self._do_health()
        except Exception as exc:
            return ExecutorHealth(
                healthy=False,
                host=self.host,
                message=f"Health check failed: {exc}",
                latency_ms=(time.perf_counter() - started) * 1000,
            )
        result.latency_ms = (time.perf_counter() - started) * 1000
        return result

    async def aclose(self) -> None:
        """Release held resources. Default: nothing to release."""

    # --- Abstract methods for subclasses ---

    async def _do_start(self, request: BuildRequest) -> None:
        raise NotImplementedError

    async def _do_stop(self, request: StopRequest) -> None:
        raise NotImplementedError

    async def _do_stream(self, request: StreamRequest) -> LogStream:
        raise NotImplementedError

    async def _do_health(self) -> ExecutorHealth:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Stub executor for testing
# ---------------------------------------------------------------------------

class StubExecutor(BaseExecutor):
    """In-memory executor for unit tests.

    No cluster is contacted. Started builds are remembered until stopped, and
    streaming a known build yields ``log_lines``.

    Inject failures:
      executor.fail_start = True   → start() raises StatusError(500)
      executor.fail_health = True  → health() reports unhealthy

    Example:
        >>> executor = StubExecutor()
        >>> await executor.start(request)
        >>> request.build_id in executor.builds
        True
    """

    def __init__(self, *, log_lines: list[str] | None = None) -> None:
        self.log_lines = log_lines if log_lines is not None else ["[stub] build started", "[stub] build finished"]
        self.builds: dict[str, BuildRequest] = {}
        self.start_count: int = 0
        self.stop_count: int = 0

        self.fail_start: bool = False
        self.fail_health: bool = False

    @property
    def executor_name(self) -> str:
        return "stub"

    async def _do_start(self, request: BuildRequest) -> None:
        if self.fail_start:
            raise StatusError(
                "Failed to create job: injected failure",
                status_code=500,
                context={"build_id": request.build_id},
            )
        self.start_count += 1
        self.builds[request.build_id] = request

    async def _do_stop(self, request: StopRequest) -> None:
        self.stop_count += 1
        self.builds.pop(request.build_id, None)

    async def _do_stream(self, request: StreamRequest) -> LogStream:
        if request.build_id not in self.builds:
            raise PodNotFoundError(request.build_id)
        content = "".join(f"{line}\n" for line in self.log_lines).encode("utf-8")
        response = httpx.Response(
            200,
            content=content,
            request=httpx.Request("GET", f"stub://builds/{request.build_id}/log"),
        )
        return LogStream(response)

    async def _do_health(self) -> ExecutorHealth:
        if self.fail_health:
            return ExecutorHealth(healthy=False, host="stub", message="Stub: health failure injected")
        return ExecutorHealth(healthy=True, host="stub", version="0.0.0-stub")
