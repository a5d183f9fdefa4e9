"""Executor types and protocols.

This module defines the data that flows through the Kubernetes executor:

- BuildRequest / StopRequest / StreamRequest: inputs to the three operations
- ScmLocator: organization, repository, and branch parsed from an SCM URL
- RenderedManifest: the Job document produced from the template
- ExecutorHealth: reachability of the cluster API plus breaker state
- BuildExecutor: protocol every executor implements

Architecture:

    .. code-block:: text

        BuildRequest ──► ScmLocator ──┐
              │                       ▼
              └────────────────► RenderedManifest
                                      │
                                      ▼
                              POST body (transport.RequestSpec)

    .. mermaid::

        graph LR
            BR[BuildRequest] -->|"scm_url"| SL[ScmLocator]
            BR & SL -->|"render"| RM[RenderedManifest]
            RM -->|"POST body"| RS[transport.RequestSpec]

Tags:
    executor, types, protocol, kubernetes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from executor_k8s.execution.transport import LogStream


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildRequest:
    """Input to ``start``.

    ``build_id`` is the correlation key: the Job is labeled with it and later
    located by it.
    """

    build_id: str
    job_id: str
    pipeline_id: str
    job_name: str
    scm_url: str
    container: str = ""


@dataclass(frozen=True)
class StopRequest:
    """Input to ``stop``."""

    build_id: str


@dataclass(frozen=True)
class StreamRequest:
    """Input to ``stream``."""

    build_id: str


@dataclass(frozen=True)
class ScmLocator:
    """Organization, repository, and branch of a build's source."""

    org: str
    repo: str
    branch: str = "master"


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RenderedManifest:
    """Job document rendered from the template for one ``start`` call."""

    document: dict[str, Any]

    @property
    def metadata(self) -> dict[str, Any]:
        metadata = self.document.get("metadata")
        return metadata if isinstance(metadata, dict) else {}

    @property
    def name(self) -> Any:
        return self.metadata.get("name")

    @property
    def job(self) -> Any:
        return self.metadata.get("job")

    @property
    def pipeline(self) -> Any:
        return self.metadata.get("pipeline")

    @property
    def command(self) -> list[Any]:
        """Launch command: top-level ``command`` or the first container's."""
        command = self.document.get("command")
        if isinstance(command, list):
            return command
        try:
            containers = self.document["spec"]["template"]["spec"]["containers"]
            command = containers[0].get("command")
        except (KeyError, IndexError, TypeError, AttributeError):
            return []
        return command if isinstance(command, list) else []

    def to_json(self) -> dict[str, Any]:
        """Plain dict for use as a JSON request body."""
        return self.document


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@dataclass
class ExecutorHealth:
    """Cluster API reachability as seen by one executor."""

    healthy: bool
    host: str
    circuit_state: str = "closed"
    latency_ms: float | None = None
    version: str | None = None
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "host": self.host,
            "circuit_state": self.circuit_state,
            "latency_ms": self.latency_ms,
            "version": self.version,
            "message": self.message,
            "details": self.details,
        }


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class BuildExecutor(Protocol):
    """Contract between the build scheduler and an execution backend.

    Each operation completes exactly once: it returns, or it raises.
    """

    async def start(self, request: BuildRequest) -> None:
        """Create the build's platform job."""
        ...

    async def stop(self, request: StopRequest) -> None:
        """Delete the build's platform job."""
        ...

    async def stream(self, request: StreamRequest) -> LogStream:
        """Attach to the build's log output."""
        ...

    async def health(self) -> ExecutorHealth:
        """Report backend reachability. Never raises."""
        ...
