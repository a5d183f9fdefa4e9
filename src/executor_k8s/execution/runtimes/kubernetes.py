"""Kubernetes executor.

Maps the three build-lifecycle operations onto the cluster API:

    .. code-block:: text

        start(BuildRequest)
          ├── parse_scm_url(scm_url)            → org, repo, branch
          ├── render(template, values)          → Job manifest
          ├── POST   {jobs_url}                 (breaker)
          └── 201 → ok │ other → StatusError("Failed to create job: <body>")

        stop(StopRequest)
          ├── DELETE {jobs_url}?labelSelector=sdbuild=<build_id>   (breaker)
          └── 200 → ok │ other → StatusError("Failed to delete job: <body>")

        stream(StreamRequest)
          ├── GET    {pods_url}?labelSelector=sdbuild=<build_id>   (breaker)
          │     ├── non-200      → PodLookupError("Failed to get pod: <body>")
          │     ├── bad body     → PodLookupError
          │     └── no items     → PodNotFoundError
          ├── select_pod(items)  → pod name
          └── GET    {pods_url}/<pod>/log?container=build&follow=true&pretty=true
                (direct, streaming) → LogStream

Transport failures (``httpx.TransportError``) and ``CircuitOpenError``
propagate unchanged. No operation retries; resilience is the breaker's job.

Pod selection:
    Several pods can carry a build's label when a Job's pod is rescheduled.
    ``select_pod`` prefers pods in phase ``Running``, then the newest
    ``metadata.creationTimestamp``. Items without those fields keep list
    order, so the first listed pod wins ties.

Tags:
    kubernetes, executor, jobs, pods, logs
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx

from executor_k8s.core.errors import (
    PodLookupError,
    PodNotFoundError,
    StatusError,
    serialize_body,
)
from executor_k8s.core.logging import get_logger
from executor_k8s.core.secrets import load_token
from executor_k8s.core.settings import DEFAULT_TOKEN_PATH, ExecutorSettings
from executor_k8s.execution.circuit_breaker import CircuitBreaker
from executor_k8s.execution.runtimes._base import BaseExecutor
from executor_k8s.execution.runtimes._types import (
    BuildRequest,
    ExecutorHealth,
    StopRequest,
    StreamRequest,
)
from executor_k8s.execution.runtimes.manifest import build_template_values, load_template, render
from executor_k8s.execution.runtimes.scm import parse_scm_url
from executor_k8s.execution.transport import (
    LogStream,
    RequestSpec,
    ResilientTransport,
    build_async_client,
)

logger = get_logger(__name__)

BUILD_LABEL = "sdbuild"
BUILD_CONTAINER = "build"

JOB_CREATED = 201
JOB_DELETED = 200
PODS_LISTED = 200


def label_selector(build_id: str) -> str:
    """Query string selecting resources labeled with ``build_id``."""
    return f"labelSelector={BUILD_LABEL}={build_id}"


def select_pod(items: list[Any]) -> dict[str, Any]:
    """Pick the pod to stream from a non-empty pod list."""
    def _rank(indexed: tuple[int, Any]) -> tuple[int, str, int]:
        index, item = indexed
        if not isinstance(item, dict):
            return (0, "", -index)
        phase = (item.get("status") or {}).get("phase")
        created = (item.get("metadata") or {}).get("creationTimestamp") or ""
        return (1 if phase == "Running" else 0, str(created), -index)

    _, best = max(enumerate(items), key=_rank)
    return best


class K8sExecutor(BaseExecutor):
    """Build executor backed by Kubernetes Jobs.

    Args:
        token: Bearer token; read from ``token_path`` when omitted.
        host: Cluster API host, without scheme.
        jobs_namespace: Namespace for jobs and pods.
        template: Job template text; the packaged template when omitted.
        breaker: Circuit breaker shared by every call of this executor.
        client: Pre-built ``httpx.AsyncClient`` (tests, custom transports).
        token_path: Token file consulted when ``token`` is omitted.
        verify_ssl: Verify the API server certificate.
        timeout: Per-request timeout in seconds.

    Raises:
        MissingSecretError: No token given and none readable at ``token_path``.
        TemplateNotFoundError: No template given and the default is missing.
    """

    def __init__(
        self,
        token: str | None = None,
        host: str = "kubernetes",
        jobs_namespace: str = "default",
        *,
        template: str | None = None,
        breaker: CircuitBreaker | None = None,
        client: httpx.AsyncClient | None = None,
        token_path: str | Path = DEFAULT_TOKEN_PATH,
        verify_ssl: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self.jobs_namespace = jobs_namespace
        self.jobs_url = f"https://{host}/apis/batch/v1/namespaces/{jobs_namespace}/jobs"
        self.pods_url = f"https://{host}/api/v1/namespaces/{jobs_namespace}/pods"

        self.template = template if template is not None else load_template()

        if client is None:
            if token is None:
                token = load_token(token_path).get_secret()
            client = build_async_client(token, verify_ssl=verify_ssl, timeout=timeout)
        self.transport = ResilientTransport(
            client,
            breaker or CircuitBreaker(name=f"kubernetes:{host}"),
        )

    @classmethod
    def from_settings(
        cls,
        settings: ExecutorSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> K8sExecutor:
        """Build an executor from ``ExecutorSettings`` (environment by default)."""
        settings = settings or ExecutorSettings()
        breaker = CircuitBreaker(
            name=f"kubernetes:{settings.host}",
            failure_threshold=settings.breaker_failure_threshold,
            failure_window=settings.breaker_failure_window,
            recovery_timeout=settings.breaker_recovery_timeout,
        )
        return cls(
            token=settings.token,
            host=settings.host,
            jobs_namespace=settings.jobs_namespace,
            template=load_template(settings.template_path),
            breaker=breaker,
            client=client,
            token_path=settings.token_path,
            verify_ssl=settings.verify_ssl,
            timeout=settings.request_timeout,
        )

    @property
    def executor_name(self) -> str:
        return "k8s"

    @property
    def host(self) -> str:
        return self._host

    @property
    def breaker(self) -> CircuitBreaker:
        return self.transport.breaker

    # --- Operations ---

    async def _do_start(self, request: BuildRequest) -> None:
        locator = parse_scm_url(request.scm_url)
        manifest = render(self.template, build_template_values(request, locator))

        response = await self.transport.execute(
            RequestSpec(method="POST", url=self.jobs_url, json=manifest.to_json())
        )
        if response.status_code != JOB_CREATED:
            raise StatusError(
                f"Failed to create job: {serialize_body(response.body)}",
                status_code=response.status_code,
                body=response.body,
                context={"build_id": request.build_id},
            )

    async def _do_stop(self, request: StopRequest) -> None:
        response = await self.transport.execute(
            RequestSpec(method="DELETE", url=f"{self.jobs_url}?{label_selector(request.build_id)}")
        )
        if response.status_code != JOB_DELETED:
            raise StatusError(
                f"Failed to delete job: {serialize_body(response.body)}",
                status_code=response.status_code,
                body=response.body,
                context={"build_id": request.build_id},
            )

    async def _do_stream(self, request: StreamRequest) -> LogStream:
        pod_name = await self._resolve_pod(request.build_id)
        logger.debug("executor.pod_resolved", pod=pod_name)
        return await self.transport.open_log_stream(self.log_url(pod_name))

    async def _do_health(self) -> ExecutorHealth:
        response = await self.transport.execute(
            RequestSpec(method="GET", url=f"https://{self._host}/version")
        )
        version = response.body.get("gitVersion") if isinstance(response.body, dict) else None
        return ExecutorHealth(
            healthy=response.ok,
            host=self._host,
            circuit_state=self.breaker.state.value,
            version=version,
            message="ok" if response.ok else f"Unexpected status {response.status_code}",
        )

    async def health(self) -> ExecutorHealth:
        result = await super().health()
        result.circuit_state = self.breaker.state.value
        return result

    # --- Helpers ---

    def log_url(self, pod_name: str) -> str:
        return f"{self.pods_url}/{pod_name}/log?container={BUILD_CONTAINER}&follow=true&pretty=true"

    async def _resolve_pod(self, build_id: str) -> str:
        response = await self.transport.execute(
            RequestSpec(method="GET", url=f"{self.pods_url}?{label_selector(build_id)}")
        )
        context = {"build_id": build_id}
        if response.status_code != PODS_LISTED:
            raise PodLookupError(
                f"Failed to get pod: {serialize_body(response.body)}",
                status_code=response.status_code,
                body=response.body,
                context=context,
            )

        items = response.body.get("items") if isinstance(response.body, dict) else None
        if not isinstance(items, list):
            raise PodLookupError(
                f"Malformed pod list: {serialize_body(response.body)}",
                status_code=response.status_code,
                body=response.body,
                context=context,
            )
        if not items:
            raise PodNotFoundError(build_id)

        pod = select_pod(items)
        name = (pod.get("metadata") or {}).get("name") if isinstance(pod, dict) else None
        if not name:
            raise PodLookupError(
                f"Pod without a name in list: {serialize_body(pod)}",
                status_code=response.status_code,
                body=response.body,
                context=context,
            )
        return name

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.transport.aclose()

    async def __aenter__(self) -> K8sExecutor:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
