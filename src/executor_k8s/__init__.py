"""
executor-k8s - run builds as Kubernetes Jobs.

    >>> from executor_k8s import K8sExecutor, BuildRequest
    >>> executor = K8sExecutor(token="...", host="kubernetes.example.com")
    >>> await executor.start(BuildRequest(build_id=..., scm_url=..., ...))
"""

__version__ = "0.1.0"

from executor_k8s.core.errors import (  # noqa: E402
    CircuitOpenError,
    ExecutorError,
    MalformedLocatorError,
    PodLookupError,
    PodNotFoundError,
    StatusError,
    TemplateParseError,
    TransportError,
)
from executor_k8s.core.settings import ExecutorSettings  # noqa: E402
from executor_k8s.execution.runtimes import (  # noqa: E402
    BuildExecutor,
    BuildRequest,
    K8sExecutor,
    StopRequest,
    StreamRequest,
)
from executor_k8s.execution.transport import LogStream  # noqa: E402

__all__ = [
    "BuildExecutor",
    "BuildRequest",
    "CircuitOpenError",
    "ExecutorError",
    "ExecutorSettings",
    "K8sExecutor",
    "LogStream",
    "MalformedLocatorError",
    "PodLookupError",
    "PodNotFoundError",
    "StatusError",
    "StopRequest",
    "StreamRequest",
    "TemplateParseError",
    "TransportError",
    "__version__",
]
