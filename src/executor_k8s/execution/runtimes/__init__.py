"""Executors for running builds on a container platform.

Architecture:

    .. code-block:: text

        executor_k8s.execution.runtimes
        ├── __init__.py   ← Public API (this file)
        ├── _types.py     ← BuildExecutor protocol + request/manifest types
        ├── _base.py      ← BaseExecutor + StubExecutor
        ├── scm.py        ← SCM URL → org / repo / branch
        ├── manifest.py   ← Job template loading and rendering
        └── kubernetes.py ← K8sExecutor (Jobs, Pods, Pod logs)
"""

from executor_k8s.execution.runtimes._base import BaseExecutor, StubExecutor
from executor_k8s.execution.runtimes._types import (
    BuildExecutor,
    BuildRequest,
    ExecutorHealth,
    RenderedManifest,
    ScmLocator,
    StopRequest,
    StreamRequest,
)
from executor_k8s.execution.runtimes.kubernetes import K8sExecutor, select_pod
from executor_k8s.execution.runtimes.manifest import (
    MANIFEST_PLACEHOLDERS,
    build_template_values,
    load_template,
    render,
)
from executor_k8s.execution.runtimes.scm import parse_scm_url

__all__ = [
    "BaseExecutor",
    "BuildExecutor",
    "BuildRequest",
    "ExecutorHealth",
    "K8sExecutor",
    "MANIFEST_PLACEHOLDERS",
    "RenderedManifest",
    "ScmLocator",
    "StopRequest",
    "StreamRequest",
    "StubExecutor",
    "build_template_values",
    "load_template",
    "parse_scm_url",
    "render",
    "select_pod",
]
