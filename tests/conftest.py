"""
Shared pytest fixtures and configuration for executor-k8s tests.

This module provides:
- Quiet structlog configuration for test isolation
- The job template and build identifiers used across executor tests
- A recording ``httpx.MockTransport`` handler for cluster API fakes
"""

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest
import structlog

# Ensure executor_k8s package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def quiet_structlog() -> Generator[None, None, None]:
    """Route structlog output nowhere; ``capture_logs`` still works."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.ReturnLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


# =============================================================================
# Build fixtures
# =============================================================================

TEST_TEMPLATE = """
metadata:
  name: {{build_id}}
  job: {{job_id}}
  pipeline: {{pipeline_id}}
command:
- "/opt/screwdriver/launch {{git_org}} {{git_repo}} {{git_branch}} {{job_name}}"
"""

SCM_URL = "git@github.com:screwdriver-cd/hashr.git"
BUILD_ID = "80754af91bfb6d1073585b046fe0a474ce868509"
JOB_ID = "2eda8ad1632af052b0c74d6fcab6058b3a79cf25"
PIPELINE_ID = "aaa83eac6890a9a6e2273ea51d6f2f2915b1a019"
JOB_NAME = "main"
JOBS_URL = "https://kubernetes/apis/batch/v1/namespaces/default/jobs"
PODS_URL = "https://kubernetes/api/v1/namespaces/default/pods"


@pytest.fixture
def test_template() -> str:
    return TEST_TEMPLATE


# =============================================================================
# Cluster API fakes
# =============================================================================


class RecordingHandler:
    """``httpx.MockTransport`` handler that records requests.

    ``responder`` receives each request and returns a response or raises.
    """

    def __init__(self, responder: Callable[[httpx.Request], Any]):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def recording_handler() -> Callable[[Callable[[httpx.Request], Any]], RecordingHandler]:
    """Factory: ``recording_handler(lambda request: httpx.Response(200))``."""
    return RecordingHandler
