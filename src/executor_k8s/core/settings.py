"""Executor settings.

``ExecutorSettings`` gathers everything needed to build a ``K8sExecutor``
from the environment: cluster host, namespace, credentials, template
location, TLS toggle, transport timeout, and circuit-breaker tuning.

Features:
    - **env_prefix:** ``EXECUTOR_K8S_`` (e.g. ``EXECUTOR_K8S_HOST``)
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from executor_k8s.core.settings import ExecutorSettings
    >>> settings = ExecutorSettings(host="k8s.example.com", jobs_namespace="builds")
    >>> settings.jobs_namespace
    'builds'

Tags:
    settings, configuration, pydantic, environment, executor
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOKEN_PATH = Path("/etc/kubernetes/apikey/token")


class ExecutorSettings(BaseSettings):
    """Configuration for the Kubernetes build executor.

    Fields
    ──────
    token                     : Bearer token; read from token_path when unset
    token_path                : Mounted service-account token file
    host                      : Cluster API host (no scheme)
    jobs_namespace            : Namespace for jobs and pods
    template_path             : Job template; packaged default when unset
    verify_ssl                : Verify the API server certificate
    request_timeout           : Per-request timeout for platform calls (seconds)
    breaker_*                 : Circuit-breaker tuning
    log_level / json_logs     : Structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="EXECUTOR_K8S_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── Cluster ──────────────────────────────────────────────────
    token: str | None = Field(
        default=None,
        description="Bearer token for the cluster API.",
    )
    token_path: Path = Field(
        default=DEFAULT_TOKEN_PATH,
        description="File holding the bearer token when `token` is unset.",
    )
    host: str = Field(default="kubernetes", min_length=1)
    jobs_namespace: str = Field(default="default", min_length=1)
    template_path: Path | None = Field(
        default=None,
        description="Job template file; the packaged job.yaml.tim when unset.",
    )

    # ── Transport ────────────────────────────────────────────────
    verify_ssl: bool = False
    request_timeout: float = Field(default=30.0, gt=0)

    # ── Circuit breaker ──────────────────────────────────────────
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_failure_window: float = Field(default=60.0, gt=0)
    breaker_recovery_timeout: float = Field(default=30.0, gt=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
