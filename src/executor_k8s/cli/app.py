"""
Root Typer application for the executor CLI.

    executor-k8s start  --build-id ID --job-id ID --pipeline-id ID --job-name main --scm-url URL
    executor-k8s stop   --build-id ID
    executor-k8s stream --build-id ID
    executor-k8s health [--json]

Settings come from ``EXECUTOR_K8S_*`` environment variables (see
``ExecutorSettings``). Streamed build logs go to stdout; diagnostics and
structured logs go to stderr.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import typer
from rich.console import Console
from typer import Typer

from executor_k8s.core.errors import ExecutorError
from executor_k8s.core.logging import configure_logging
from executor_k8s.core.settings import ExecutorSettings
from executor_k8s.execution.runtimes import (
    BaseExecutor,
    BuildRequest,
    K8sExecutor,
    StopRequest,
    StreamRequest,
)

T = TypeVar("T")

app = Typer(
    name="executor-k8s",
    help="executor-k8s: run builds as Kubernetes Jobs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)

ExecutorFactory = Callable[[ExecutorSettings], BaseExecutor]

_executor_factory: ExecutorFactory = K8sExecutor.from_settings


def set_executor_factory(factory: ExecutorFactory) -> None:
    """Replace how commands build their executor (tests, embedding)."""
    global _executor_factory
    _executor_factory = factory


def _run(operation: Callable[[BaseExecutor], Awaitable[T]]) -> T:
    """Build an executor, run one operation on it, map failures to exit 1."""

    async def _main() -> T:
        executor = _executor_factory(ExecutorSettings())
        try:
            return await operation(executor)
        finally:
            await executor.aclose()

    try:
        return asyncio.run(_main())
    except (ExecutorError, httpx.TransportError) as exc:
        err_console.print(f"[bold red]Error[/bold red] ({type(exc).__name__}): {exc}")
        raise typer.Exit(code=1) from exc


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from executor_k8s import __version__

        typer.echo(f"executor-k8s {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override EXECUTOR_K8S_LOG_LEVEL."),
) -> None:
    """Run builds as Kubernetes Jobs."""
    settings = ExecutorSettings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.json_logs)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("start")
def start(
    build_id: str = typer.Option(..., "--build-id"),
    job_id: str = typer.Option(..., "--job-id"),
    pipeline_id: str = typer.Option(..., "--pipeline-id"),
    job_name: str = typer.Option(..., "--job-name"),
    scm_url: str = typer.Option(..., "--scm-url"),
    container: str = typer.Option("", "--container"),
) -> None:
    """Create the Job for a build."""
    request = BuildRequest(
        build_id=build_id,
        job_id=job_id,
        pipeline_id=pipeline_id,
        job_name=job_name,
        scm_url=scm_url,
        container=container,
    )
    _run(lambda executor: executor.start(request))
    err_console.print(f"[green]Started[/green] build {build_id}")


@app.command("stop")
def stop(build_id: str = typer.Option(..., "--build-id")) -> None:
    """Delete the Job for a build."""
    _run(lambda executor: executor.stop(StopRequest(build_id=build_id)))
    err_console.print(f"[green]Stopped[/green] build {build_id}")


@app.command("stream")
def stream(build_id: str = typer.Option(..., "--build-id")) -> None:
    """Follow a build's logs until the pod's output ends."""

    async def _follow(executor: BaseExecutor) -> None:
        async with await executor.stream(StreamRequest(build_id=build_id)) as logs:
            async for line in logs:
                typer.echo(line)

    _run(_follow)


@app.command("health")
def health(json_out: bool = typer.Option(False, "--json")) -> None:
    """Check that the cluster API is reachable."""
    result = _run(lambda executor: executor.health())

    if json_out:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        console.print("[bold]Health[/bold]")
        for key, value in result.to_dict().items():
            console.print(f"  [cyan]{key}[/cyan]: {value}")

    if not result.healthy:
        raise typer.Exit(code=1)
