"""Tests for the ``executor-k8s`` CLI commands."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from executor_k8s import __version__
from executor_k8s.cli.app import app, set_executor_factory
from executor_k8s.execution.runtimes import BuildRequest, K8sExecutor, StubExecutor

runner = CliRunner()

START_ARGS = [
    "start",
    "--build-id", "build-1",
    "--job-id", "job-1",
    "--pipeline-id", "pipeline-1",
    "--job-name", "main",
    "--scm-url", "git@github.com:screwdriver-cd/hashr.git#addSD",
]


@pytest.fixture
def stub():
    executor = StubExecutor(log_lines=["cloning", "building"])
    set_executor_factory(lambda settings: executor)
    try:
        with patch("executor_k8s.cli.app.configure_logging"):
            yield executor
    finally:
        set_executor_factory(K8sExecutor.from_settings)


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestStartCommand:
    def test_start(self, stub):
        result = runner.invoke(app, START_ARGS)
        assert result.exit_code == 0
        assert "Started" in result.output
        request = stub.builds["build-1"]
        assert request.scm_url.endswith("#addSD")
        assert request.container == ""

    def test_start_failure_exits_1(self, stub):
        stub.fail_start = True
        result = runner.invoke(app, START_ARGS)
        assert result.exit_code == 1
        assert "StatusError" in result.output

    def test_start_requires_build_id(self, stub):
        result = runner.invoke(app, ["start", "--job-id", "job-1"])
        assert result.exit_code != 0
        assert stub.start_count == 0


class TestStopCommand:
    def test_stop(self, stub):
        result = runner.invoke(app, ["stop", "--build-id", "build-1"])
        assert result.exit_code == 0
        assert "Stopped" in result.output
        assert stub.stop_count == 1


class TestStreamCommand:
    def test_stream_prints_lines(self, stub):
        stub.builds["build-1"] = BuildRequest("build-1", "job-1", "pipeline-1", "main", "git@h:o/r.git")
        result = runner.invoke(app, ["stream", "--build-id", "build-1"])
        assert result.exit_code == 0
        assert "cloning\nbuilding" in result.output

    def test_stream_unknown_build(self, stub):
        result = runner.invoke(app, ["stream", "--build-id", "missing"])
        assert result.exit_code == 1
        assert "PodNotFoundError" in result.output

    def test_transport_error_exits_1(self, stub):
        async def refuse(request):
            raise httpx.ConnectError("connection refused")

        with patch.object(stub, "_do_stream", refuse):
            result = runner.invoke(app, ["stream", "--build-id", "build-1"])
        assert result.exit_code == 1
        assert "ConnectError" in result.output


class TestHealthCommand:
    def test_healthy(self, stub):
        result = runner.invoke(app, ["health"])
        assert result.exit_code == 0
        assert "healthy" in result.output

    def test_json(self, stub):
        result = runner.invoke(app, ["health", "--json"])
        assert result.exit_code == 0
        assert '"healthy": true' in result.output

    def test_unhealthy_exits_1(self, stub):
        stub.fail_health = True
        result = runner.invoke(app, ["health"])
        assert result.exit_code == 1
