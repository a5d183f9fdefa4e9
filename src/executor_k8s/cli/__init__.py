"""Command-line interface for executor-k8s."""

from executor_k8s.cli.app import app

__all__ = ["app"]
