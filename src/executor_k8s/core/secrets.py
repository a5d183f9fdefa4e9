"""Bearer-token resolution for the cluster API.

The executor authenticates with a token that is either passed in explicitly
or mounted into the pod as a file (Kubernetes secret volume). Resolution
happens once, at executor construction.

Example:
    >>> backend = FileSecretBackend("/etc/kubernetes/apikey")
    >>> backend.get("token")  # contents of /etc/kubernetes/apikey/token
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path

from executor_k8s.core.errors import MissingSecretError


class SecretValue:
    """Wrapper for secret values that prevents accidental logging.

    The string representation shows ``[REDACTED]`` instead of the value.
    Use ``.get_secret()`` to access the actual value.
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        self._value = value

    def get_secret(self) -> str:
        """Get the actual secret value."""
        return self._value

    def __str__(self) -> str:
        return "[REDACTED]"

    def __repr__(self) -> str:
        return "SecretValue('[REDACTED]')"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretValue):
            return self._value == other._value
        return False

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)


class SecretBackend(ABC):
    """Abstract base for secret backends."""

    @abstractmethod
    def get(self, name: str) -> str | None:
        """Retrieve a secret by name, or None if this backend lacks it."""
        ...


class FileSecretBackend(SecretBackend):
    """Resolve secrets from files.

    Designed for Kubernetes mounted secrets. Caches file contents after
    first read.
    """

    def __init__(self, secrets_dir: str | Path = "/etc/kubernetes/apikey"):
        self.secrets_dir = Path(secrets_dir)
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> str | None:
        """Resolve secret from file.

        Args:
            name: Secret key (becomes filename)

        Returns:
            File contents (stripped) or None if file doesn't exist
        """
        with self._lock:
            if name in self._cache:
                return self._cache[name]

        secret_path = self.secrets_dir / name
        if not secret_path.is_file():
            return None

        try:
            content = secret_path.read_text(encoding="utf-8").strip()
        except OSError:
            return None

        with self._lock:
            self._cache[name] = content
        return content

    def clear_cache(self) -> None:
        """Clear the file content cache."""
        with self._lock:
            self._cache.clear()


def load_token(token_path: str | Path, backend: SecretBackend | None = None) -> SecretValue:
    """Read the bearer token stored at ``token_path``.

    Raises:
        MissingSecretError: If the file is absent, unreadable, or empty.
    """
    path = Path(token_path)
    backend = backend or FileSecretBackend(path.parent)
    value = backend.get(path.name)
    if not value:
        raise MissingSecretError(str(path), tried_backends=[type(backend).__name__])
    return SecretValue(value)


__all__ = [
    "SecretValue",
    "SecretBackend",
    "FileSecretBackend",
    "load_token",
]
