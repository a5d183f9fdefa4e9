"""Tests for token resolution."""

import pytest

from executor_k8s.core.errors import ConfigError, MissingSecretError
from executor_k8s.core.secrets import (
    FileSecretBackend,
    SecretBackend,
    SecretValue,
    load_token,
)


class TestSecretValue:
    """Tests for SecretValue wrapper."""

    def test_secret_value_creation(self):
        sv = SecretValue("api_key")
        assert sv.get_secret() == "api_key"

    def test_secret_value_str_redacted(self):
        sv = SecretValue("api_key")
        assert str(sv) == "[REDACTED]"
        assert "api_key" not in repr(sv)

    def test_secret_value_equality(self):
        assert SecretValue("a") == SecretValue("a")
        assert SecretValue("a") != SecretValue("b")
        assert SecretValue("a") != "a"

    def test_secret_value_bool(self):
        assert SecretValue("token")
        assert not SecretValue("")


class TestFileSecretBackend:
    """Tests for FileSecretBackend."""

    def test_reads_and_strips_file(self, tmp_path):
        (tmp_path / "token").write_text("api_key\n")
        backend = FileSecretBackend(tmp_path)
        assert backend.get("token") == "api_key"

    def test_missing_file_returns_none(self, tmp_path):
        backend = FileSecretBackend(tmp_path)
        assert backend.get("token") is None

    def test_missing_directory_returns_none(self, tmp_path):
        backend = FileSecretBackend(tmp_path / "nope")
        assert backend.get("token") is None

    def test_caches_after_first_read(self, tmp_path):
        secret = tmp_path / "token"
        secret.write_text("first")
        backend = FileSecretBackend(tmp_path)
        assert backend.get("token") == "first"

        secret.write_text("second")
        assert backend.get("token") == "first"

        backend.clear_cache()
        assert backend.get("token") == "second"


class TestLoadToken:
    """Tests for load_token."""

    def test_loads_token_from_path(self, tmp_path):
        path = tmp_path / "token"
        path.write_text("api_key")
        token = load_token(path)
        assert isinstance(token, SecretValue)
        assert token.get_secret() == "api_key"

    def test_missing_token_raises(self, tmp_path):
        with pytest.raises(MissingSecretError) as exc_info:
            load_token(tmp_path / "token")
        assert isinstance(exc_info.value, ConfigError)
        assert "token" in str(exc_info.value)
        assert exc_info.value.tried_backends == ["FileSecretBackend"]

    def test_empty_token_raises(self, tmp_path):
        path = tmp_path / "token"
        path.write_text("   \n")
        with pytest.raises(MissingSecretError):
            load_token(path)

    def test_custom_backend(self, tmp_path):
        class StaticBackend(SecretBackend):
            def get(self, name):
                return f"value-for-{name}"

        token = load_token(tmp_path / "token", backend=StaticBackend())
        assert token.get_secret() == "value-for-token"
