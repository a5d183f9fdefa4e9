"""Tests for executor_k8s.core.errors module."""

import httpx
import pytest

from executor_k8s.core.errors import (
    CircuitOpenError,
    ConfigError,
    ErrorCategory,
    ExecutorError,
    MalformedLocatorError,
    PodLookupError,
    PodNotFoundError,
    StatusError,
    TemplateNotFoundError,
    TemplateParseError,
    TransportError,
    categorize_error,
    get_retry_after,
    is_retryable,
    serialize_body,
)


class TestExecutorError:
    """Test the base error."""

    def test_defaults(self):
        error = ExecutorError("boom")
        assert error.message == "boom"
        assert str(error) == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.context == {}

    def test_cause_is_chained(self):
        cause = ValueError("inner")
        error = ExecutorError("outer", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context_is_fluent(self):
        error = ExecutorError("boom").with_context(build_id="abc")
        assert error.context == {"build_id": "abc"}

    def test_to_dict(self):
        error = ExecutorError("boom", retry_after=5, context={"build_id": "abc"})
        d = error.to_dict()
        assert d["error_type"] == "ExecutorError"
        assert d["message"] == "boom"
        assert d["category"] == "INTERNAL"
        assert d["retryable"] is False
        assert d["retry_after"] == 5
        assert d["context"] == {"build_id": "abc"}


class TestTaxonomy:
    """Each error lands in the right category."""

    def test_malformed_locator(self):
        error = MalformedLocatorError("nope")
        assert error.category == ErrorCategory.VALIDATION
        assert error.url == "nope"
        assert "nope" in error.message

    def test_template_parse(self):
        assert TemplateParseError("bad").category == ErrorCategory.PARSE

    def test_config_errors(self):
        error = TemplateNotFoundError("/tmp/job.yaml.tim")
        assert isinstance(error, ConfigError)
        assert error.category == ErrorCategory.CONFIG

    def test_circuit_open_is_retryable(self):
        error = CircuitOpenError(retry_after=12.5)
        assert error.category == ErrorCategory.NETWORK
        assert error.retryable is True
        assert get_retry_after(error) == 12.5

    def test_status_error_retryable_on_5xx(self):
        assert StatusError("x", status_code=500).retryable is True
        assert StatusError("x", status_code=429).retryable is True
        assert StatusError("x", status_code=409).retryable is False

    def test_status_error_to_dict_has_status(self):
        d = StatusError("x", status_code=403, body={"reason": "Forbidden"}).to_dict()
        assert d["status_code"] == 403
        assert d["category"] == "PLATFORM"

    def test_pod_not_found_is_lookup_error(self):
        error = PodNotFoundError("abc")
        assert isinstance(error, PodLookupError)
        assert error.category == ErrorCategory.NOT_FOUND
        assert error.context == {"build_id": "abc"}
        assert "abc" in str(error)

    def test_transport_error_is_httpx(self):
        assert TransportError is httpx.TransportError


class TestSerializeBody:
    """Bodies are embedded as compact JSON."""

    def test_dict_body(self):
        assert serialize_body({"statusCode": 500, "message": "lol"}) == '{"statusCode":500,"message":"lol"}'

    def test_string_body_is_quoted(self):
        assert serialize_body("not found") == '"not found"'

    def test_none_body(self):
        assert serialize_body(None) == "null"

    def test_unserializable_body_falls_back_to_str(self):
        assert serialize_body({1, 2}) in ('"{1, 2}"', '"{2, 1}"')


class TestClassificationHelpers:
    """Tests for is_retryable / categorize_error."""

    def test_executor_errors_use_their_flags(self):
        assert is_retryable(CircuitOpenError()) is True
        assert is_retryable(MalformedLocatorError("x")) is False

    def test_httpx_transport_errors(self):
        error = httpx.ConnectError("refused")
        assert is_retryable(error) is True
        assert categorize_error(error) == ErrorCategory.NETWORK

    @pytest.mark.parametrize(
        "error,category",
        [
            (ValueError("x"), ErrorCategory.VALIDATION),
            (RuntimeError("x"), ErrorCategory.UNKNOWN),
            (PodNotFoundError("b"), ErrorCategory.NOT_FOUND),
        ],
    )
    def test_categorize(self, error, category):
        assert categorize_error(error) == category
