"""
Tests for the standardized error taxonomy module.

Ensures all error classes follow consistent structure and behavior.
"""

import json

from errors import (
    ConfigurationError,
    CountingServiceError,
    ErrorCategory,
    ErrorSeverity,
    InfoUnavailableError,
    InvalidConfigurationError,
    MissingConfigurationError,
    SettingsValidationError,
    StoreUnavailableError,
    classify_store_exception,
)


class TestCountingServiceErrorBase:
    """Test base CountingServiceError class."""

    def test_error_creation(self):
        error = CountingServiceError(code="TEST_001", message="Test error message", data={"key": "value"})

        assert error.code == "TEST_001"
        assert error.message == "Test error message"
        assert error.data == {"key": "value"}
        assert error.category == ErrorCategory.SYSTEM
        assert error.severity == ErrorSeverity.HIGH

    def test_error_string_representation(self):
        error = CountingServiceError(code="TEST_001", message="Test message")
        assert str(error) == "[TEST_001] Test message"

    def test_error_to_dict(self):
        error = CountingServiceError(
            code="TEST_001",
            message="Test message",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.MEDIUM,
            data={"field": "value"},
            suggestion="Try this instead",
        )

        d = error.to_dict()
        assert d["code"] == "TEST_001"
        assert d["category"] == "storage"
        assert d["severity"] == "medium"
        assert d["data"] == {"field": "value"}
        assert d["suggestion"] == "Try this instead"

    def test_error_to_json(self):
        parsed = json.loads(CountingServiceError(code="TEST_001", message="Test message").to_json())
        assert parsed["code"] == "TEST_001"
        assert "suggestion" not in parsed


class TestConfigurationErrors:
    """Test configuration-related error classes."""

    def test_missing_configuration_error(self):
        error = MissingConfigurationError(config_name="PG_URL", storage_mode="cockroach")

        assert isinstance(error, ConfigurationError)
        assert error.code == "CONFIG_101"
        assert error.message == "PG_URL must be set when STORAGE_MODE=cockroach"
        assert error.category == ErrorCategory.CONFIGURATION
        assert error.severity == ErrorSeverity.CRITICAL
        assert error.suggestion is not None

    def test_invalid_configuration_error(self):
        error = InvalidConfigurationError(config_name="REDIS_MODE", value="ring", valid_values=["single", "cluster"])

        assert error.code == "CONFIG_102"
        assert "REDIS_MODE" in error.message
        assert error.data["valid_values"] == ["single", "cluster"]
        assert error.severity == ErrorSeverity.HIGH

    def test_settings_validation_error(self):
        error = SettingsValidationError(["PORT out of range", "REDIS_DB negative"])

        assert isinstance(error, ConfigurationError)
        assert error.code == "CONFIG_103"
        assert error.errors == ["PORT out of range", "REDIS_DB negative"]
        assert "PORT out of range; REDIS_DB negative" in str(error)


class TestStorageErrors:
    """Test per-request storage error classes."""

    def test_store_unavailable_error(self):
        error = StoreUnavailableError(backend="redis", reason="Connection refused")

        assert error.code == "STORE_201"
        assert error.message == "Connection refused"
        assert error.backend == "redis"
        assert error.category == ErrorCategory.STORAGE

    def test_info_unavailable_is_low_severity(self):
        error = InfoUnavailableError(backend="cockroach", reason="timeout")

        assert error.code == "STORE_202"
        assert error.severity == ErrorSeverity.LOW


class TestClassifyStoreException:
    """Test mapping of driver exceptions."""

    def test_wraps_driver_exception(self):
        error = classify_store_exception(ConnectionRefusedError("[Errno 111] Connection refused"), "redis")

        assert isinstance(error, StoreUnavailableError)
        assert error.message == "[Errno 111] Connection refused"
        assert error.data["backend"] == "redis"

    def test_keeps_first_line_only(self):
        exc = Exception("(psycopg2.OperationalError) could not connect\n\n(Background on this error at: ...)")
        assert classify_store_exception(exc, "postgres").message == "(psycopg2.OperationalError) could not connect"

    def test_empty_message_uses_class_name(self):
        assert classify_store_exception(TimeoutError(), "redis").message == "TimeoutError"

    def test_passes_through_classified_errors(self):
        original = StoreUnavailableError("postgres", "row missing")
        assert classify_store_exception(original, "postgres") is original
