"""
Tests for structured logging processors and request context.
"""

import structlog

from smart_vitals.config.logging import (
    add_correlation_id,
    bind_patient_context,
    get_correlation_id,
    redact_credentials,
    set_correlation_id,
)


class TestRedactCredentials:
    """Tests for the credential masking processor."""

    def test_masks_token_fields(self):
        event = redact_credentials(
            None,
            "info",
            {"event": "Token exchange", "access_token": "secret", "id_token": "jwt", "patient_id": "p1"},
        )
        assert event["access_token"] == "[REDACTED]"
        assert event["id_token"] == "[REDACTED]"
        assert event["patient_id"] == "p1"
        assert event["event"] == "Token exchange"

    def test_masks_nested_and_mixed_case(self):
        """A logged token response or header dict is masked field by field."""
        event = redact_credentials(
            None,
            "debug",
            {"event": "Request", "headers": {"Authorization": "Bearer abc", "Accept": "application/json"}},
        )
        assert event["headers"] == {"Authorization": "[REDACTED]", "Accept": "application/json"}

    def test_empty_values_kept(self):
        """Missing credentials stay visible as missing."""
        event = redact_credentials(None, "info", {"event": "Callback", "code": None})
        assert event["code"] is None


class TestCorrelationContext:
    """Tests for per-request logging context."""

    def test_generated_id(self):
        correlation_id = set_correlation_id()
        assert len(correlation_id) == 8
        assert get_correlation_id() == correlation_id
        assert add_correlation_id(None, "info", {"event": "x"})["correlation_id"] == correlation_id

    def test_supplied_id(self):
        assert set_correlation_id("req-42") == "req-42"
        assert get_correlation_id() == "req-42"

    def test_new_request_clears_patient(self):
        set_correlation_id("first")
        bind_patient_context("patient-123")
        assert structlog.contextvars.get_contextvars() == {"patient_id": "patient-123"}

        set_correlation_id("second")

        assert structlog.contextvars.get_contextvars() == {}

    def test_missing_patient_not_bound(self):
        set_correlation_id("req")
        bind_patient_context(None)
        assert "patient_id" not in structlog.contextvars.get_contextvars()
