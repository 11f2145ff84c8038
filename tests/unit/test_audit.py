"""
Tests for audit logging.
"""

from unittest.mock import patch

from smart_vitals.audit import AuditEvent, audit_log, truncate_session_id


class TestAuditEvents:
    """Tests for audit event constants."""

    def test_launch_events_defined(self):
        assert AuditEvent.LAUNCH_TAKEOVER == "launch.takeover"
        assert AuditEvent.LAUNCH_RESTORE == "launch.restore"
        assert AuditEvent.LAUNCH_ERROR == "launch.error"

    def test_resource_events_defined(self):
        assert AuditEvent.RESOURCE_SEARCH == "resource.search"
        assert AuditEvent.RESOURCE_CREATE == "resource.create"


class TestTruncateSessionId:
    def test_long_id(self):
        assert truncate_session_id("0123456789abcdef") == "01234567..."

    def test_short_id(self):
        assert truncate_session_id("abc") == "abc"


class TestAuditLog:
    """Tests for audit_log function."""

    @patch("smart_vitals.audit._audit_logger")
    def test_success(self, mock_logger):
        """Successful events log at info with a truncated session id."""
        audit_log(
            AuditEvent.AUTH_SUCCESS,
            session_id="browser-session-12345",
            issuer="https://ehr.example.org/fhir",
            patient_id="patient-123",
        )

        mock_logger.info.assert_called_once()
        args, kwargs = mock_logger.info.call_args
        assert args[0] == AuditEvent.AUTH_SUCCESS
        assert kwargs["session_id"] == "browser-..."
        assert kwargs["patient_id"] == "patient-123"
        assert kwargs["success"] is True

    @patch("smart_vitals.audit._audit_logger")
    def test_failure(self, mock_logger):
        """Failures log at warning with the error."""
        audit_log(AuditEvent.AUTH_FAILURE, success=False, error="invalid_grant")

        mock_logger.warning.assert_called_once()
        kwargs = mock_logger.warning.call_args.kwargs
        assert kwargs["error"] == "invalid_grant"
        assert "session_id" not in kwargs
