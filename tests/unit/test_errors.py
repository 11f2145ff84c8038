"""
Tests for the error hierarchy.
"""

from smart_vitals.errors import (
    AuthenticationError,
    AuthorizationDeniedError,
    ConfigurationError,
    FeedFetchError,
    LaunchInProgressError,
    MissingLaunchParameterError,
    MissingTokenEndpointError,
    ObservationCreateError,
    ObservationValidationError,
    SmartVitalsError,
    TokenExchangeError,
    TransportError,
    ValidationError,
)


class TestSmartVitalsError:
    """Tests for the base error."""

    def test_to_dict(self):
        error = SmartVitalsError("Something failed", details={"key": "value"})
        assert error.to_dict() == {
            "error": "SmartVitalsError",
            "message": "Something failed",
            "details": {"key": "value"},
        }

    def test_default_details(self):
        assert SmartVitalsError("x").details == {}


class TestHierarchy:
    """Each error belongs to one family."""

    def test_configuration(self):
        assert isinstance(MissingLaunchParameterError(["iss"]), ConfigurationError)
        assert isinstance(MissingTokenEndpointError(), ConfigurationError)

    def test_authentication(self):
        assert isinstance(AuthorizationDeniedError("access_denied"), AuthenticationError)
        assert isinstance(LaunchInProgressError("sid"), AuthenticationError)

    def test_transport(self):
        assert isinstance(TokenExchangeError("https://auth/token", "boom"), TransportError)
        assert isinstance(FeedFetchError("p1", "boom"), TransportError)
        assert isinstance(ObservationCreateError("boom"), TransportError)

    def test_validation(self):
        assert isinstance(ObservationValidationError("abc"), ValidationError)


class TestMessages:
    """Tests for error messages and details."""

    def test_missing_parameters(self):
        error = MissingLaunchParameterError(["iss", "launch"])
        assert error.message == "Missing launch parameter(s): iss, launch"
        assert error.details == {"missing": ["iss", "launch"]}

    def test_authorization_denied_prefers_description(self):
        assert AuthorizationDeniedError("access_denied").message == "Authorization failed: access_denied"
        assert (
            AuthorizationDeniedError("access_denied", "User declined").message
            == "Authorization failed: User declined"
        )

    def test_validation_keeps_raw_value(self):
        error = ObservationValidationError("abc")
        assert error.to_dict()["details"] == {"value": "abc"}
