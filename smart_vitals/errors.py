"""
Custom error types for SMART Vitals.

Errors fall into four families: configuration errors (fatal for a launch),
authentication/session errors, transport errors from the authorization or
FHIR servers, and local validation errors.
"""

from typing import Any


class SmartVitalsError(Exception):
    """Base exception for all SMART Vitals errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# Configuration Errors


class ConfigurationError(SmartVitalsError):
    """Raised when a launch cannot proceed with the available configuration."""

    pass


class MissingLaunchParameterError(ConfigurationError):
    """Raised when a fresh authorization lacks the iss or launch parameter."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Missing launch parameter(s): {', '.join(missing)}",
            details={"missing": missing},
        )


class MissingTokenEndpointError(ConfigurationError):
    """Raised when an authorization code arrives but no token endpoint was stored."""

    def __init__(self):
        super().__init__(
            "No token endpoint recorded for this launch; restart the launch from the EHR"
        )


# Authentication and Session Errors


class AuthenticationError(SmartVitalsError):
    """Raised when authentication fails."""

    pass


class AuthorizationDeniedError(AuthenticationError):
    """Raised when the authorization server redirects back with an error."""

    def __init__(self, error: str, description: str | None = None):
        self.error = error
        self.description = description
        super().__init__(
            f"Authorization failed: {description or error}",
            details={"error": error, "error_description": description},
        )


class LaunchInProgressError(AuthenticationError):
    """Raised when a code exchange is already running for the browser session."""

    def __init__(self, session_id: str):
        super().__init__("A launch is already in progress for this session")


class SessionNotActiveError(AuthenticationError):
    """Raised when an operation needs an active launch session."""

    def __init__(self, message: str = "No active launch session"):
        super().__init__(message)


# Transport Errors


class TransportError(SmartVitalsError):
    """Base exception for failures talking to remote servers."""

    pass


class DiscoveryError(TransportError):
    """Raised when the SMART configuration cannot be fetched or is incomplete."""

    def __init__(self, issuer: str, reason: str):
        self.issuer = issuer
        super().__init__(
            f"SMART discovery failed for {issuer}: {reason}",
            details={"issuer": issuer, "reason": reason},
        )


class TokenExchangeError(TransportError):
    """Raised when the token endpoint rejects or fails the code exchange."""

    def __init__(self, token_endpoint: str, reason: str, status_code: int | None = None):
        self.token_endpoint = token_endpoint
        self.status_code = status_code
        super().__init__(
            f"Token exchange failed: {reason}",
            details={"token_endpoint": token_endpoint, "status_code": status_code},
        )


class FHIRRequestError(TransportError):
    """Raised when a FHIR server request fails."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(
            f"FHIR request failed: {reason}",
            details={"url": url, "status_code": status_code},
        )


class FeedFetchError(TransportError):
    """Raised when the observation feed cannot be loaded."""

    def __init__(self, patient_id: str, reason: str):
        self.patient_id = patient_id
        super().__init__(
            f"Could not load observations: {reason}",
            details={"patient_id": patient_id},
        )


class ObservationCreateError(TransportError):
    """Raised when the server rejects a new observation."""

    def __init__(self, reason: str):
        super().__init__(f"Could not save observation: {reason}")


class OperationInProgressError(SmartVitalsError):
    """Raised when a feed operation is triggered while the same one is pending."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"{operation} is already in progress",
            details={"operation": operation},
        )


# Input Validation Errors


class ValidationError(SmartVitalsError):
    """Base exception for input validation errors."""

    pass


class ObservationValidationError(ValidationError):
    """Raised when a submitted reading is not a number."""

    def __init__(self, raw_value: str):
        self.raw_value = raw_value
        super().__init__(
            "Temperature must be a number",
            details={"value": raw_value},
        )
