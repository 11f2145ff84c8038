"""
Shared pytest fixtures for SMART Vitals tests.
"""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before importing application modules
os.environ.setdefault("SMART_VITALS_DEBUG", "true")
os.environ.setdefault("SMART_VITALS_LOG_JSON", "false")
os.environ["SMART_VITALS_SESSION_COOKIE_SECURE"] = "false"
# Always use in-memory launch state in tests
os.environ["SMART_VITALS_REDIS_URL"] = ""

ISSUER = "https://ehr.example.org/fhir"
TOKEN_ENDPOINT = "https://auth.example.org/token"
AUTHORIZATION_ENDPOINT = "https://auth.example.org/authorize"


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singletons between tests to avoid state leakage."""
    from smart_vitals.auth.launch_controller import reset_launch_controller
    from smart_vitals.auth.token_store import reset_storage_backend
    from smart_vitals.config.settings import reset_settings
    from smart_vitals.feed.manager import reset_feed_manager

    reset_settings()
    reset_storage_backend()
    reset_launch_controller()
    reset_feed_manager()
    yield
    reset_feed_manager()
    reset_launch_controller()
    reset_storage_backend()
    reset_settings()


def _mock_aiohttp_session(
    status: int = 200,
    json_data: Any = None,
    text: str = "",
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """
    Build a stand-in for aiohttp.ClientSession returning one canned response.

    Usage: patch("aiohttp.ClientSession", return_value=aiohttp_session_factory(...)).
    The returned session records calls on .get and .post.
    """
    response = AsyncMock()
    response.status = status
    response.headers = headers or {}
    if isinstance(json_data, Exception):
        response.json = AsyncMock(side_effect=json_data)
    else:
        response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)

    request_ctx = MagicMock()
    request_ctx.__aenter__ = AsyncMock(return_value=response)
    request_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.get = MagicMock(return_value=request_ctx)
    session.post = MagicMock(return_value=request_ctx)
    return session


@pytest.fixture
def smart_configuration_document() -> dict[str, Any]:
    """Discovery document served at .well-known/smart-configuration."""
    return {
        "authorization_endpoint": AUTHORIZATION_ENDPOINT,
        "token_endpoint": TOKEN_ENDPOINT,
        "capabilities": ["launch-ehr", "context-ehr-patient"],
    }


@pytest.fixture
def token_response() -> dict[str, Any]:
    """SMART token endpoint response."""
    return {
        "access_token": "access-token-1",
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "openid fhirUser launch patient/Observation.read patient/Observation.write",
        "patient": "patient-123",
        "need_patient_banner": True,
        "id_token": "id-token-1",
    }


@pytest.fixture
def launch_session():
    """Active launch session."""
    from smart_vitals.models.auth import LaunchSession

    return LaunchSession(
        issuer=ISSUER,
        launch_token="launch-abc",
        token_endpoint=TOKEN_ENDPOINT,
        access_token="access-token-1",
        patient_id="patient-123",
        need_patient_banner=True,
    )


def _make_observation(
    obs_id: str,
    effective: str | None,
    value: float | None = 36.6,
    unit: str | None = "degC",
    text: str | None = "Temperature Oral",
) -> dict[str, Any]:
    """Build a minimal vital-signs Observation resource."""
    resource: dict[str, Any] = {"resourceType": "Observation", "id": obs_id, "status": "final"}
    if text is not None:
        resource["code"] = {"text": text}
    if effective is not None:
        resource["effectiveDateTime"] = effective
    if value is not None:
        quantity: dict[str, Any] = {"value": value}
        if unit is not None:
            quantity["unit"] = unit
        resource["valueQuantity"] = quantity
    return resource


def _make_bundle(resources: list[dict[str, Any]], next_url: str | None = None) -> dict[str, Any]:
    """Wrap resources in a searchset Bundle, optionally with a next link."""
    bundle: dict[str, Any] = {
        "resourceType": "Bundle",
        "type": "searchset",
        "entry": [{"resource": resource, "search": {"mode": "match"}} for resource in resources],
        "link": [{"relation": "self", "url": f"{ISSUER}/Observation"}],
    }
    if next_url:
        bundle["link"].append({"relation": "next", "url": next_url})
    return bundle


@pytest.fixture
def blood_pressure_observation() -> dict[str, Any]:
    """Blood pressure Observation with systolic/diastolic components."""
    return {
        "resourceType": "Observation",
        "id": "bp-1",
        "status": "final",
        "code": {"text": "Blood Pressure"},
        "effectiveDateTime": "2024-03-01T09:30:00Z",
        "component": [
            {
                "code": {"coding": [{"system": "http://loinc.org", "code": "8480-6"}]},
                "valueQuantity": {"value": 120, "unit": "mmHg"},
            },
            {
                "code": {"coding": [{"system": "http://loinc.org", "code": "8462-4"}]},
                "valueQuantity": {"value": 80, "unit": "mmHg"},
            },
        ],
    }


@pytest.fixture
def make_observation():
    """Factory for Observation resources."""
    return _make_observation


@pytest.fixture
def make_bundle():
    """Factory for searchset Bundles."""
    return _make_bundle


@pytest.fixture
def aiohttp_session_factory():
    """Factory for mocked aiohttp.ClientSession instances."""
    return _mock_aiohttp_session
