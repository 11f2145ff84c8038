"""
Models for the SMART launch session.
"""

import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LaunchSession(BaseModel):
    """
    Authenticated context for one SMART launch.

    Either absent or fully populated; a new launch replaces it wholesale.
    """

    model_config = ConfigDict(frozen=True)

    issuer: str
    launch_token: str | None = None
    token_endpoint: str
    access_token: str
    patient_id: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    id_token: str | None = None
    scope: str | None = None
    need_patient_banner: bool = False
    created_at: float = Field(default_factory=time.time)

    @classmethod
    def from_token_response(
        cls,
        response: dict[str, Any],
        *,
        issuer: str,
        token_endpoint: str,
        launch_token: str | None = None,
    ) -> "LaunchSession":
        """
        Build a session from a SMART token response.

        Args:
            response: Token endpoint JSON payload
            issuer: FHIR server the token was issued for
            token_endpoint: Endpoint that issued the token
            launch_token: Launch identifier from the EHR, if known

        Returns:
            LaunchSession instance

        Raises:
            KeyError: If access_token or patient is missing
        """
        return cls(
            issuer=issuer,
            launch_token=launch_token,
            token_endpoint=token_endpoint,
            access_token=response["access_token"],
            patient_id=response["patient"],
            token_type=response.get("token_type") or "Bearer",
            expires_in=response.get("expires_in"),
            id_token=response.get("id_token"),
            scope=response.get("scope"),
            need_patient_banner=response.get("need_patient_banner") is True,
        )

    @property
    def authorization_header(self) -> str:
        """Value for the Authorization header of FHIR requests."""
        return f"Bearer {self.access_token}"


@dataclass(frozen=True)
class LaunchParams:
    """Query parameters consumed by the launch entry point."""

    iss: str | None = None
    launch: str | None = None
    code: str | None = None
    error: str | None = None
    error_description: str | None = None

    @property
    def launch_key(self) -> str | None:
        """Identity of this launch, present only when both iss and launch are given."""
        if self.iss and self.launch:
            return f"{self.iss}:{self.launch}"
        return None


class LaunchStatusResponse(BaseModel):
    """Launch state reported to the presentation layer."""

    state: str
    issuer: str | None = None
    patient_id: str | None = None
    need_patient_banner: bool = False
    can_write_observations: bool = False
    error: dict[str, Any] | None = None
