"""
SMART App Launch support.

This module provides:
- Parsing of the issuer's SMART configuration document
- Authorization URL construction for the EHR launch
- Scope parsing for granted token scopes
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from smart_vitals.config.logging import get_logger
from smart_vitals.constants import LAUNCH_SCOPE
from smart_vitals.errors import DiscoveryError

logger = get_logger(__name__)


class SmartScopeCategory(Enum):
    """SMART scope categories."""

    PATIENT = "patient"
    USER = "user"
    SYSTEM = "system"
    LAUNCH = "launch"
    OPENID = "openid"
    FHIRUSER = "fhirUser"


@dataclass
class SmartScope:
    """Parsed SMART scope."""

    raw: str
    category: SmartScopeCategory | None = None
    resource_type: str | None = None
    permissions: list[str] = field(default_factory=list)

    @property
    def can_read(self) -> bool:
        return "read" in self.permissions or "*" in self.permissions

    @property
    def can_write(self) -> bool:
        return "write" in self.permissions or "*" in self.permissions

    def __str__(self) -> str:
        return self.raw


_V2_PERMISSIONS = {"c": "write", "r": "read", "u": "write", "d": "write", "s": "read"}


def parse_smart_scopes(scope_string: str) -> list[SmartScope]:
    """
    Parse SMART scopes from a space-separated string.

    Supports v1 (patient/Observation.read, patient/Observation.*) and
    v2 (patient/Observation.rs, patient/Observation.cu) permission suffixes.
    """
    scopes = []

    for raw_scope in scope_string.split():
        scope = SmartScope(raw=raw_scope)

        if raw_scope == "openid":
            scope.category = SmartScopeCategory.OPENID
        elif raw_scope == "fhirUser":
            scope.category = SmartScopeCategory.FHIRUSER
        elif raw_scope.startswith("launch"):
            scope.category = SmartScopeCategory.LAUNCH
            if "/" in raw_scope:
                scope.resource_type = raw_scope.split("/", 1)[1]
        elif "/" in raw_scope and "." in raw_scope:
            category_part, rest = raw_scope.split("/", 1)
            resource_part, permission_part = rest.rsplit(".", 1)
            try:
                scope.category = SmartScopeCategory(category_part)
            except ValueError:
                logger.warning("Unknown scope category", scope=raw_scope)
            scope.resource_type = resource_part

            if permission_part in ("*", "read", "write"):
                scope.permissions = [permission_part]
            else:
                scope.permissions = sorted(
                    {_V2_PERMISSIONS[c] for c in permission_part if c in _V2_PERMISSIONS}
                )

        scopes.append(scope)

    return scopes


def can_write_resource(scope_string: str | None, resource_type: str) -> bool:
    """Check whether a granted scope string allows writing a resource type."""
    if not scope_string:
        return False
    return any(
        scope.can_write and scope.resource_type in (resource_type, "*")
        for scope in parse_smart_scopes(scope_string)
    )


@dataclass(frozen=True)
class SmartConfiguration:
    """Endpoints advertised by an issuer's .well-known/smart-configuration."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    capabilities: tuple[str, ...] = ()

    @classmethod
    def from_document(cls, issuer: str, document: Any) -> "SmartConfiguration":
        """
        Build configuration from a discovery document.

        Raises:
            DiscoveryError: If either endpoint is missing
        """
        if not isinstance(document, dict):
            raise DiscoveryError(issuer, "discovery document is not a JSON object")

        authorization_endpoint = document.get("authorization_endpoint")
        token_endpoint = document.get("token_endpoint")
        missing = [
            name
            for name, value in (
                ("authorization_endpoint", authorization_endpoint),
                ("token_endpoint", token_endpoint),
            )
            if not value
        ]
        if missing:
            raise DiscoveryError(issuer, f"missing {', '.join(missing)}")

        return cls(
            issuer=issuer,
            authorization_endpoint=authorization_endpoint,
            token_endpoint=token_endpoint,
            capabilities=tuple(document.get("capabilities") or ()),
        )


def build_authorization_url(
    config: SmartConfiguration,
    *,
    client_id: str,
    redirect_uri: str,
    launch: str,
    scope: str = LAUNCH_SCOPE,
) -> str:
    """
    Build the EHR-launch authorization URL.

    Args:
        config: Discovered endpoints of the issuer
        client_id: Registered client identifier
        redirect_uri: Where the authorization server sends the code back
        launch: Opaque launch token from the EHR
        scope: Requested scopes

    Returns:
        Absolute authorization URL
    """
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "response_type": "code",
        "aud": config.issuer,
        "launch": launch,
    }
    separator = "&" if "?" in config.authorization_endpoint else "?"
    return f"{config.authorization_endpoint}{separator}{urlencode(params)}"
