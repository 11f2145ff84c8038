"""
Service layer for SMART Vitals.

Contains the OAuth calls of the SMART launch and the FHIR REST client.
"""

from smart_vitals.services.fhir_client import CreatedResource, FHIRClient
from smart_vitals.services.oauth import exchange_code, fetch_smart_configuration

__all__ = [
    "CreatedResource",
    "FHIRClient",
    "exchange_code",
    "fetch_smart_configuration",
]
