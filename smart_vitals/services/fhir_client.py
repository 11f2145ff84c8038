"""
FHIR REST client for a launched session.

Searches go through fhirpy; continuation links and creates use aiohttp
directly because they need absolute URLs and response headers.
"""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp
from fhirpy import AsyncFHIRClient
from fhirpy.base.exceptions import BaseFHIRError

from smart_vitals.config.logging import get_logger
from smart_vitals.config.settings import get_settings
from smart_vitals.constants import FHIR_JSON, VITAL_SIGNS_CATEGORY
from smart_vitals.errors import FHIRRequestError
from smart_vitals.models.auth import LaunchSession
from smart_vitals.utils import fhir_request_headers, id_from_location, same_origin

logger = get_logger(__name__)


@dataclass(frozen=True)
class CreatedResource:
    """Outcome of a create interaction."""

    id: str | None
    location: str | None
    resource: dict[str, Any] | None


class FHIRClient:
    """Bearer-authenticated FHIR client bound to one launch session."""

    def __init__(self, base_url: str, access_token: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._client = AsyncFHIRClient(
            url=self.base_url,
            authorization=f"Bearer {access_token}",
            aiohttp_config={"timeout": self._timeout},
            extra_headers={"Accept": FHIR_JSON},
        )

    @classmethod
    def for_session(cls, session: LaunchSession, timeout: float | None = None) -> "FHIRClient":
        timeout_val = timeout or get_settings().request_timeout
        return cls(session.issuer, session.access_token, timeout=timeout_val)

    async def read_patient(self, patient_id: str) -> dict[str, Any]:
        """Read the Patient in launch context."""
        try:
            patient = await self._client.reference("Patient", patient_id).to_resource()
        except (BaseFHIRError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FHIRRequestError(f"{self.base_url}/Patient/{patient_id}", str(e)) from e
        return patient.serialize()

    async def search_vital_signs(self, patient_id: str, count: int) -> Mapping[str, Any]:
        """
        Search a patient's vital-sign observations, newest first.

        Returns:
            The first Bundle page
        """
        search = (
            self._client.resources("Observation")
            .search(patient=patient_id, category=VITAL_SIGNS_CATEGORY)
            .sort("-date")
            .limit(count)
        )
        try:
            bundle = await search.fetch_raw()
        except (BaseFHIRError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FHIRRequestError(f"{self.base_url}/Observation", str(e)) from e
        logger.debug("Fetched observation page", patient_id=patient_id, count=count)
        return bundle

    async def fetch_page(self, url: str) -> Mapping[str, Any]:
        """
        Follow a Bundle continuation link.

        Raises:
            FHIRRequestError: If the link leaves the FHIR server or the request fails
        """
        if not same_origin(url, self.base_url):
            raise FHIRRequestError(url, "continuation link points outside the FHIR server")

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(url, headers=fhir_request_headers(self._access_token)) as resp:
                    if resp.status != 200:
                        error_text = await resp.text()
                        raise FHIRRequestError(url, error_text[:200] or f"HTTP {resp.status}", resp.status)
                    bundle = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FHIRRequestError(url, str(e) or e.__class__.__name__) from e

        if not isinstance(bundle, Mapping):
            raise FHIRRequestError(url, "continuation page is not a JSON object")
        return bundle

    async def create(self, resource: dict[str, Any]) -> CreatedResource:
        """
        POST a new resource.

        The server may or may not echo the created body; the id is taken from
        the body first and the Location header second.
        """
        resource_type = resource["resourceType"]
        url = f"{self.base_url}/{resource_type}"
        headers = fhir_request_headers(self._access_token, content_type=FHIR_JSON)

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(url, data=json.dumps(resource), headers=headers) as resp:
                    body_text = await resp.text()
                    if resp.status not in (200, 201):
                        raise FHIRRequestError(url, body_text[:200] or f"HTTP {resp.status}", resp.status)
                    location = resp.headers.get("Location") or resp.headers.get("Content-Location")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FHIRRequestError(url, str(e) or e.__class__.__name__) from e

        body = None
        if body_text.strip():
            try:
                body = json.loads(body_text)
            except ValueError:
                logger.debug("Create response body is not JSON", url=url)

        created_id = body.get("id") if isinstance(body, dict) else None
        return CreatedResource(
            id=created_id or id_from_location(location, resource_type),
            location=location,
            resource=body if isinstance(body, dict) else None,
        )
