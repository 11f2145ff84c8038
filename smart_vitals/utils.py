"""
FHIR utility functions for bundle processing and request headers.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from smart_vitals.config.logging import get_logger
from smart_vitals.constants import FHIR_JSON

logger = get_logger(__name__)


def fhir_request_headers(
    access_token: str | None = None,
    accept: str = FHIR_JSON,
    content_type: str | None = None,
) -> dict[str, str]:
    """
    Build HTTP headers for FHIR API requests.

    Args:
        access_token: Bearer token (omitted when None)
        accept: Accept header value for response format
        content_type: Content-Type header for request body (None to omit)

    Returns:
        Dictionary of HTTP headers for FHIR requests
    """
    headers = {"Accept": accept}
    if content_type:
        headers["Content-Type"] = content_type
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def bundle_resources(bundle: Mapping[str, Any] | None, resource_type: str) -> list[Mapping[str, Any]]:
    """
    Extract resources of one type from a FHIR Bundle.

    Entries without a resource, and resources of other types (for example an
    OperationOutcome carrying search warnings), are skipped.
    """
    if not bundle:
        return []
    entries = bundle.get("entry")
    if not isinstance(entries, list):
        return []

    resources = []
    for entry in entries:
        resource = entry.get("resource") if isinstance(entry, Mapping) else None
        if isinstance(resource, Mapping) and resource.get("resourceType") == resource_type:
            resources.append(resource)

    if len(resources) != len(entries):
        logger.debug("Skipped bundle entries", kept=len(resources), total=len(entries))
    return resources


def next_link(bundle: Mapping[str, Any] | None) -> str | None:
    """Return the bundle's relation="next" URL, if any."""
    if not bundle:
        return None
    for link in bundle.get("link") or []:
        if isinstance(link, Mapping) and link.get("relation") == "next" and link.get("url"):
            return link["url"]
    return None


def id_from_location(location: str | None, resource_type: str) -> str | None:
    """
    Extract the logical id from a Location header.

    Handles both "Observation/123" and
    "https://server/fhir/Observation/123/_history/1".
    """
    if not location:
        return None
    parts = [part for part in urlsplit(location).path.split("/") if part]
    for index, part in enumerate(parts[:-1]):
        if part == resource_type:
            return parts[index + 1]
    return None


def same_origin(url: str, base_url: str) -> bool:
    """Check that url shares scheme and host with base_url."""
    target, base = urlsplit(url), urlsplit(base_url)
    return (target.scheme, target.netloc) == (base.scheme, base.netloc)
