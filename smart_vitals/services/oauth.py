"""
OAuth 2.0 calls of the SMART launch.

Provides:
- Endpoint discovery from the issuer's SMART configuration
- Authorization code exchange
"""

from typing import Any

import aiohttp

from smart_vitals.auth.smart import SmartConfiguration
from smart_vitals.config.logging import get_logger
from smart_vitals.constants import SMART_CONFIGURATION_PATH
from smart_vitals.errors import DiscoveryError, TokenExchangeError

logger = get_logger(__name__)


async def fetch_smart_configuration(issuer: str, timeout: float = 10.0) -> SmartConfiguration:
    """
    Fetch SMART on FHIR configuration from the issuer's well-known endpoint.

    Args:
        issuer: Base URL of the FHIR server
        timeout: Request timeout in seconds

    Returns:
        Discovered SmartConfiguration

    Raises:
        DiscoveryError: On transport failure, non-200 status or incomplete document
    """
    url = f"{issuer.rstrip('/')}{SMART_CONFIGURATION_PATH}"
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, headers={"Accept": "application/json"}) as resp:
                if resp.status != 200:
                    raise DiscoveryError(issuer, f"HTTP {resp.status} from {url}")
                try:
                    document = await resp.json(content_type=None)
                except ValueError as e:
                    raise DiscoveryError(issuer, "invalid JSON in discovery document") from e
    except aiohttp.ClientError as e:
        logger.warning("SMART configuration not reachable", url=url, error=str(e))
        raise DiscoveryError(issuer, str(e)) from e

    config = SmartConfiguration.from_document(issuer, document)
    logger.info(
        "Discovered SMART endpoints",
        issuer=issuer,
        authorization_endpoint=config.authorization_endpoint,
        token_endpoint=config.token_endpoint,
    )
    return config


async def exchange_code(
    token_endpoint: str,
    *,
    code: str,
    redirect_uri: str,
    client_id: str,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """
    Exchange an authorization code for a token payload.

    Args:
        token_endpoint: Token endpoint recorded during discovery
        code: Authorization code from the redirect
        redirect_uri: Redirect URI used in the authorization request
        client_id: Registered client identifier
        timeout: Request timeout in seconds

    Returns:
        Token response JSON (access_token, patient, scope, ...)

    Raises:
        TokenExchangeError: If the exchange fails or lacks launch context
    """
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "client_id": client_id,
    }
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.post(
                token_endpoint,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            ) as resp:
                if resp.status != 200:
                    error_body = await resp.text()
                    logger.error(
                        "Token exchange failed",
                        status_code=resp.status,
                        error=error_body[:200],
                    )
                    raise TokenExchangeError(
                        token_endpoint, error_body[:200] or f"HTTP {resp.status}", resp.status
                    )

                try:
                    token_data = await resp.json(content_type=None)
                except ValueError as e:
                    raise TokenExchangeError(
                        token_endpoint, "token endpoint returned invalid JSON", resp.status
                    ) from e
    except aiohttp.ClientError as e:
        logger.error("Token endpoint unreachable", token_endpoint=token_endpoint, error=str(e))
        raise TokenExchangeError(token_endpoint, str(e)) from e

    if not isinstance(token_data, dict):
        raise TokenExchangeError(token_endpoint, "token response is not a JSON object")

    missing = [name for name in ("access_token", "patient") if not token_data.get(name)]
    if missing:
        raise TokenExchangeError(token_endpoint, f"token response missing {', '.join(missing)}")

    logger.info("Authorization code exchange successful", patient=token_data["patient"])
    return token_data
