"""
Browser session cookie helpers shared by the routers.
"""

import uuid

from fastapi import Request
from fastapi.responses import Response

from smart_vitals.config.settings import get_settings


def get_session_id(request: Request, create_if_missing: bool = True) -> str | None:
    """
    Get the browser session ID from its cookie.

    Args:
        request: FastAPI request
        create_if_missing: If True, create a new ID when no cookie exists

    Returns:
        Session ID string, or None if not found and create_if_missing=False
    """
    settings = get_settings()
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id and create_if_missing:
        session_id = uuid.uuid4().hex
    return session_id


def set_session_cookie(response: Response, session_id: str) -> None:
    """Set the session cookie on a response."""
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
