"""
Launch entry point.

The EHR opens "/" with iss and launch; the authorization server sends the
browser back to the same URL with code.
"""

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from smart_vitals.auth.launch import LaunchState
from smart_vitals.auth.launch_controller import get_launch_controller
from smart_vitals.auth.smart import can_write_resource
from smart_vitals.config.logging import get_logger
from smart_vitals.errors import (
    AuthenticationError,
    ConfigurationError,
    LaunchInProgressError,
    SmartVitalsError,
    TransportError,
)
from smart_vitals.feed.manager import get_feed_manager
from smart_vitals.models.auth import LaunchParams, LaunchSession, LaunchStatusResponse
from smart_vitals.routers.session import get_session_id, set_session_cookie

logger = get_logger(__name__)

router = APIRouter(tags=["launch"])


def session_status(state: LaunchState, session: LaunchSession) -> LaunchStatusResponse:
    return LaunchStatusResponse(
        state=state.value,
        issuer=session.issuer,
        patient_id=session.patient_id,
        need_patient_banner=session.need_patient_banner,
        can_write_observations=can_write_resource(session.scope, "Observation"),
    )


def error_status(error: SmartVitalsError) -> int:
    """HTTP status for a launch error."""
    if isinstance(error, LaunchInProgressError):
        return 409
    if isinstance(error, (ConfigurationError, AuthenticationError)):
        return 400
    if isinstance(error, TransportError):
        return 502
    return 500


@router.get("/", response_model=LaunchStatusResponse)
async def launch_entry(
    request: Request,
    iss: str | None = Query(None, description="FHIR server issuer URL"),
    launch: str | None = Query(None, description="Opaque EHR launch token"),
    code: str | None = Query(None, description="Authorization code"),
    error: str | None = Query(None, description="OAuth error code"),
    error_description: str | None = Query(None, description="OAuth error description"),
) -> Response:
    """
    Resolve the SMART launch for this browser session.

    Redirects to the authorization server for a fresh launch; otherwise
    reports the active session.
    """
    session_id = get_session_id(request)
    params = LaunchParams(
        iss=iss,
        launch=launch,
        code=code,
        error=error,
        error_description=error_description,
    )

    try:
        outcome = await get_launch_controller().resolve(session_id, params)
    except SmartVitalsError as e:
        logger.warning("Launch failed", error=e.message, error_type=e.__class__.__name__)
        body = LaunchStatusResponse(state=LaunchState.ERROR.value, error=e.to_dict())
        response = JSONResponse(body.model_dump(), status_code=error_status(e))
        set_session_cookie(response, session_id)
        return response

    if outcome.took_over:
        get_feed_manager().discard(session_id)

    if outcome.state is LaunchState.AWAITING_REDIRECT:
        response = RedirectResponse(outcome.redirect_url, status_code=302)
    else:
        body = session_status(outcome.state, outcome.session)
        response = JSONResponse(body.model_dump())

    set_session_cookie(response, session_id)
    return response


@router.get("/launch/status", response_model=LaunchStatusResponse)
async def launch_status(request: Request) -> LaunchStatusResponse:
    """Report the stored launch state without starting a launch."""
    session_id = get_session_id(request, create_if_missing=False)
    if not session_id:
        return LaunchStatusResponse(state=LaunchState.UNAUTHENTICATED.value)

    outcome = await get_launch_controller().status(session_id)
    if outcome.session is None:
        return LaunchStatusResponse(state=outcome.state.value)
    return session_status(outcome.state, outcome.session)
