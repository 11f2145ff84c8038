"""
Observation feed and patient endpoints for the presentation layer.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from smart_vitals.audit import AuditEvent, audit_log
from smart_vitals.auth.launch_controller import get_launch_controller
from smart_vitals.config.logging import bind_patient_context, get_logger
from smart_vitals.errors import (
    FeedFetchError,
    FHIRRequestError,
    ObservationCreateError,
    ObservationValidationError,
    OperationInProgressError,
    SessionNotActiveError,
)
from smart_vitals.feed.manager import get_feed_manager
from smart_vitals.feed.observation_feed import ObservationFeed
from smart_vitals.models.auth import LaunchSession
from smart_vitals.models.observation import (
    CreateObservationRequest,
    CreateObservationResponse,
    FeedResponse,
    LoadMoreResponse,
)
from smart_vitals.routers.session import get_session_id
from smart_vitals.services.fhir_client import FHIRClient

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["observations"])


async def require_session(request: Request) -> tuple[str, LaunchSession]:
    """Dependency resolving the active launch session of the caller."""
    session_id = get_session_id(request, create_if_missing=False)
    if not session_id:
        raise HTTPException(status_code=401, detail=SessionNotActiveError().to_dict())
    try:
        session = await get_launch_controller().require_session(session_id)
    except SessionNotActiveError as e:
        raise HTTPException(status_code=401, detail=e.to_dict())
    bind_patient_context(session.patient_id)
    return session_id, session


def _feed_for(context: tuple[str, LaunchSession]) -> ObservationFeed:
    session_id, session = context
    return get_feed_manager().get_feed(session_id, session)


def _feed_response(feed: ObservationFeed, cls: type[FeedResponse] = FeedResponse, **extra) -> FeedResponse:
    return cls(
        observations=[entry.to_view() for entry in feed.displayed],
        has_more=feed.has_more,
        total_loaded=len(feed.all_loaded),
        error=feed.error,
        **extra,
    )


@router.get("/patient")
async def get_patient(context: tuple[str, LaunchSession] = Depends(require_session)) -> dict:
    """Patient resource in launch context, for the banner."""
    session_id, session = context
    try:
        patient = await FHIRClient.for_session(session).read_patient(session.patient_id)
    except FHIRRequestError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    audit_log(
        AuditEvent.RESOURCE_READ,
        session_id=session_id,
        patient_id=session.patient_id,
        resource_type="Patient",
        resource_id=session.patient_id,
    )
    return patient


@router.get("/observations", response_model=FeedResponse)
async def list_observations(
    refresh: bool = Query(False, description="Bypass the response cache"),
    context: tuple[str, LaunchSession] = Depends(require_session),
) -> FeedResponse:
    """Current window of the patient's vital signs, loading the first page if needed."""
    feed = _feed_for(context)
    if refresh or not feed.loaded:
        try:
            await feed.fetch(force_refresh=refresh)
        except FeedFetchError as e:
            raise HTTPException(status_code=502, detail=e.to_dict())
    return _feed_response(feed)


@router.post("/observations/more", response_model=LoadMoreResponse)
async def load_more_observations(
    context: tuple[str, LaunchSession] = Depends(require_session),
) -> FeedResponse:
    """Grow the window by one page."""
    feed = _feed_for(context)
    if not feed.loaded:
        try:
            await feed.fetch()
        except FeedFetchError as e:
            raise HTTPException(status_code=502, detail=e.to_dict())
    advanced = await feed.load_more()
    return _feed_response(feed, LoadMoreResponse, advanced=advanced)


@router.post("/observations", response_model=CreateObservationResponse, status_code=201)
async def create_observation(
    payload: CreateObservationRequest,
    context: tuple[str, LaunchSession] = Depends(require_session),
) -> FeedResponse:
    """Record an oral temperature reading; it is visible immediately."""
    feed = _feed_for(context)
    try:
        entry = await feed.create_observation(payload.value)
    except ObservationValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    except OperationInProgressError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except ObservationCreateError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    return _feed_response(feed, CreateObservationResponse, created=entry.to_view())
