"""
SMART launch state machine.

plan_launch() decides, for one launch request, what the controller must do
given what is persisted and what arrived in the URL. It performs no I/O so
the precedence rules can be exercised directly:

1. new-launch detection (takeover of a stale session)
2. session restoration
3. authorization code exchange
4. fresh authorization (discovery + redirect)
"""

from dataclasses import dataclass
from enum import Enum

from smart_vitals.errors import (
    AuthorizationDeniedError,
    MissingLaunchParameterError,
    MissingTokenEndpointError,
    SmartVitalsError,
)
from smart_vitals.models.auth import LaunchParams, LaunchSession


class LaunchState(Enum):
    """States of a browser session's launch."""

    UNAUTHENTICATED = "unauthenticated"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING_CODE = "exchanging_code"
    ACTIVE = "active"
    ERROR = "error"


@dataclass(frozen=True)
class StoredLaunch:
    """Snapshot of the persisted launch state."""

    session: LaunchSession | None = None
    issuer: str | None = None
    token_endpoint: str | None = None
    launch_key: str | None = None


@dataclass(frozen=True)
class LaunchPlan:
    """Next state plus the side effects needed to reach it."""

    state: LaunchState
    takeover: bool = False
    launch_key: str | None = None  # persist when set
    session: LaunchSession | None = None
    issuer: str | None = None
    token_endpoint: str | None = None
    code: str | None = None
    launch: str | None = None
    error: SmartVitalsError | None = None


def plan_launch(stored: StoredLaunch, params: LaunchParams) -> LaunchPlan:
    """
    Compute the launch transition for one request.

    A takeover discards the stored session, issuer and token endpoint before
    any later rule looks at them.
    """
    launch_key = params.launch_key
    takeover = bool(launch_key and stored.launch_key and stored.launch_key != launch_key)

    session = None if takeover else stored.session
    issuer = None if takeover else stored.issuer
    token_endpoint = None if takeover else stored.token_endpoint

    def plan(state: LaunchState, **kwargs) -> LaunchPlan:
        return LaunchPlan(state=state, takeover=takeover, launch_key=launch_key, **kwargs)

    if params.error:
        return plan(
            LaunchState.ERROR,
            error=AuthorizationDeniedError(params.error, params.error_description),
        )

    if session is not None and not params.code:
        return plan(LaunchState.ACTIVE, session=session)

    if params.code:
        if not token_endpoint:
            return plan(LaunchState.ERROR, error=MissingTokenEndpointError())
        if not issuer:
            return plan(LaunchState.ERROR, error=MissingLaunchParameterError(["iss"]))
        return plan(
            LaunchState.EXCHANGING_CODE,
            issuer=issuer,
            token_endpoint=token_endpoint,
            code=params.code,
        )

    missing = [name for name in ("iss", "launch") if not getattr(params, name)]
    if missing:
        return plan(LaunchState.ERROR, error=MissingLaunchParameterError(missing))

    return plan(LaunchState.AWAITING_REDIRECT, issuer=params.iss, launch=params.launch)


def launch_token_from_key(launch_key: str | None, issuer: str | None) -> str | None:
    """Recover the EHR launch token from a stored "issuer:launch" key."""
    if not launch_key or not issuer:
        return None
    prefix = f"{issuer}:"
    if launch_key.startswith(prefix):
        return launch_key[len(prefix) :]
    return None
