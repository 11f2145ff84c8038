"""
SMART launch controller.

Executes the plan chosen by plan_launch() against a TokenStore: clears a
superseded session, persists the launch key, runs discovery or the code
exchange, and reports the resulting state.
"""

from dataclasses import dataclass

from pydantic import ValidationError

from smart_vitals.audit import AuditEvent, audit_log, truncate_session_id
from smart_vitals.auth.launch import (
    LaunchState,
    StoredLaunch,
    launch_token_from_key,
    plan_launch,
)
from smart_vitals.auth.smart import build_authorization_url
from smart_vitals.auth.token_store import StorageBackend, TokenStore, get_storage_backend
from smart_vitals.config.logging import get_logger
from smart_vitals.config.settings import get_settings
from smart_vitals.errors import LaunchInProgressError, SessionNotActiveError, TokenExchangeError
from smart_vitals.models.auth import LaunchParams, LaunchSession
from smart_vitals.services.oauth import exchange_code, fetch_smart_configuration

logger = get_logger(__name__)


@dataclass(frozen=True)
class LaunchOutcome:
    """Result of resolving a launch request."""

    state: LaunchState
    session: LaunchSession | None = None
    redirect_url: str | None = None
    took_over: bool = False


class LaunchController:
    """Resolves a LaunchSession for each launch request of a browser session."""

    def __init__(
        self,
        backend: StorageBackend,
        *,
        client_id: str,
        redirect_uri: str,
        discovery_timeout: float = 10.0,
        request_timeout: float = 30.0,
        session_ttl: int | None = None,
    ):
        self._backend = backend
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.discovery_timeout = discovery_timeout
        self.request_timeout = request_timeout
        self.session_ttl = session_ttl
        self._exchanging: set[str] = set()

    def store_for(self, session_id: str) -> TokenStore:
        return TokenStore(self._backend, session_id, ttl=self.session_ttl)

    async def _snapshot(self, store: TokenStore) -> StoredLaunch:
        return StoredLaunch(
            session=await store.get_session(),
            issuer=await store.get_issuer(),
            token_endpoint=await store.get_token_endpoint(),
            launch_key=await store.get_launch_key(),
        )

    async def resolve(self, session_id: str, params: LaunchParams) -> LaunchOutcome:
        """
        Resolve the launch for one request.

        Args:
            session_id: Browser session identifier
            params: iss/launch/code query parameters

        Returns:
            LaunchOutcome; AWAITING_REDIRECT carries the authorization URL

        Raises:
            ConfigurationError: Missing launch parameters or token endpoint
            TransportError: Discovery or token exchange failed
            LaunchInProgressError: Another exchange is running for the session
        """
        store = self.store_for(session_id)
        plan = plan_launch(await self._snapshot(store), params)

        if plan.takeover:
            await store.clear()
            audit_log(
                AuditEvent.LAUNCH_TAKEOVER,
                session_id=session_id,
                issuer=params.iss,
            )
            logger.info(
                "New launch supersedes stored session",
                session_id=truncate_session_id(session_id),
            )

        if plan.launch_key:
            await store.set_launch_key(plan.launch_key)

        if plan.state is LaunchState.ERROR:
            audit_log(
                AuditEvent.LAUNCH_ERROR,
                session_id=session_id,
                success=False,
                error=plan.error.message,
            )
            raise plan.error

        if plan.state is LaunchState.ACTIVE:
            audit_log(
                AuditEvent.LAUNCH_RESTORE,
                session_id=session_id,
                issuer=plan.session.issuer,
                patient_id=plan.session.patient_id,
            )
            return LaunchOutcome(LaunchState.ACTIVE, session=plan.session, took_over=plan.takeover)

        if plan.state is LaunchState.EXCHANGING_CODE:
            session = await self._exchange(store, plan.issuer, plan.token_endpoint, plan.code)
            return LaunchOutcome(LaunchState.ACTIVE, session=session, took_over=plan.takeover)

        redirect_url = await self._authorize(store, plan.issuer, plan.launch)
        return LaunchOutcome(
            LaunchState.AWAITING_REDIRECT,
            redirect_url=redirect_url,
            took_over=plan.takeover,
        )

    async def _authorize(self, store: TokenStore, issuer: str, launch: str) -> str:
        config = await fetch_smart_configuration(issuer, timeout=self.discovery_timeout)
        await store.set_issuer(issuer)
        await store.set_token_endpoint(config.token_endpoint)

        audit_log(AuditEvent.AUTH_START, session_id=store.session_id, issuer=issuer)
        return build_authorization_url(
            config,
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            launch=launch,
        )

    async def _exchange(
        self,
        store: TokenStore,
        issuer: str,
        token_endpoint: str,
        code: str,
    ) -> LaunchSession:
        session_id = store.session_id
        if session_id in self._exchanging:
            raise LaunchInProgressError(session_id)

        self._exchanging.add(session_id)
        try:
            token_data = await exchange_code(
                token_endpoint,
                code=code,
                redirect_uri=self.redirect_uri,
                client_id=self.client_id,
                timeout=self.request_timeout,
            )
            try:
                session = LaunchSession.from_token_response(
                    token_data,
                    issuer=issuer,
                    token_endpoint=token_endpoint,
                    launch_token=launch_token_from_key(await store.get_launch_key(), issuer),
                )
            except ValidationError as e:
                raise TokenExchangeError(
                    token_endpoint, f"token response has invalid launch context: {e.error_count()} error(s)"
                ) from e
            await store.set_session(session)
        except TokenExchangeError as e:
            audit_log(
                AuditEvent.AUTH_FAILURE,
                session_id=session_id,
                issuer=issuer,
                success=False,
                error=e.message,
            )
            raise
        finally:
            self._exchanging.discard(session_id)

        audit_log(
            AuditEvent.AUTH_SUCCESS,
            session_id=session_id,
            issuer=issuer,
            patient_id=session.patient_id,
        )
        return session

    async def status(self, session_id: str) -> LaunchOutcome:
        """Report the stored launch state without changing it."""
        session = await self.store_for(session_id).get_session()
        if session is None:
            return LaunchOutcome(LaunchState.UNAUTHENTICATED)
        return LaunchOutcome(LaunchState.ACTIVE, session=session)

    async def has_session(self, session_id: str) -> bool:
        return await self.store_for(session_id).get_session() is not None

    async def require_session(self, session_id: str) -> LaunchSession:
        """Return the active session or raise SessionNotActiveError."""
        session = await self.store_for(session_id).get_session()
        if session is None:
            raise SessionNotActiveError()
        return session


_launch_controller: LaunchController | None = None


def get_launch_controller() -> LaunchController:
    """Get the global launch controller, creating it from settings if needed."""
    global _launch_controller
    if _launch_controller is None:
        settings = get_settings()
        _launch_controller = LaunchController(
            get_storage_backend(),
            client_id=settings.client_id,
            redirect_uri=settings.redirect_uri,
            discovery_timeout=settings.discovery_timeout,
            request_timeout=settings.request_timeout,
            session_ttl=settings.session_max_age,
        )
    return _launch_controller


def reset_launch_controller() -> None:
    """Forget the global launch controller (for testing)."""
    global _launch_controller
    _launch_controller = None
