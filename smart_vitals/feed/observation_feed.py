"""
Observation feed for one launched patient.

Keeps every observation fetched so far sorted newest first, exposes a
growing window of them, follows the server's continuation links on demand
and makes new readings visible before the server confirms them.
"""

import math
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from smart_vitals.audit import AuditEvent, audit_log
from smart_vitals.config.logging import get_logger
from smart_vitals.constants import (
    LOINC_ORAL_TEMPERATURE,
    LOINC_SYSTEM,
    OBSERVATION_CATEGORY_SYSTEM,
    TEMPERATURE_DISPLAY,
    TEMPERATURE_UCUM_CODE,
    TEMPERATURE_UNIT,
    TEMPORARY_ID_PREFIX,
    UCUM_SYSTEM,
    VITAL_SIGNS_CATEGORY,
)
from smart_vitals.errors import (
    FeedFetchError,
    FHIRRequestError,
    ObservationCreateError,
    ObservationValidationError,
    OperationInProgressError,
)
from smart_vitals.feed.cache import ResponseCache
from smart_vitals.feed.scheduler import DeferredTask
from smart_vitals.models.observation import ObservationEntry, QuantityValue, sort_entries
from smart_vitals.services.fhir_client import FHIRClient
from smart_vitals.utils import bundle_resources, next_link

logger = get_logger(__name__)


def parse_temperature(raw_value: str) -> float:
    """
    Parse a typed temperature.

    Raises:
        ObservationValidationError: If the text is not a finite number
    """
    try:
        value = float(str(raw_value).strip())
    except ValueError:
        raise ObservationValidationError(raw_value)
    if not math.isfinite(value):
        raise ObservationValidationError(raw_value)
    return value


def build_temperature_observation(
    patient_id: str, value: float, effective: datetime
) -> dict[str, Any]:
    """Build an oral temperature Observation resource."""
    return {
        "resourceType": "Observation",
        "status": "final",
        "category": [
            {
                "coding": [
                    {
                        "system": OBSERVATION_CATEGORY_SYSTEM,
                        "code": VITAL_SIGNS_CATEGORY,
                        "display": "Vital Signs",
                    }
                ]
            }
        ],
        "code": {
            "coding": [
                {
                    "system": LOINC_SYSTEM,
                    "code": LOINC_ORAL_TEMPERATURE,
                    "display": TEMPERATURE_DISPLAY,
                }
            ],
            "text": TEMPERATURE_DISPLAY,
        },
        "subject": {"reference": f"Patient/{patient_id}"},
        "effectiveDateTime": effective.isoformat(),
        "valueQuantity": {
            "value": value,
            "unit": TEMPERATURE_UNIT,
            "system": UCUM_SYSTEM,
            "code": TEMPERATURE_UCUM_CODE,
        },
    }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObservationFeed:
    """
    Paginated, cached view over a patient's vital signs.

    displayed is always all_loaded[:window_size]; has_more is true while
    loaded entries exceed the window or the server advertises a next page.
    """

    def __init__(
        self,
        client: FHIRClient,
        patient_id: str,
        *,
        count: int = 10,
        page_size: int = 5,
        cache: ResponseCache | None = None,
        reconcile_delay: float = 2.0,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._client = client
        self.patient_id = patient_id
        self.count = count
        self.page_size = page_size
        self.reconcile_delay = reconcile_delay
        self._cache = cache if cache is not None else ResponseCache(ttl_seconds=30.0)
        self._now = now

        self.all_loaded: list[ObservationEntry] = []
        self.window_size = page_size
        self.server_cursor: str | None = None
        self.error: str | None = None
        self.loaded = False
        # Bumped on every full replace; page loads started earlier are discarded
        self.generation = 0

        self._loading_more = False
        self._creating = False
        self._reconciliation: DeferredTask | None = None

    @property
    def displayed(self) -> list[ObservationEntry]:
        return self.all_loaded[: self.window_size]

    @property
    def has_more(self) -> bool:
        return len(self.all_loaded) > self.window_size or self.server_cursor is not None

    @property
    def is_loading_more(self) -> bool:
        return self._loading_more

    @property
    def reconciliation_pending(self) -> bool:
        return self._reconciliation is not None and not self._reconciliation.done

    def _cache_key(self) -> str:
        return (
            f"Observation?patient={self.patient_id}&category={VITAL_SIGNS_CATEGORY}"
            f"&_sort=-date&_count={self.count}"
        )

    async def fetch(self, force_refresh: bool = False) -> None:
        """
        Load the first page, replacing everything held locally.

        A fresh cached page is reused unless force_refresh is set.

        Raises:
            FeedFetchError: If the search fails
        """
        key = self._cache_key()
        bundle, fresh = self._cache.get(key)

        if force_refresh or not fresh:
            try:
                bundle = await self._client.search_vital_signs(self.patient_id, self.count)
            except FHIRRequestError as e:
                self.error = e.message
                audit_log(
                    AuditEvent.RESOURCE_SEARCH,
                    patient_id=self.patient_id,
                    resource_type="Observation",
                    success=False,
                    error=e.message,
                )
                raise FeedFetchError(self.patient_id, e.message) from e
            self._cache.put(key, bundle)
        else:
            logger.debug("Serving observations from cache", patient_id=self.patient_id)

        self._replace(bundle)
        audit_log(
            AuditEvent.RESOURCE_SEARCH,
            patient_id=self.patient_id,
            resource_type="Observation",
            details={"loaded": len(self.all_loaded), "has_next": self.server_cursor is not None},
        )

    def _replace(self, bundle: Mapping[str, Any]) -> None:
        self.all_loaded = sort_entries(self._entries(bundle))
        self.server_cursor = next_link(bundle)
        self.window_size = self.page_size
        self.error = None
        self.loaded = True
        self.generation += 1

    @staticmethod
    def _entries(bundle: Mapping[str, Any]) -> Iterable[ObservationEntry]:
        return (
            ObservationEntry.from_resource(resource)
            for resource in bundle_resources(bundle, "Observation")
        )

    def _merge(self, bundle: Mapping[str, Any]) -> int:
        known = {entry.id for entry in self.all_loaded if entry.id}
        added = [entry for entry in self._entries(bundle) if not entry.id or entry.id not in known]
        # Pages are not ordered relative to what is already held
        self.all_loaded = sort_entries([*self.all_loaded, *added])
        self.server_cursor = next_link(bundle)
        return len(added)

    async def load_more(self) -> bool:
        """
        Grow the window by one page, fetching the next server page if needed.

        Returns:
            True if the window advanced; False when nothing more is available,
            a load is already running, the next page could not be fetched, or
            a refresh replaced the list while the page was in flight
        """
        if self._loading_more or not self.has_more:
            return False

        self._loading_more = True
        try:
            generation = self.generation
            target = self.window_size + self.page_size
            if len(self.all_loaded) < target and self.server_cursor:
                try:
                    bundle = await self._client.fetch_page(self.server_cursor)
                except FHIRRequestError as e:
                    logger.warning(
                        "Could not load next observation page",
                        patient_id=self.patient_id,
                        error=e.message,
                    )
                    return False
                if generation != self.generation:
                    logger.debug(
                        "Dropping observation page fetched before a refresh",
                        patient_id=self.patient_id,
                    )
                    return False
                added = self._merge(bundle)
                logger.debug("Merged observation page", patient_id=self.patient_id, added=added)

            self.window_size = target
            return True
        finally:
            self._loading_more = False

    async def create_observation(self, raw_value: str) -> ObservationEntry:
        """
        Record an oral temperature reading.

        The new entry is visible immediately; a forced re-fetch replaces it
        with server data after reconcile_delay seconds.

        Raises:
            ObservationValidationError: If raw_value is not a number (no request is made)
            OperationInProgressError: If another create is still pending
            ObservationCreateError: If the server rejects the reading
        """
        value = parse_temperature(raw_value)
        if self._creating:
            raise OperationInProgressError("create_observation")

        effective = self._now().replace(microsecond=0)
        resource = build_temperature_observation(self.patient_id, value, effective)

        self._creating = True
        try:
            created = await self._client.create(resource)
        except FHIRRequestError as e:
            audit_log(
                AuditEvent.RESOURCE_CREATE,
                patient_id=self.patient_id,
                resource_type="Observation",
                success=False,
                error=e.message,
            )
            raise ObservationCreateError(e.message) from e
        finally:
            self._creating = False

        entry = ObservationEntry(
            id=created.id or f"{TEMPORARY_ID_PREFIX}{uuid.uuid4().hex}",
            display_name=TEMPERATURE_DISPLAY,
            effective=effective,
            value=QuantityValue(value=value, unit=TEMPERATURE_UNIT),
        )
        self.all_loaded = sort_entries([entry, *self.all_loaded])
        self._cache.invalidate(self._cache_key())

        audit_log(
            AuditEvent.RESOURCE_CREATE,
            patient_id=self.patient_id,
            resource_type="Observation",
            resource_id=created.id,
        )
        self._schedule_reconciliation()
        return entry

    def _schedule_reconciliation(self) -> None:
        if self._reconciliation is not None and self._reconciliation.cancel():
            logger.debug("Rescheduled pending reconciliation", patient_id=self.patient_id)
        self._reconciliation = DeferredTask.schedule(
            self.reconcile_delay, self.reconcile, name=f"reconcile-{self.patient_id}"
        )

    async def reconcile(self) -> None:
        """Replace local state with the server's list and return to the first page."""
        try:
            await self.fetch(force_refresh=True)
        except FeedFetchError as e:
            logger.warning(
                "Reconciliation failed, keeping local entries",
                patient_id=self.patient_id,
                error=e.message,
            )

    async def wait_for_reconciliation(self) -> None:
        if self._reconciliation is not None:
            await self._reconciliation.wait()

    def close(self) -> None:
        """Cancel any pending reconciliation."""
        if self._reconciliation is not None:
            self._reconciliation.cancel()
            self._reconciliation = None
