"""
Observation models.

FHIR Observation resources are reduced to ObservationEntry records whose
value is one of a fixed set of variants, so formatting never probes optional
fields ad hoc.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import BaseModel, Field

from smart_vitals.constants import (
    BLOOD_PRESSURE_UNIT,
    LOINC_DIASTOLIC_BP,
    LOINC_SYSTOLIC_BP,
    UNKNOWN_DATE,
    UNKNOWN_OBSERVATION,
    VALUE_NOT_AVAILABLE,
)

# FHIR dateTime allows a bare year or year-month
_PARTIAL_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?$")

# Sort key for entries without a usable date
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class QuantityValue:
    """Single measured value with its unit."""

    value: float | int
    unit: str = ""

    def format(self) -> str:
        return f"{_format_number(self.value)} {self.unit}".rstrip()


@dataclass(frozen=True)
class Component:
    """One coded component of a multi-component observation."""

    code: str | None
    quantity: QuantityValue | None


@dataclass(frozen=True)
class ComponentValue:
    """Multi-component value such as systolic/diastolic blood pressure."""

    components: tuple[Component, ...] = field(default_factory=tuple)

    def _find(self, code: str) -> QuantityValue | None:
        for component in self.components:
            if component.code == code and component.quantity is not None:
                return component.quantity
        return None

    @property
    def systolic(self) -> QuantityValue | None:
        return self._find(LOINC_SYSTOLIC_BP)

    @property
    def diastolic(self) -> QuantityValue | None:
        return self._find(LOINC_DIASTOLIC_BP)

    def format(self) -> str:
        systolic, diastolic = self.systolic, self.diastolic
        if systolic is None or diastolic is None:
            return VALUE_NOT_AVAILABLE
        unit = systolic.unit or BLOOD_PRESSURE_UNIT
        return f"{_format_number(systolic.value)}/{_format_number(diastolic.value)} {unit}"


@dataclass(frozen=True)
class StringValue:
    """Free-text value."""

    text: str

    def format(self) -> str:
        return self.text


@dataclass(frozen=True)
class UnknownValue:
    """Missing or unrecognised value."""

    def format(self) -> str:
        return VALUE_NOT_AVAILABLE


ObservationValue = Union[QuantityValue, ComponentValue, StringValue, UnknownValue]


def _parse_quantity(data: Any, default_unit: str = "") -> QuantityValue | None:
    if not isinstance(data, Mapping) or data.get("value") is None:
        return None
    return QuantityValue(value=data["value"], unit=data.get("unit") or default_unit)


def _component_code(component: Mapping[str, Any]) -> str | None:
    for coding in (component.get("code") or {}).get("coding") or []:
        if isinstance(coding, Mapping) and coding.get("code"):
            return coding["code"]
    return None


def parse_value(resource: Mapping[str, Any]) -> ObservationValue:
    """
    Classify the value of an Observation resource.

    Precedence: systolic/diastolic components, then valueQuantity, then
    valueString, otherwise unknown.
    """
    raw_components = resource.get("component") or []
    components = tuple(
        Component(
            code=_component_code(component),
            quantity=_parse_quantity(component.get("valueQuantity"), BLOOD_PRESSURE_UNIT),
        )
        for component in raw_components
        if isinstance(component, Mapping)
    )
    if components:
        value = ComponentValue(components=components)
        if value.systolic is not None and value.diastolic is not None:
            return value

    quantity = _parse_quantity(resource.get("valueQuantity"))
    if quantity is not None:
        return quantity

    text = resource.get("valueString")
    if isinstance(text, str):
        return StringValue(text=text)

    return UnknownValue()


def format_value(value: ObservationValue) -> str:
    """Render a value for display."""
    return value.format()


def parse_effective(raw: Any) -> datetime | None:
    """
    Parse an ISO-8601 effectiveDateTime into an aware datetime.

    Reduced-precision values ("2024", "2024-05", "2024-05-01") are taken as
    the first instant of the period in UTC. Anything else that does not parse
    yields None.
    """
    if not isinstance(raw, str) or not raw:
        return None
    text = raw.strip()

    partial = _PARTIAL_DATE.match(text)
    if partial:
        year, month = partial.groups()
        try:
            return datetime(int(year), int(month or 1), 1, tzinfo=timezone.utc)
        except ValueError:
            return None

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ObservationEntry:
    """One clinical observation plus display metadata."""

    id: str | None
    display_name: str
    effective: datetime | None
    value: ObservationValue

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any]) -> "ObservationEntry":
        """Build an entry from a FHIR Observation, degrading missing fields to placeholders."""
        code = resource.get("code") or {}
        display_name = code.get("text") if isinstance(code, Mapping) else None
        return cls(
            id=resource.get("id"),
            display_name=display_name or UNKNOWN_OBSERVATION,
            effective=parse_effective(resource.get("effectiveDateTime")),
            value=parse_value(resource),
        )

    @property
    def sort_key(self) -> datetime:
        return self.effective or EARLIEST

    @property
    def formatted_value(self) -> str:
        return format_value(self.value)

    @property
    def display_date(self) -> str:
        if self.effective is None:
            return UNKNOWN_DATE
        return self.effective.strftime("%Y-%m-%d %H:%M")

    def to_view(self) -> "ObservationView":
        return ObservationView(
            id=self.id,
            name=self.display_name,
            value=self.formatted_value,
            effective=self.effective.isoformat() if self.effective else None,
            date=self.display_date,
        )


def sort_entries(entries: Iterable[ObservationEntry]) -> list[ObservationEntry]:
    """Sort entries newest first; undated entries sort last."""
    return sorted(entries, key=lambda entry: entry.sort_key, reverse=True)


# API models


class ObservationView(BaseModel):
    """Observation as rendered by the presentation layer."""

    id: str | None = None
    name: str
    value: str
    effective: str | None = None
    date: str


class FeedResponse(BaseModel):
    """Current window of the observation feed."""

    observations: list[ObservationView] = Field(default_factory=list)
    has_more: bool = False
    total_loaded: int = 0
    error: str | None = None


class LoadMoreResponse(FeedResponse):
    """Feed window after a load-more request."""

    advanced: bool = False


class CreateObservationRequest(BaseModel):
    """New temperature reading as typed by the user."""

    value: str = Field(description="Oral temperature in degrees Celsius")


class CreateObservationResponse(FeedResponse):
    """Feed window after an optimistic create."""

    created: ObservationView
