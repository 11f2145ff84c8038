"""
Models for SMART Vitals.

This module contains models for:
- SMART launch sessions and parameters
- Observation entries, values and API payloads
"""

from smart_vitals.models.auth import LaunchParams, LaunchSession, LaunchStatusResponse
from smart_vitals.models.observation import (
    ComponentValue,
    CreateObservationRequest,
    FeedResponse,
    ObservationEntry,
    ObservationValue,
    ObservationView,
    QuantityValue,
    StringValue,
    UnknownValue,
    format_value,
    parse_value,
    sort_entries,
)

__all__ = [
    "LaunchParams",
    "LaunchSession",
    "LaunchStatusResponse",
    "ComponentValue",
    "CreateObservationRequest",
    "FeedResponse",
    "ObservationEntry",
    "ObservationValue",
    "ObservationView",
    "QuantityValue",
    "StringValue",
    "UnknownValue",
    "format_value",
    "parse_value",
    "sort_entries",
]
