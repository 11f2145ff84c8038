"""SMART Vitals - SMART on FHIR launch client for patient vital signs."""

__version__ = "0.1.0"
