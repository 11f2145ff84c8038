"""Middleware for SMART Vitals."""

from smart_vitals.middleware.correlation import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
