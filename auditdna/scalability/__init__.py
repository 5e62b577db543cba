"""Scalability: in-process coordination primitives."""

from auditdna.scalability.single_flight import SingleFlight

__all__ = ["SingleFlight"]
