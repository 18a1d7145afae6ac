"""Error taxonomy for snapshot decoding and metric derivation."""

from __future__ import annotations

from typing import Any


class StakMetricsError(Exception):
    """Base class for all errors raised by stak-metrics."""


class ParseError(StakMetricsError, ValueError):
    """Raised when a numeric or timestamp field is missing, empty or non-numeric."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class MissingFieldError(StakMetricsError):
    """Raised when a snapshot field required for a derived metric is absent."""

    def __init__(self, field: str, entity: str | None = None):
        location = f"{entity}.{field}" if entity else field
        super().__init__(f"Missing required field: {location}")
        self.field = field
        self.entity = entity


class DataInconsistencyError(StakMetricsError):
    """A derived quantity that should be non-negative came out negative.

    Instances are collected on metric results rather than raised, so callers
    can still render best-effort values while flagging the upstream data.
    """

    def __init__(self, field: str, value: Any, message: str | None = None):
        super().__init__(message or f"{field} is negative ({value})")
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "value": str(self.value), "message": str(self)}


class IndexerError(StakMetricsError):
    """Raised when the GraphQL indexer returns errors or an empty entity."""
