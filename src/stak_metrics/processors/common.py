from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

from ..errors import DataInconsistencyError, MissingFieldError
from ..units import precise

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class Slice:
    """One labelled segment of a breakdown chart."""

    label: str
    value: Decimal
    percent: Decimal


def require(entity: Any, field: str, entity_name: str | None = None) -> str:
    """Return a raw snapshot field or fail naming it.

    Raises:
        MissingFieldError: If the field is absent (``None``) or blank.
    """
    value = getattr(entity, field, None)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError(field, entity_name)
    return value


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100``, or 0 when ``whole`` is not positive."""
    if whole <= 0:
        return Decimal(0)
    with precise():
        return part / whole * HUNDRED


def build_breakdown(items: Sequence[tuple[str, Decimal]]) -> list[Slice]:
    """Turn labelled values into slices with their share of the total."""
    with precise():
        total = sum((value for _, value in items), Decimal(0))
    return [
        Slice(label=label, value=value, percent=percent_of(value, total))
        for label, value in items
    ]


def check_non_negative(
    field: str, value: Decimal, findings: list[DataInconsistencyError]
) -> None:
    if value < 0:
        findings.append(DataInconsistencyError(field, value))


def to_jsonable(value: Any) -> Any:
    """Convert metric results to JSON-safe primitives.

    Decimals become strings so no precision is lost on the way out.
    """
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, DataInconsistencyError):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_jsonable(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    return value
