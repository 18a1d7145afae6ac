"""Fixed-point decoding for indexer amounts."""

from __future__ import annotations

import re
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, localcontext
from typing import Iterator

from .constants import DEFAULT_DECIMALS
from .errors import ParseError

# 256-bit integers have 78 digits; keep headroom for products of two amounts.
PRECISION = 96

DECIMAL_CONTEXT = Context(prec=PRECISION)

# Plain ASCII base-10, as the indexer serializes BigInt fields
INTEGER_PATTERN = re.compile(r"-?[0-9]+")
DECIMALS_PATTERN = re.compile(r"[0-9]+")


@contextmanager
def precise() -> Iterator[Context]:
    """Run decimal arithmetic at on-chain precision."""
    with localcontext(DECIMAL_CONTEXT) as ctx:
        yield ctx


def parse_int(value: str | int | None, field: str | None = None) -> int:
    """Parse a base-10 integer string as delivered by the indexer.

    Raises:
        ParseError: If ``value`` is missing, empty or not an integer.
    """
    label = field or "value"
    if value is None:
        raise ParseError(f"{label} is missing", field)
    if isinstance(value, bool):
        raise ParseError(f"{label} is not an integer: {value!r}", field)
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        raise ParseError(f"{label} is empty", field)
    if not INTEGER_PATTERN.fullmatch(text):
        raise ParseError(f"{label} is not an integer: {value!r}", field)
    return int(text)


def parse_timestamp(value: str | int | None, field: str | None = None) -> int:
    """Parse a unix-seconds timestamp string."""
    return parse_int(value, field)


def parse_decimals(decimals: str | int | None) -> int:
    """Parse a token decimals count, falling back to 18 when unusable."""
    if decimals is None or isinstance(decimals, bool):
        return DEFAULT_DECIMALS
    if isinstance(decimals, int):
        return decimals if decimals >= 0 else DEFAULT_DECIMALS
    text = str(decimals).strip()
    if not DECIMALS_PATTERN.fullmatch(text):
        return DEFAULT_DECIMALS
    return int(text)


@dataclass(frozen=True)
class ScaledAmount:
    """Integer on-chain quantity paired with its decimals exponent."""

    raw: int
    decimals: int = DEFAULT_DECIMALS

    @classmethod
    def parse(
        cls,
        raw_value: str | int | None,
        decimals: str | int | None = None,
        field: str | None = None,
    ) -> "ScaledAmount":
        return cls(raw=parse_int(raw_value, field), decimals=parse_decimals(decimals))

    @property
    def value(self) -> Decimal:
        """``raw / 10**decimals``, exact."""
        with precise():
            return Decimal(self.raw).scaleb(-self.decimals)

    def __str__(self) -> str:
        return str(self.value)


def decode(
    raw_value: str | int | None,
    decimals: str | int | None = DEFAULT_DECIMALS,
    field: str | None = None,
) -> Decimal:
    """Decode an on-chain fixed-point integer into its display value.

    Args:
        raw_value: Integer amount, usually a decimal string from the indexer.
        decimals: Decimal places of the asset. Defaults to 18 when omitted
            or not parseable.
        field: Optional field name used in error messages.

    Returns:
        ``raw_value / 10**decimals`` as an exact ``Decimal``.

    Raises:
        ParseError: If ``raw_value`` is empty or not a plain base-10 integer.
    """
    return ScaledAmount.parse(raw_value, decimals, field).value


def format_amount(value: Decimal | None, places: int = 2) -> str:
    """Format a decoded amount with thousands separators."""
    if value is None:
        return "—"
    try:
        quantum = Decimal(1).scaleb(-places)
        with precise():
            rounded = value.quantize(quantum)
    except InvalidOperation:
        return str(value)
    return f"{rounded:,}"
