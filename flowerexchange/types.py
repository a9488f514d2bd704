"""Core exchange types, limits, price conversion and field parsing."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

TICK_SIZE = 0.01

QUANTITY_MULTIPLE = 10
MIN_QUANTITY = 10
MAX_QUANTITY = 1000

MIN_VALID_PRICE = 0.0
ORDER_BOOK_TICK_CAPACITY = 100001
MAX_VALID_TICK = ORDER_BOOK_TICK_CAPACITY - 1
MAX_VALID_PRICE = float(MAX_VALID_TICK) * TICK_SIZE

ORDER_POOL_INITIAL_CAPACITY = 65536
REPORT_POOL_INITIAL_CAPACITY = 8192

INBOUND_QUEUE_CAPACITY = 1 << 16
OUTBOUND_QUEUE_CAPACITY = 1 << 14

PRICE_TICK_MAX = 2**64 - 1

_INT_MAX = 2**31 - 1
_LLONG_MAX = 2**63 - 1
_LLONG_MIN = -(2**63)

_OID_LIMIT = 31
_COID_LIMIT = 63
_REASON_LIMIT = 49
_TIMESTAMP_LIMIT = 19

_INT_PATTERN = re.compile(r"[ \t]*([+-]?)([0-9]+)[ \t]*")
_DOUBLE_PATTERN = re.compile(
    r"[ \t]*([+-]?)([0-9]*)(?:\.([0-9]*))?(?:[eE]([+-]?)([0-9]+))?[ \t]*"
)


class Side(IntEnum):
    BUY = 1
    SELL = 2


class InstrumentType(IntEnum):
    ROSE = 0
    LAVENDER = 1
    LOTUS = 2
    TULIP = 3
    ORCHID = 4


class ExecStatus(IntEnum):
    NEW = 0
    REJECTED = 1
    FILL = 2
    PFILL = 3


_INSTRUMENT_NAMES = {
    InstrumentType.ROSE: "Rose",
    InstrumentType.LAVENDER: "Lavender",
    InstrumentType.LOTUS: "Lotus",
    InstrumentType.TULIP: "Tulip",
    InstrumentType.ORCHID: "Orchid",
}

_INSTRUMENTS_BY_NAME = {name: inst for inst, name in _INSTRUMENT_NAMES.items()}

VALID_INSTRUMENT_NAMES = tuple(_INSTRUMENT_NAMES.values())

_EXEC_STATUS_NAMES = {
    ExecStatus.NEW: "New",
    ExecStatus.REJECTED: "Reject",
    ExecStatus.FILL: "Fill",
    ExecStatus.PFILL: "Pfill",
}


def _round_half_away(value: float) -> int:
    """Round to the nearest integer, halfway cases away from zero."""
    magnitude = abs(value)
    floor = math.floor(magnitude)
    rounded = floor + 1 if magnitude - floor >= 0.5 else floor
    return -rounded if value < 0 else rounded


def double_to_ticks(price: float) -> int:
    """Convert a decimal price to whole ticks, saturating on overflow."""
    if not math.isfinite(price):
        return PRICE_TICK_MAX
    if price <= 0.0:
        return 0
    scaled = price / TICK_SIZE
    if scaled >= float(PRICE_TICK_MAX):
        return PRICE_TICK_MAX
    return _round_half_away(scaled)


def ticks_to_double(ticks: int) -> float:
    """Convert ticks back to a decimal price."""
    return float(ticks) * TICK_SIZE


def instrument_to_string(instrument: InstrumentType | None) -> str:
    """Return the display name of an instrument, or UNKNOWN."""
    return _INSTRUMENT_NAMES.get(instrument, "UNKNOWN")


def exec_status_to_string(status: ExecStatus | None) -> str:
    """Return the report text of an execution status, or UNKNOWN."""
    return _EXEC_STATUS_NAMES.get(status, "UNKNOWN")


def parse_instrument(text: str) -> InstrumentType | None:
    """Parse an instrument name; None when it is not a known instrument."""
    return _INSTRUMENTS_BY_NAME.get(text)


def parse_int(text: str) -> int:
    """Parse a decimal integer field, clamping its magnitude to INT_MAX."""
    match = _INT_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid integer: {text!r}")
    sign, digits = match.groups()
    value = min(int(digits), _INT_MAX)
    return -value if sign == "-" else value


def parse_double(text: str) -> float:
    """Parse a decimal number field with optional fraction and exponent."""
    match = _DOUBLE_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid number: {text!r}")
    sign, int_digits, frac_digits, exp_sign, exp_digits = match.groups()
    frac_digits = frac_digits or ""
    if not int_digits and not frac_digits:
        raise ValueError(f"invalid number: {text!r}")

    value = 0.0
    for ch in int_digits:
        value = value * 10.0 + float(ord(ch) - 48)
    place = 0.1
    for ch in frac_digits:
        value += float(ord(ch) - 48) * place
        place *= 0.1

    if exp_digits is not None:
        exponent = min(int(exp_digits), _INT_MAX)
        if exp_sign == "-":
            exponent = -exponent
        try:
            factor = math.pow(10.0, float(exponent))
        except OverflowError:
            factor = math.inf
        value *= factor

    return -value if sign == "-" else value


def format_ticks(ticks: int) -> str:
    """Format a tick count as a price with exactly two decimals."""
    whole, cents = divmod(ticks, 100)
    return f"{whole}.{cents:02d}"


def format_price(price: float) -> str:
    """Format a decimal price with two decimals; empty text if it cannot be."""
    if price >= 0.0:
        return format_ticks(double_to_ticks(price))
    if not math.isfinite(price):
        return ""
    scaled = price * 100.0
    if scaled > float(_LLONG_MAX) or scaled < float(_LLONG_MIN):
        return ""
    cents = _round_half_away(scaled)
    text = format_ticks(abs(cents))
    return "-" + text if cents < 0 else text


def current_timestamp() -> str:
    """Return local time as YYYYMMDD-HHMMSS.sss."""
    now = datetime.now()
    return f"{now:%Y%m%d-%H%M%S}.{now.microsecond // 1000:03d}"


@dataclass(eq=False)
class Order:
    """A live order resting in or entering the book."""

    oid: str
    coid: str
    instrument: InstrumentType | None
    side: Side
    price: int
    quantity: int

    def __post_init__(self) -> None:
        self.oid = (self.oid or "")[:_OID_LIMIT]
        self.coid = (self.coid or "")[:_COID_LIMIT]


@dataclass(eq=False)
class ExecutionReport:
    """One execution report row; an empty timestamp is filled with now."""

    oid: str = ""
    coid: str = ""
    instrument: InstrumentType | None = None
    side: Side = Side.BUY
    price: int = 0
    quantity: int = 0
    status: ExecStatus = ExecStatus.NEW
    reason: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        self.oid = (self.oid or "")[:_OID_LIMIT]
        self.coid = (self.coid or "")[:_COID_LIMIT]
        self.reason = (self.reason or "")[:_REASON_LIMIT]
        if self.timestamp:
            self.timestamp = self.timestamp[:_TIMESTAMP_LIMIT]
        else:
            self.timestamp = current_timestamp()