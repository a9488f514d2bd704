"""Order validation rules."""

from __future__ import annotations

import math

from flowerexchange.types import (
    MAX_QUANTITY,
    MAX_VALID_PRICE,
    MIN_QUANTITY,
    MIN_VALID_PRICE,
    QUANTITY_MULTIPLE,
    InstrumentType,
    Side,
    parse_instrument,
)


def validate_order(
    instrument: InstrumentType | str | None,
    side: int,
    price: float,
    quantity: int,
) -> str | None:
    """Return the rejection reason for an order, or None when it is valid.

    The instrument may be given as a parsed value or as its name.
    """
    if isinstance(instrument, str):
        instrument = parse_instrument(instrument)
    if instrument is None:
        return "Invalid instrument"

    if side not in (Side.BUY, Side.SELL):
        return "Invalid side"

    if (
        quantity % QUANTITY_MULTIPLE != 0
        or quantity < MIN_QUANTITY
        or quantity > MAX_QUANTITY
    ):
        return "Invalid size"

    if (
        not math.isfinite(price)
        or price <= MIN_VALID_PRICE
        or price > MAX_VALID_PRICE
    ):
        return "Invalid price"

    return None