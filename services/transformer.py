"""Raw sensor count to reported value conversions."""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol


LINEAR_SCALE_FACTOR = 0.062
LOAD_RESISTANCE_OHMS = 24.0
WATT_MULTIPLIER = 2

_LOW_THRESHOLD = 1000
_HIGH_THRESHOLD = 2000
_LOW_OFFSET = 800
_MID_OFFSET = 400

_HUNDREDTHS = Decimal("0.01")
# Beyond this magnitude a float carries no hundredths to round.
_ROUNDING_LIMIT = 1e15


def round2(value: float) -> float:
    """Round to two decimals, ties away from zero on the exact binary value."""
    if not math.isfinite(value) or abs(value) >= _ROUNDING_LIMIT:
        return float(value)
    return float(Decimal(value).quantize(_HUNDREDTHS, rounding=ROUND_HALF_UP))


class ValueTransformer(Protocol):
    def transform(self, raw_value: int, instant: Optional[datetime] = None) -> float:
        ...


class LinearScaleTransformer:
    """Maps the sensor's ADC count directly to volts."""

    def __init__(self, factor: float = LINEAR_SCALE_FACTOR) -> None:
        self.factor = factor

    def transform(self, raw_value: int, instant: Optional[datetime] = None) -> float:
        return round2(raw_value * self.factor)


class PiecewiseAdjustmentTransformer:
    """Doubles the raw count and lifts low readings by a banded offset.

    ``instant`` is accepted for time-dependent calibration but does not
    currently affect the result.
    """

    def transform(self, raw_value: int, instant: Optional[datetime] = None) -> float:
        doubled = raw_value * 2
        if doubled < _LOW_THRESHOLD:
            doubled += _LOW_OFFSET
        elif doubled <= _HIGH_THRESHOLD:
            doubled += _MID_OFFSET
        return round2(doubled)


def voltage_to_watts(voltage: float) -> float:
    """Estimated output for an averaged panel voltage across the fixed load."""
    return round2((voltage**2) / LOAD_RESISTANCE_OHMS * WATT_MULTIPLIER)
