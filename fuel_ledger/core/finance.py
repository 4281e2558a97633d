from __future__ import annotations

import math
from decimal import Decimal

from fuel_ledger.core.config import EngineSettings
from fuel_ledger.core.time_utils import normalize_date

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def to_decimal(value: float | int | str | Decimal | None) -> Decimal:
    """Convert a stored number to ``Decimal``; absent or NaN values become zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return ZERO if value.is_nan() else value
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return ZERO
    return Decimal(str(value))


def money(value: float | Decimal, digits: int = 2) -> float:
    return round(float(value), digits)


def fuel_rate(entry_date: str | None, settings: EngineSettings) -> Decimal:
    """Allowed liters per 100 km for a reading taken on ``entry_date``."""
    normalized = normalize_date(entry_date)
    if normalized and normalized in settings.rate_step_dates:
        return settings.base_rate * (ONE + settings.rate_increase)
    return settings.base_rate


def fuel_norm(
    distance: float | Decimal | None, entry_date: str | None, settings: EngineSettings
) -> Decimal:
    # Refuels without distance accrue no allowance.
    value = to_decimal(distance)
    if value <= 0:
        return ZERO
    return value * fuel_rate(entry_date, settings) / HUNDRED


def approved_rate(norm: Decimal, distance: Decimal) -> Decimal:
    if distance <= 0:
        return ZERO
    return norm / distance * HUNDRED


def accrued_compensation(distance: Decimal, settings: EngineSettings) -> Decimal:
    return distance * settings.compensation_per_km


def liters_to_amount(liters: Decimal, settings: EngineSettings) -> Decimal:
    return liters * settings.fuel_price
