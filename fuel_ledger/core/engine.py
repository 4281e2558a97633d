from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import NamedTuple

from fuel_ledger.core.config import EngineSettings, get_settings
from fuel_ledger.core.finance import (
    ZERO,
    accrued_compensation,
    approved_rate,
    fuel_norm,
    fuel_rate,
    liters_to_amount,
    money,
    to_decimal,
)
from fuel_ledger.core.records import normalize_records
from fuel_ledger.core.time_utils import (
    UNKNOWN_MONTH_KEY,
    is_month_key,
    month_key,
    month_label,
    normalize_date,
)
from fuel_ledger.models.entries import (
    COMPENSATION_PAYMENT,
    DEBT_DEDUCTION,
    AdjustmentEntry,
    FuelEntry,
)

logger = logging.getLogger(__name__)

STATUS_OPEN = "open"
STATUS_PARTIALLY_CLOSED = "partially_closed"
STATUS_CLOSED = "closed"
STATUS_LABELS = {
    STATUS_OPEN: "Open",
    STATUS_PARTIALLY_CLOSED: "Partially closed",
    STATUS_CLOSED: "Closed",
}

LITER_DIGITS = 3


class CarryOver(NamedTuple):
    """Debt handed from one month to the next."""

    debt_liters: Decimal = ZERO
    unpaid_compensation: Decimal = ZERO


NO_CARRY = CarryOver()


def _is_present(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


def _count_nan(*values: float | None) -> int:
    return sum(1 for value in values if value is not None and math.isnan(value))


def _sort_key(key: str) -> tuple[int, str]:
    # Unknown-date bucket always sorts after real months.
    return (1, key) if key == UNKNOWN_MONTH_KEY else (0, key)


def _empty_month(key: str) -> dict:
    return {
        "key": key,
        "label": month_label(key),
        "entry_count": 0,
        "total_distance": ZERO,
        "total_liters": ZERO,
        "total_cost": ZERO,
        "fuel_norm": ZERO,
    }


def aggregate_months(
    fuel_entries: list[FuelEntry], settings: EngineSettings
) -> list[dict]:
    """Group fuel entries by calendar month and sum distance, liters, cost and norm."""
    buckets: dict[str, dict] = {}
    nan_fields = 0
    undated = 0

    for entry in fuel_entries:
        key = month_key(entry.date)
        if key is None:
            key = UNKNOWN_MONTH_KEY
            undated += 1
        nan_fields += _count_nan(entry.distance, entry.liters, entry.cost)

        bucket = buckets.setdefault(key, _empty_month(key))
        bucket["entry_count"] += 1
        bucket["total_distance"] += to_decimal(entry.distance)
        bucket["total_liters"] += to_decimal(entry.liters)
        bucket["total_cost"] += to_decimal(entry.cost)
        bucket["fuel_norm"] += fuel_norm(entry.distance, entry.date, settings)

    if nan_fields or undated:
        logger.warning(
            "fuel entries tolerated: non_numeric_fields=%s undated=%s total=%s",
            nan_fields,
            undated,
            len(fuel_entries),
        )

    months = [buckets[key] for key in sorted(buckets, key=_sort_key)]
    for month in months:
        month["fuel_diff"] = month["fuel_norm"] - month["total_liters"]
        month["approved_rate"] = approved_rate(month["fuel_norm"], month["total_distance"])
    return months


def _empty_applied() -> dict:
    return {
        "adjustment_count": 0,
        "paid": ZERO,
        "deduction_amount": ZERO,
        "deduction_value": ZERO,
        "deduction_liters": ZERO,
        "estimated": False,
    }


def group_adjustments(
    adjustments: list[AdjustmentEntry], settings: EngineSettings
) -> dict[str, dict]:
    """Sum payments and debt deductions per month key.

    A deduction recorded only in liters is valued at ``settings.fuel_price`` and
    its month is flagged as estimated.
    """
    grouped: dict[str, dict] = {}
    skipped = 0

    for adjustment in adjustments:
        if adjustment.kind not in (COMPENSATION_PAYMENT, DEBT_DEDUCTION):
            skipped += 1
            continue
        key = adjustment.monthKey if is_month_key(adjustment.monthKey) else UNKNOWN_MONTH_KEY
        applied = grouped.setdefault(key, _empty_applied())
        applied["adjustment_count"] += 1

        if adjustment.kind == COMPENSATION_PAYMENT:
            applied["paid"] += to_decimal(adjustment.amount)
            continue

        liters = to_decimal(adjustment.liters)
        applied["deduction_liters"] += liters
        if _is_present(adjustment.amount):
            amount = to_decimal(adjustment.amount)
            applied["deduction_amount"] += amount
            applied["deduction_value"] += amount
        else:
            applied["deduction_value"] += liters_to_amount(liters, settings)
            if liters:
                applied["estimated"] = True

    if skipped:
        logger.warning("adjustments skipped: unknown_kind=%s total=%s", skipped, len(adjustments))
    return grouped


def compensation_status(due: Decimal, applied: Decimal) -> str:
    if due > 0 and applied >= due:
        return STATUS_CLOSED
    if 0 < applied < due:
        return STATUS_PARTIALLY_CLOSED
    return STATUS_OPEN


def _ledger_step(
    carry: CarryOver, month: dict, applied: dict, settings: EngineSettings
) -> tuple[dict, CarryOver]:
    accrued = accrued_compensation(month["total_distance"], settings)
    incoming_unpaid = carry.unpaid_compensation if settings.carry_unpaid_compensation else ZERO
    due = accrued + incoming_unpaid
    effective = applied["paid"] + applied["deduction_value"]
    remaining = due - effective

    balance = month["fuel_diff"] + applied["deduction_liters"] - carry.debt_liters
    outgoing_debt = -balance if balance < 0 else ZERO

    row = {
        **month,
        **applied,
        "accrued": accrued,
        "effective_applied": effective,
        "incoming_debt_liters": carry.debt_liters,
        "incoming_unpaid": incoming_unpaid,
        "due": due,
        "remaining": remaining,
        "status": compensation_status(due, effective),
        "outgoing_debt_liters": outgoing_debt,
    }
    next_carry = CarryOver(
        debt_liters=outgoing_debt,
        unpaid_compensation=remaining if settings.carry_unpaid_compensation else ZERO,
    )
    return row, next_carry


def build_ledger(
    months: list[dict], adjustments_by_month: dict[str, dict], settings: EngineSettings
) -> tuple[list[dict], CarryOver]:
    """Fold the months in chronological order, threading the carried debt.

    Month keys that only hold adjustments get a zero fuel row so every
    adjustment lands in exactly one month. The unknown-date bucket neither
    receives nor emits carry. Returns the rows and the carry left after the
    last dated month.
    """
    by_key = {month["key"]: month for month in months}
    for key in adjustments_by_month:
        if key not in by_key:
            empty = _empty_month(key)
            empty["fuel_diff"] = ZERO
            empty["approved_rate"] = ZERO
            by_key[key] = empty

    rows: list[dict] = []
    carry = NO_CARRY
    for key in sorted(by_key, key=_sort_key):
        applied = adjustments_by_month.get(key) or _empty_applied()
        if key == UNKNOWN_MONTH_KEY:
            row, _ = _ledger_step(NO_CARRY, by_key[key], applied, settings)
        else:
            row, carry = _ledger_step(carry, by_key[key], applied, settings)
        rows.append(row)
    return rows, carry


def reduce_totals(rows: list[dict], carry: CarryOver, settings: EngineSettings) -> dict:
    total_norm = sum((row["fuel_norm"] for row in rows), ZERO)
    total_liters = sum((row["total_liters"] for row in rows), ZERO)
    total_accrued = sum((row["accrued"] for row in rows), ZERO)
    total_paid = sum((row["paid"] for row in rows), ZERO)
    deduction_value = sum((row["deduction_value"] for row in rows), ZERO)
    deduction_liters = sum((row["deduction_liters"] for row in rows), ZERO)
    fuel_diff = total_norm - total_liters

    if settings.carry_unpaid_compensation:
        dated = [row for row in rows if row["key"] != UNKNOWN_MONTH_KEY]
        undated = [row for row in rows if row["key"] == UNKNOWN_MONTH_KEY]
        outstanding = sum((row["remaining"] for row in dated[-1:] + undated), ZERO)
    else:
        outstanding = sum((row["remaining"] for row in rows), ZERO)

    return {
        "total_distance": sum((row["total_distance"] for row in rows), ZERO),
        "total_liters": total_liters,
        "total_cost": sum((row["total_cost"] for row in rows), ZERO),
        "fuel_norm": total_norm,
        "total_accrued": total_accrued,
        "total_paid": total_paid,
        "total_deduction_amount": sum((row["deduction_amount"] for row in rows), ZERO),
        "approx_deduction_amount": deduction_value,
        "total_deduction_liters": deduction_liters,
        "deduction_estimated": any(row["estimated"] for row in rows),
        "net_compensation": total_accrued - total_paid - deduction_value,
        "outstanding_compensation": outstanding,
        "fuel_diff": fuel_diff,
        "adjusted_fuel_diff": fuel_diff + deduction_liters,
        "carryover_debt_liters": carry.debt_liters,
        "carryover_debt_rub": liters_to_amount(carry.debt_liters, settings),
        "carryover_estimated": carry.debt_liters > 0,
    }


def explain(adjusted_fuel_diff: Decimal) -> str:
    # Branch on the displayed value so a tiny balance never reads "0 l".
    rounded = money(adjusted_fuel_diff, 1)
    if rounded < 0:
        return f"Fuel overspend of {abs(rounded):g} l."
    if rounded > 0:
        return f"Fuel left under the norm: {rounded:g} l."
    return "Fuel consumption matches the norm."


def _liters(value: Decimal) -> float:
    return money(value, LITER_DIGITS)


def _month_output(row: dict, settings: EngineSettings) -> dict:
    return {
        "monthKey": row["key"],
        "label": row["label"],
        "entryCount": row["entry_count"],
        "adjustmentCount": row["adjustment_count"],
        "totalDistance": money(row["total_distance"]),
        "totalLiters": _liters(row["total_liters"]),
        "totalCost": money(row["total_cost"]),
        "fuelNorm": _liters(row["fuel_norm"]),
        "fuelDiff": _liters(row["fuel_diff"]),
        "approvedRate": _liters(row["approved_rate"]),
        "accruedCompensation": money(row["accrued"]),
        "paidCompensation": money(row["paid"]),
        "debtDeductionAmount": money(row["deduction_amount"]),
        "debtDeductionLiters": _liters(row["deduction_liters"]),
        "effectiveApplied": money(row["effective_applied"]),
        "incomingCarryoverDebtLiters": _liters(row["incoming_debt_liters"]),
        "incomingCarryoverDebtRub": money(
            liters_to_amount(row["incoming_debt_liters"], settings)
        ),
        "incomingUnpaidCompensation": money(row["incoming_unpaid"]),
        "remainingCompensation": money(row["remaining"]),
        "monthCarryoverDebtLiters": _liters(row["outgoing_debt_liters"]),
        "monthCarryoverDebtRub": money(
            liters_to_amount(row["outgoing_debt_liters"], settings)
        ),
        "status": row["status"],
        "statusLabel": STATUS_LABELS[row["status"]],
        "estimated": row["estimated"],
    }


def _totals_output(totals: dict) -> dict:
    return {
        "totalDistance": money(totals["total_distance"]),
        "totalLiters": _liters(totals["total_liters"]),
        "totalCost": money(totals["total_cost"]),
        "fuelNorm": _liters(totals["fuel_norm"]),
        "totalCompensation": money(totals["total_accrued"]),
        "totalPaidCompensation": money(totals["total_paid"]),
        "totalDebtDeductionAmount": money(totals["total_deduction_amount"]),
        "approxDebtDeductionAmount": money(totals["approx_deduction_amount"]),
        "totalDebtDeductionLiters": _liters(totals["total_deduction_liters"]),
        "debtDeductionEstimated": totals["deduction_estimated"],
        "netCompensation": money(totals["net_compensation"]),
        "outstandingCompensation": money(totals["outstanding_compensation"]),
        "fuelDiff": _liters(totals["fuel_diff"]),
        "adjustedFuelDiff": _liters(totals["adjusted_fuel_diff"]),
        "carryoverDebtLiters": _liters(totals["carryover_debt_liters"]),
        "carryoverDebtRub": money(totals["carryover_debt_rub"]),
        "carryoverEstimated": totals["carryover_estimated"],
    }


def summarize_entries(
    fuel_entries: list[FuelEntry],
    adjustments: list[AdjustmentEntry],
    settings: EngineSettings | None = None,
) -> dict:
    settings = settings or get_settings()
    months = aggregate_months(fuel_entries, settings)
    applied = group_adjustments(adjustments, settings)
    rows, carry = build_ledger(months, applied, settings)
    totals = reduce_totals(rows, carry, settings)

    logger.debug(
        "summary computed: months=%s fuel=%s adjustments=%s",
        len(rows),
        len(fuel_entries),
        len(adjustments),
    )
    return {
        "monthly": [_month_output(row, settings) for row in rows],
        "totals": _totals_output(totals),
        "explanation": explain(totals["adjusted_fuel_diff"]),
        "hasData": bool(rows),
    }


def summarize(raw_records: list, settings: EngineSettings | None = None) -> dict:
    fuel_entries, adjustments = normalize_records(raw_records)
    return summarize_entries(fuel_entries, adjustments, settings)


def norm_for_reading(
    distance: float | None, entry_date: str, settings: EngineSettings | None = None
) -> dict:
    settings = settings or get_settings()
    normalized = normalize_date(entry_date)
    return {
        "date": normalized,
        "distance": distance,
        "rate": _liters(fuel_rate(normalized, settings)),
        "norm": _liters(fuel_norm(distance, normalized, settings)),
        "stepDate": normalized in settings.rate_step_dates,
    }
