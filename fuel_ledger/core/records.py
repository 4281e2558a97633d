from __future__ import annotations

import logging
import math

from fuel_ledger.core.time_utils import (
    format_date,
    is_month_key,
    month_key,
    month_start,
    normalize_date,
    parse_iso_date,
)
from fuel_ledger.models.entries import (
    ADJUSTMENT_KINDS,
    ADJUSTMENT_RECORD_TYPE,
    COMPENSATION_PAYMENT,
    DEBT_DEDUCTION,
    AdjustmentEntry,
    Entry,
    FuelEntry,
)

logger = logging.getLogger(__name__)


def _first_present(raw: dict, *names: str) -> object:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _coerce_number(value: object) -> float | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def _coerce_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def normalize_record(raw: object) -> Entry:
    if not isinstance(raw, dict):
        logger.warning("stored record is not an object: %r", raw)
        raw = {}

    record_id = _coerce_text(_first_present(raw, "id", "_id"))
    entry_date = normalize_date(raw.get("date"))

    if raw.get("recordType") != ADJUSTMENT_RECORD_TYPE:
        return FuelEntry(
            id=record_id,
            date=entry_date,
            distance=_coerce_number(_first_present(raw, "distance", "mileage")),
            liters=_coerce_number(raw.get("liters")),
            cost=_coerce_number(_first_present(raw, "cost", "fuelCost")),
        )

    stored_key = (_coerce_text(raw.get("monthKey")) or "").strip()
    key = stored_key if is_month_key(stored_key) else month_key(entry_date)
    return AdjustmentEntry(
        id=record_id,
        date=entry_date or (month_start(key) if key else ""),
        kind=str(_first_present(raw, "kind", "adjustmentType") or ""),
        monthKey=key or "",
        amount=_coerce_number(raw.get("amount")),
        liters=_coerce_number(raw.get("liters")),
        comment=_coerce_text(raw.get("comment")),
    )


def normalize_records(raw_records: list) -> tuple[list[FuelEntry], list[AdjustmentEntry]]:
    fuel: list[FuelEntry] = []
    adjustments: list[AdjustmentEntry] = []
    for raw in raw_records:
        entry = normalize_record(raw)
        if isinstance(entry, AdjustmentEntry):
            adjustments.append(entry)
        else:
            fuel.append(entry)
    return fuel, adjustments


def _optional_non_negative(value: object, field_name: str) -> float | None:
    number = _coerce_number(value)
    if number is None:
        return None
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"Field '{field_name}' must be numeric.")
    if number < 0:
        raise ValueError(f"Field '{field_name}' cannot be negative.")
    return number


def build_fuel_entry(payload: dict, *, entry_id: str | None = None) -> FuelEntry:
    raw_date = payload.get("date")
    if raw_date is None or not str(raw_date).strip():
        raise ValueError("Fuel entry must include 'date'.")
    entry_date = format_date(parse_iso_date(normalize_date(raw_date)))

    distance = _optional_non_negative(
        _first_present(payload, "distance", "mileage"), "distance"
    )
    liters = _optional_non_negative(payload.get("liters"), "liters")
    cost = _optional_non_negative(_first_present(payload, "cost", "fuelCost"), "cost")
    if distance is None and liters is None and cost is None:
        raise ValueError("Provide at least one of distance, liters or cost.")

    return FuelEntry(
        id=entry_id,
        date=entry_date,
        distance=distance,
        liters=liters,
        cost=cost,
    )


def build_adjustment_entry(payload: dict, *, entry_id: str | None = None) -> AdjustmentEntry:
    kind = _first_present(payload, "kind", "adjustmentType")
    if kind not in ADJUSTMENT_KINDS:
        raise ValueError(
            f"Adjustment kind must be one of: {', '.join(ADJUSTMENT_KINDS)}."
        )

    key = payload.get("monthKey")
    if key is None and payload.get("date") is not None:
        key = normalize_date(payload.get("date"))[0:7]
    if not is_month_key(key):
        raise ValueError("Field 'monthKey' must match 'YYYY-MM'.")

    amount = _optional_non_negative(payload.get("amount"), "amount")
    liters = _optional_non_negative(payload.get("liters"), "liters")

    if kind == COMPENSATION_PAYMENT:
        if amount is None:
            raise ValueError("Compensation payment must include 'amount'.")
        if liters is not None:
            raise ValueError("Compensation payment cannot include liters.")
    elif kind == DEBT_DEDUCTION and amount is None and liters is None:
        raise ValueError("Debt deduction must include 'amount' or 'liters'.")

    comment = payload.get("comment")
    comment = str(comment).strip() if comment is not None else None

    return AdjustmentEntry(
        id=entry_id,
        date=month_start(key),
        kind=kind,
        monthKey=key,
        amount=amount,
        liters=liters,
        comment=comment or None,
    )


def build_entry(payload: dict, *, entry_id: str | None = None) -> Entry:
    if payload.get("recordType") == ADJUSTMENT_RECORD_TYPE:
        return build_adjustment_entry(payload, entry_id=entry_id)
    return build_fuel_entry(payload, entry_id=entry_id)


def entry_to_record(entry: Entry) -> dict:
    return entry.model_dump(exclude_none=True)
