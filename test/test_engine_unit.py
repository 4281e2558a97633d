# Test type: Unit (norm calculator, record normalizer, write validation)
# Validation: step-date rates, zero-distance norm, tolerant decoding of stored records, and rejected writes
# Command: pytest -q

import math
from decimal import Decimal

import pytest

from fuel_ledger.core.config import EngineSettings
from fuel_ledger.core.finance import fuel_norm, fuel_rate
from fuel_ledger.core.records import (
    build_adjustment_entry,
    build_entry,
    build_fuel_entry,
    normalize_record,
    normalize_records,
)
from fuel_ledger.models.entries import AdjustmentEntry, FuelEntry

SETTINGS = EngineSettings()


@pytest.mark.parametrize("step_date", ["2025-12-31", "2026-01-31", "2026-02-28", "2026-03-31"])
def test_rate_is_increased_on_step_dates(step_date):
    assert fuel_rate(step_date, SETTINGS) == Decimal("10.058")
    assert fuel_norm(1000, step_date, SETTINGS) == Decimal("100.58")


@pytest.mark.parametrize("plain_date", ["2025-06-15", "2025-12-30", "2026-01-15", "2026-04-01"])
def test_rate_is_baseline_outside_step_dates(plain_date):
    assert fuel_rate(plain_date, SETTINGS) == Decimal("9.4")
    assert fuel_norm(1000, plain_date, SETTINGS) == Decimal("94")


def test_rate_ignores_timestamp_suffix():
    assert fuel_rate("2025-12-31T18:45:00Z", SETTINGS) == Decimal("10.058")


@pytest.mark.parametrize("distance", [0, None, math.nan, -10])
def test_norm_is_zero_without_positive_distance(distance):
    assert fuel_norm(distance, "2025-12-31", SETTINGS) == 0
    assert fuel_norm(distance, "2025-06-15", SETTINGS) == 0


def test_alternate_schedule_is_honoured():
    settings = EngineSettings(
        base_rate=Decimal("10"),
        rate_increase=Decimal("0.5"),
        rate_step_dates=frozenset({"2024-05-01"}),
    )
    assert fuel_rate("2024-05-01", settings) == Decimal("15")
    assert fuel_rate("2025-12-31", settings) == Decimal("10")
    assert fuel_norm(200, "2024-05-01", settings) == Decimal("30")


def test_normalize_fuel_record_with_aliases_and_timestamp():
    entry = normalize_record(
        {"_id": 7, "date": "2025-06-15T08:00:00Z", "mileage": "120", "liters": 10, "fuelCost": None}
    )
    assert isinstance(entry, FuelEntry)
    assert entry.id == "7"
    assert entry.date == "2025-06-15"
    assert entry.distance == 120.0
    assert entry.liters == 10.0
    assert entry.cost is None


def test_normalize_keeps_non_numeric_values_as_nan():
    entry = normalize_record({"date": "2025-06-15", "liters": "abc", "cost": ""})
    assert math.isnan(entry.liters)
    assert entry.cost is None


def test_normalize_treats_unknown_record_type_as_fuel():
    entry = normalize_record({"recordType": "refuel", "date": "2025-06-15", "liters": 5})
    assert isinstance(entry, FuelEntry)


def test_normalize_never_raises_on_garbage():
    entry = normalize_record("not a record")
    assert isinstance(entry, FuelEntry)
    assert entry.date == ""


def test_normalize_adjustment_defaults_date_to_month_start():
    entry = normalize_record(
        {
            "recordType": "adjustment",
            "adjustmentType": "debt_deduction",
            "monthKey": "2025-06",
            "liters": "10",
        }
    )
    assert isinstance(entry, AdjustmentEntry)
    assert entry.kind == "debt_deduction"
    assert entry.date == "2025-06-01"
    assert entry.liters == 10.0
    assert entry.amount is None


def test_normalize_adjustment_derives_month_key_from_date():
    entry = normalize_record(
        {"recordType": "adjustment", "kind": "compensation_payment", "date": "2025-07-01", "amount": 100}
    )
    assert entry.monthKey == "2025-07"


def test_normalize_records_splits_kinds():
    fuel, adjustments = normalize_records(
        [
            {"date": "2025-06-15", "mileage": 100},
            {"recordType": "adjustment", "kind": "compensation_payment", "monthKey": "2025-06", "amount": 1},
            {"date": "2025-06-20", "liters": 10},
        ]
    )
    assert len(fuel) == 2
    assert len(adjustments) == 1


def test_build_fuel_entry_accepts_valid_payload():
    entry = build_fuel_entry({"date": "2025-06-15", "distance": 350, "liters": "30.5"}, entry_id="a1")
    assert entry.id == "a1"
    assert entry.distance == 350.0
    assert entry.liters == 30.5
    assert entry.cost is None


def test_build_fuel_entry_requires_a_number():
    with pytest.raises(ValueError, match="at least one of distance, liters or cost"):
        build_fuel_entry({"date": "2025-06-15"})


def test_build_fuel_entry_rejects_negative_values():
    with pytest.raises(ValueError, match="'distance' cannot be negative"):
        build_fuel_entry({"date": "2025-06-15", "distance": -1})


def test_build_fuel_entry_rejects_non_numeric_values():
    with pytest.raises(ValueError, match="'liters' must be numeric"):
        build_fuel_entry({"date": "2025-06-15", "liters": "ten"})


@pytest.mark.parametrize("bad_date", ["2025-02-30", "15.06.2025", "2025/06/15"])
def test_build_fuel_entry_rejects_malformed_dates(bad_date):
    with pytest.raises(ValueError, match="Invalid date format"):
        build_fuel_entry({"date": bad_date, "liters": 10})


def test_build_fuel_entry_requires_date():
    with pytest.raises(ValueError, match="must include 'date'"):
        build_fuel_entry({"liters": 10})


def test_build_adjustment_entry_sets_month_start():
    entry = build_adjustment_entry(
        {"kind": "debt_deduction", "monthKey": "2025-06", "liters": 10, "comment": "  june  "}
    )
    assert entry.date == "2025-06-01"
    assert entry.liters == 10.0
    assert entry.comment == "june"


def test_build_adjustment_entry_rules():
    with pytest.raises(ValueError, match="must include 'amount'"):
        build_adjustment_entry({"kind": "compensation_payment", "monthKey": "2025-06"})
    with pytest.raises(ValueError, match="cannot include liters"):
        build_adjustment_entry(
            {"kind": "compensation_payment", "monthKey": "2025-06", "amount": 100, "liters": 1}
        )
    with pytest.raises(ValueError, match="'amount' or 'liters'"):
        build_adjustment_entry({"kind": "debt_deduction", "monthKey": "2025-06"})
    with pytest.raises(ValueError, match="'monthKey' must match"):
        build_adjustment_entry({"kind": "debt_deduction", "monthKey": "2025-6", "liters": 1})
    with pytest.raises(ValueError, match="must be one of"):
        build_adjustment_entry({"kind": "bonus", "monthKey": "2025-06", "amount": 1})


def test_build_entry_dispatches_on_record_type():
    fuel = build_entry({"date": "2025-06-15", "liters": 10})
    adjustment = build_entry(
        {"recordType": "adjustment", "kind": "compensation_payment", "monthKey": "2025-06", "amount": 50}
    )
    assert isinstance(fuel, FuelEntry)
    assert isinstance(adjustment, AdjustmentEntry)


@pytest.mark.parametrize("month", ["2025-06\n", " 2025-06", "2025-06-01", "２０２５-０６"])
def test_build_adjustment_entry_rejects_padded_or_non_ascii_month_keys(month):
    with pytest.raises(ValueError, match="'monthKey' must match"):
        build_adjustment_entry({"kind": "compensation_payment", "monthKey": month, "amount": 10})


def test_normalize_adjustment_strips_whitespace_around_month_key():
    entry = normalize_record(
        {"recordType": "adjustment", "kind": "compensation_payment", "monthKey": "2025-06\n", "amount": 10}
    )
    assert entry.monthKey == "2025-06"
    assert entry.date == "2025-06-01"


def test_normalize_turns_overflowing_numbers_into_nan():
    entry = normalize_record({"date": "2025-06-15", "distance": 10**400, "liters": 5})
    assert math.isnan(entry.distance)
    assert entry.liters == 5.0


def test_build_fuel_entry_rejects_overflowing_numbers():
    with pytest.raises(ValueError, match="'distance' must be numeric"):
        build_fuel_entry({"date": "2025-06-15", "distance": 10**400})
