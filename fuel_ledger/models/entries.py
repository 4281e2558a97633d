from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

COMPENSATION_PAYMENT = "compensation_payment"
DEBT_DEDUCTION = "debt_deduction"
ADJUSTMENT_KINDS = (COMPENSATION_PAYMENT, DEBT_DEDUCTION)

ADJUSTMENT_RECORD_TYPE = "adjustment"
FUEL_RECORD_TYPE = "fuel"


class FuelEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    recordType: Literal["fuel"] = FUEL_RECORD_TYPE
    id: str | None = None
    date: str
    distance: float | None = None
    liters: float | None = None
    cost: float | None = None


class AdjustmentEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    recordType: Literal["adjustment"] = ADJUSTMENT_RECORD_TYPE
    id: str | None = None
    date: str
    # Stored data may carry kinds outside ADJUSTMENT_KINDS; the ledger skips them.
    kind: str
    monthKey: str
    amount: float | None = None
    liters: float | None = None
    comment: str | None = None


Entry = Union[FuelEntry, AdjustmentEntry]
