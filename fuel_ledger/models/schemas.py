from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class EntryInput(BaseModel):
    recordType: Literal["fuel", "adjustment"] = "fuel"
    date: str | None = None
    distance: float | None = None
    liters: float | None = None
    cost: float | None = None
    kind: str | None = None
    monthKey: str | None = None
    amount: float | None = None
    comment: str | None = None


class SummaryRequest(BaseModel):
    records: list[dict[str, Any]] = Field(default_factory=list)


class MonthlyLedgerOutput(BaseModel):
    monthKey: str
    label: str
    entryCount: int
    adjustmentCount: int
    totalDistance: float
    totalLiters: float
    totalCost: float
    fuelNorm: float
    fuelDiff: float
    approvedRate: float
    accruedCompensation: float
    paidCompensation: float
    debtDeductionAmount: float
    debtDeductionLiters: float
    effectiveApplied: float
    incomingCarryoverDebtLiters: float
    incomingCarryoverDebtRub: float
    incomingUnpaidCompensation: float
    remainingCompensation: float
    monthCarryoverDebtLiters: float
    monthCarryoverDebtRub: float
    status: Literal["open", "partially_closed", "closed"]
    statusLabel: str
    estimated: bool


class PeriodTotalsOutput(BaseModel):
    totalDistance: float
    totalLiters: float
    totalCost: float
    fuelNorm: float
    totalCompensation: float
    totalPaidCompensation: float
    totalDebtDeductionAmount: float
    approxDebtDeductionAmount: float
    totalDebtDeductionLiters: float
    debtDeductionEstimated: bool
    netCompensation: float
    outstandingCompensation: float
    fuelDiff: float
    adjustedFuelDiff: float
    carryoverDebtLiters: float
    carryoverDebtRub: float
    carryoverEstimated: bool


class SummaryResponse(BaseModel):
    monthly: list[MonthlyLedgerOutput]
    totals: PeriodTotalsOutput
    explanation: str
    hasData: bool


class NormResponse(BaseModel):
    date: str
    distance: float | None = None
    rate: float
    norm: float
    stepDate: bool


class PerformanceResponse(BaseModel):
    time: str
    memory: str
    threads: int
