from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fuel_ledger.core.time_utils import parse_iso_date

DEFAULT_RATE_STEP_DATES = (
    "2025-12-31",
    "2026-01-31",
    "2026-02-28",
    "2026-03-31",
)


class EngineSettings(BaseSettings):
    """Constants the reconciliation engine depends on.

    Values can be overridden with ``FUEL_``-prefixed environment variables or a
    ``.env`` file, e.g. ``FUEL_FUEL_PRICE=80``. ``FUEL_RATE_STEP_DATES`` takes a
    JSON list.
    """

    model_config = SettingsConfigDict(
        env_prefix="FUEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    base_rate: Decimal = Field(
        default=Decimal("9.4"), ge=0, description="Baseline norm, liters per 100 km"
    )
    rate_increase: Decimal = Field(
        default=Decimal("0.07"), ge=0, description="Increase applied on step dates"
    )
    rate_step_dates: frozenset[str] = Field(
        default=frozenset(DEFAULT_RATE_STEP_DATES),
        description="Dates (YYYY-MM-DD) on which the increased rate applies",
    )
    compensation_per_km: Decimal = Field(
        default=Decimal("5"), ge=0, description="Compensation accrued per km"
    )
    fuel_price: Decimal = Field(
        default=Decimal("76"),
        gt=0,
        description="Approximate price per liter, used only for debt estimates",
    )
    carry_unpaid_compensation: bool = Field(
        default=False,
        description="Carry each month's unpaid compensation into the next month",
    )

    @field_validator("rate_step_dates")
    @classmethod
    def check_step_dates(cls, value: frozenset[str]) -> frozenset[str]:
        for item in value:
            parse_iso_date(item)
        return value


@lru_cache
def get_settings() -> EngineSettings:
    return EngineSettings()
