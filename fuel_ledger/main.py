from __future__ import annotations

import os
import threading
import time

import psutil
from fastapi import FastAPI, HTTPException, Request, Response

from fuel_ledger.core.config import get_settings
from fuel_ledger.core.engine import norm_for_reading, summarize, summarize_entries
from fuel_ledger.core.records import normalize_records
from fuel_ledger.core.store import EntryStore
from fuel_ledger.models.entries import Entry
from fuel_ledger.models.schemas import (
    EntryInput,
    NormResponse,
    PerformanceResponse,
    SummaryRequest,
    SummaryResponse,
)

app = FastAPI(
    title="Fuel Allowance Ledger API",
    version="1.0.0",
)

app.state.last_request_ms = 0.0
app.state.store = EntryStore()


@app.middleware("http")
async def collect_request_metrics(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000.0
    app.state.last_request_ms = elapsed_ms
    return response


def _store() -> EntryStore:
    return app.state.store


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/fuel/v1/norm", response_model=NormResponse)
def fuel_norm_endpoint(date: str, distance: float | None = None) -> NormResponse:
    return NormResponse(**norm_for_reading(distance, date, get_settings()))


@app.post("/fuel/v1/summary", response_model=SummaryResponse)
def summarize_records(payload: SummaryRequest | list[dict]) -> SummaryResponse:
    records = payload if isinstance(payload, list) else payload.records
    return SummaryResponse(**summarize(records, get_settings()))


@app.get("/fuel/v1/summary", response_model=SummaryResponse)
def summarize_store() -> SummaryResponse:
    fuel_entries, adjustments = normalize_records(_store().snapshot())
    return SummaryResponse(**summarize_entries(fuel_entries, adjustments, get_settings()))


@app.get("/fuel/v1/entries", response_model=list[Entry])
def list_entries() -> list[Entry]:
    return _store().list_entries()


@app.post(
    "/fuel/v1/entries",
    response_model=Entry,
    status_code=201,
)
def create_entry(payload: EntryInput) -> Entry:
    try:
        return _store().create(payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.put("/fuel/v1/entries/{entry_id}", response_model=Entry)
def update_entry(entry_id: str, payload: EntryInput) -> Entry:
    try:
        return _store().update(entry_id, payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Entry not found.") from exc


@app.delete("/fuel/v1/entries/{entry_id}", status_code=204)
def delete_entry(entry_id: str) -> Response:
    try:
        _store().delete(entry_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Entry not found.") from exc
    return Response(status_code=204)


@app.get("/fuel/v1/performance", response_model=PerformanceResponse)
def performance_report() -> PerformanceResponse:
    process = psutil.Process(os.getpid())
    memory_mb = process.memory_info().rss / (1024 * 1024)
    threads = threading.active_count()
    return PerformanceResponse(
        time=f"{app.state.last_request_ms:.3f} ms",
        memory=f"{memory_mb:.2f} MB",
        threads=threads,
    )
