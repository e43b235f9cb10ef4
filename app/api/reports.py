"""Variance and theoretical usage report endpoints."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from app.database import get_db
from app.models.sales import TheoreticalUsageRun
from app.schemas.reports import (
    TheoreticalUsageRequest,
    TheoreticalUsageRunResponse,
    VarianceReport,
)
from app.services.theoretical_usage import run_theoretical_usage
from app.services.variance import build_variance_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/variance", response_model=VarianceReport)
def get_variance_report(
    start: date = Query(..., description="Period start (inclusive)"),
    end: date = Query(..., description="Period end (inclusive)"),
    store_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
):
    """Theoretical vs actual usage per inventory item for a period.

    actual_usage_available is false when fewer than two inventory counts
    bracket the period.
    """
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    return build_variance_report(db, start, end, store_id=store_id)


@router.post("/theoretical-usage", response_model=TheoreticalUsageRunResponse, status_code=201)
def create_theoretical_usage_run(
    request: TheoreticalUsageRequest,
    db: Session = Depends(get_db),
):
    """Compute theoretical usage from sales for a period and store it as a run."""
    run = run_theoretical_usage(db, request.store_id, request.period_start, request.period_end)
    return (
        db.query(TheoreticalUsageRun)
        .options(selectinload(TheoreticalUsageRun.lines))
        .filter(TheoreticalUsageRun.id == run.id)
        .first()
    )
