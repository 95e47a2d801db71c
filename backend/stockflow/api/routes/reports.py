"""Daily sales aggregate routes for the EOD partner exports."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from stockflow.core.exceptions import DuplicateTransmissionError, NotFoundError
from stockflow.core.rate_limit import limiter
from stockflow.db.session import DbSession
from stockflow.schemas.report import DailyAggregate, TransmissionRequest, TransmissionResponse
from stockflow.services.daily_aggregate_service import get_daily_aggregate_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/daily/{store_id}/{sales_date}", response_model=DailyAggregate)
@limiter.limit("60/minute")
def daily_aggregate(
    request: Request,
    store_id: int,
    sales_date: date,
    db: DbSession,
    tz: Optional[str] = None,
):
    """Sums for one store and reporting day. Read-only."""
    try:
        return get_daily_aggregate_service(db).compute_daily(store_id, sales_date, tz)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/daily/{store_id}/{sales_date}/transmissions",
    response_model=TransmissionResponse,
    status_code=201,
)
@limiter.limit("10/minute")
def record_transmission(
    request: Request,
    store_id: int,
    sales_date: date,
    db: DbSession,
    payload: Optional[TransmissionRequest] = None,
):
    """Close the day: store its grand total and EOD counter for chaining."""
    payload = payload or TransmissionRequest()
    service = get_daily_aggregate_service(db)
    try:
        aggregate = service.compute_daily(store_id, sales_date)
        return service.record_transmission(aggregate, partner=payload.partner, notes=payload.notes)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except DuplicateTransmissionError as e:
        raise HTTPException(status_code=409, detail=e.message)
