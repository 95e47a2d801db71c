"""Deduction routes - recipe-based inventory deduction for POS transactions.

POST /deductions is called by the checkout flow once a sale completes. The
response always carries the audit record; a failed deduction is a 200 with
sync_status 'failed', not an HTTP error, so the register can finish the sale
and let the retry pass pick it up.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from stockflow.core.exceptions import NotFoundError, TransactionVoidedError
from stockflow.core.rate_limit import limiter
from stockflow.core.responses import paginated_response
from stockflow.db.session import DbSession
from stockflow.schemas.deduction import (
    AvailabilityRequest,
    AvailabilityResult,
    CompensationRequest,
    CompensationResult,
    DeductionAuditRecord,
    DeductionRequest,
    RetryPendingResult,
    SyncAuditResponse,
    SyncHealth,
)
from stockflow.services.stock_deduction_service import get_stock_deduction_service
from stockflow.services.sync_audit_service import get_sync_audit_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=DeductionAuditRecord)
@limiter.limit("120/minute")
def deduct_inventory(request: Request, payload: DeductionRequest, db: DbSession):
    """Deduct recipe ingredients for a completed transaction (exactly once)."""
    service = get_stock_deduction_service(db)
    return service.deduct(payload)


@router.post("/validate", response_model=AvailabilityResult)
@limiter.limit("120/minute")
def validate_availability(request: Request, payload: AvailabilityRequest, db: DbSession):
    """Check a cart against current stock without deducting anything."""
    service = get_stock_deduction_service(db)
    return service.validate_availability(payload.store_id, payload.items)


@router.get("/health", response_model=SyncHealth)
@limiter.limit("60/minute")
def sync_health(
    request: Request,
    db: DbSession,
    store_id: Optional[int] = None,
    hours: int = Query(24, ge=1, le=24 * 31),
    since: Optional[datetime] = None,
):
    """Deduction success rate and unresolved transactions over a window."""
    return get_sync_audit_service(db).health(store_id=store_id, since=since, hours=hours)


@router.post("/retry-pending", response_model=RetryPendingResult)
@limiter.limit("10/minute")
def retry_pending(
    request: Request,
    db: DbSession,
    store_id: Optional[int] = None,
    limit: Optional[int] = Query(None, ge=1, le=500),
):
    """Retry every transaction that has no successful deduction yet."""
    service = get_stock_deduction_service(db)
    return service.retry_pending(store_id=store_id, limit=limit)


@router.post("/{transaction_id}/compensate", response_model=CompensationResult)
@limiter.limit("30/minute")
def compensate_transaction(
    request: Request,
    transaction_id: str,
    db: DbSession,
    payload: Optional[CompensationRequest] = None,
):
    """Return a voided transaction's ingredients to stock."""
    reason = payload.reason if payload else CompensationRequest().reason
    result = get_stock_deduction_service(db).compensate_transaction(transaction_id, reason)
    if not result.success:
        raise HTTPException(status_code=503, detail="; ".join(result.errors))
    return result


@router.post("/{transaction_id}/retry", response_model=DeductionAuditRecord)
@limiter.limit("30/minute")
def retry_transaction(request: Request, transaction_id: str, db: DbSession):
    """Re-run the deduction from the stored transaction lines."""
    try:
        return get_stock_deduction_service(db).retry(transaction_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except TransactionVoidedError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.get("/{transaction_id}/audit")
@limiter.limit("60/minute")
def transaction_audit(
    request: Request,
    transaction_id: str,
    db: DbSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """All deduction attempts for a transaction, oldest first."""
    history = get_sync_audit_service(db).history(transaction_id)
    page = history[skip:skip + limit]
    items = [SyncAuditResponse.model_validate(row).model_dump(mode="json") for row in page]
    return paginated_response(items, total=len(history), skip=skip, limit=limit)
