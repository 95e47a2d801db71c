"""Recipe mapping routes - cross-store ingredient detection and repair."""

import logging
from typing import Optional

from fastapi import APIRouter, Request

from stockflow.core.rate_limit import limiter
from stockflow.core.responses import list_response
from stockflow.db.session import DbSession
from stockflow.schemas.mapping import MappingReport, RepairRequest, RepairSummary
from stockflow.services.cross_store_mapping_service import get_cross_store_mapping_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/cross-store")
@limiter.limit("60/minute")
def detect_cross_store_mappings(request: Request, db: DbSession, store_id: Optional[int] = None):
    """Ingredients of active recipes that point at another store's inventory."""
    issues = get_cross_store_mapping_service(db).detect(store_id)
    return list_response([issue.model_dump() for issue in issues])


@router.post("/cross-store/repair", response_model=RepairSummary)
@limiter.limit("10/minute")
def repair_cross_store_mappings(request: Request, payload: RepairRequest, db: DbSession):
    """Preview (auto_fix=false) or apply re-pointing of a store's bad mappings."""
    summary = get_cross_store_mapping_service(db).repair(payload.store_id, payload.auto_fix)
    if summary.failed:
        logger.warning(
            f"Cross-store repair for store {payload.store_id} left {summary.failed} failures"
        )
    return summary


@router.get("/cross-store/report", response_model=MappingReport)
@limiter.limit("30/minute")
def cross_store_report(request: Request, db: DbSession, store_id: Optional[int] = None):
    """Cross-store issues grouped by store."""
    return get_cross_store_mapping_service(db).report(store_id)
