"""Deduction request/result schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from stockflow.core.exceptions import DeductionErrorCode


class DeductionLine(BaseModel):
    """One sold product line."""

    product_id: int
    quantity_sold: Decimal = Field(gt=0)
    product_name: Optional[str] = None


class DeductionRequest(BaseModel):
    """Unit of work for the deduction engine. Not persisted."""

    transaction_id: str = Field(min_length=1, max_length=64)
    store_id: int
    items: List[DeductionLine] = Field(min_length=1)

    @field_validator("transaction_id")
    @classmethod
    def strip_transaction_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("transaction_id must not be blank")
        return v


class ShortageDetail(BaseModel):
    inventory_item_id: int
    item_name: str
    unit: str
    required: Decimal
    available: Decimal
    shortfall: Decimal


class DeductionError(BaseModel):
    code: DeductionErrorCode
    message: str
    product_id: Optional[int] = None
    inventory_item_id: Optional[int] = None
    shortage: Optional[ShortageDetail] = None


class AffectedInventoryItem(BaseModel):
    inventory_item_id: int
    item_name: str
    previous_quantity: Decimal
    new_quantity: Decimal
    delta: Decimal


class DeductionAuditRecord(BaseModel):
    """Result of one deduction attempt, mirrored into the sync audit ledger."""

    transaction_id: str
    sync_status: str
    items_processed: int = 0
    items_total: int = 0
    errors: List[DeductionError] = []
    warnings: List[str] = []
    affected_inventory_items: List[AffectedInventoryItem] = []
    duration_ms: int = 0
    created_at: Optional[datetime] = None
    duplicate_prevented: bool = False
    # Set when compensation failed; stock needs manual reconciliation
    critical: bool = False

    @property
    def success(self) -> bool:
        return self.sync_status == "success"

    @property
    def error_summary(self) -> Optional[str]:
        if not self.errors:
            return None
        return "; ".join(e.message for e in self.errors)


class AvailabilityRequest(BaseModel):
    store_id: int
    items: List[DeductionLine] = Field(min_length=1)


class AvailabilityResult(BaseModel):
    can_proceed: bool
    shortages: List[ShortageDetail] = []
    errors: List[DeductionError] = []
    warnings: List[str] = []


class CompensationRequest(BaseModel):
    reason: str = "Transaction voided"


class CompensationResult(BaseModel):
    transaction_id: str
    success: bool
    items_restored: int = 0
    restored: List[AffectedInventoryItem] = []
    errors: List[str] = []


class SyncAuditResponse(BaseModel):
    """Stored sync audit row."""

    id: int
    transaction_id: str
    store_id: Optional[int] = None
    sync_status: str
    items_processed: int
    items_total: int
    error_details: Optional[str] = None
    affected_inventory_items: Optional[list] = None
    sync_duration_ms: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SyncHealth(BaseModel):
    since: datetime
    store_id: Optional[int] = None
    total_attempts: int
    successful: int
    partial: int
    failed: int
    unresolved_transactions: int
    success_rate: float
    status: str  # healthy, warning, critical


class RetryPendingResult(BaseModel):
    attempted: int
    succeeded: int
    still_failing: int
    results: List[DeductionAuditRecord] = []
