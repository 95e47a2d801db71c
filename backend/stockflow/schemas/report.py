"""Daily aggregate (EOD) schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel


class DiscountTotals(BaseModel):
    senior: Decimal = Decimal("0.00")
    pwd: Decimal = Decimal("0.00")
    other: Decimal = Decimal("0.00")

    @property
    def total(self) -> Decimal:
        return self.senior + self.pwd + self.other


class PaymentTotals(BaseModel):
    cash: Decimal = Decimal("0.00")
    non_cash: Decimal = Decimal("0.00")
    # Normalised payment method -> amount, e.g. {"gcash": ..., "card": ...}
    by_method: Dict[str, Decimal] = {}


class DailyAggregate(BaseModel):
    """Per store/day sums consumed by the retail-partner EOD exports.

    gross_sales is the sum of transaction subtotals and
    net_sales == gross_sales - vat_amount - total_discounts exactly.
    """

    store_id: int
    sales_date: date
    timezone: str
    window_start: datetime
    window_end: datetime

    gross_sales: Decimal
    net_sales: Decimal
    vat_amount: Decimal
    vat_sales: Decimal
    vat_exempt_sales: Decimal
    zero_rated_sales: Decimal
    discounts: DiscountTotals
    total_discounts: Decimal
    payments: PaymentTotals

    transaction_count: int
    beginning_receipt: Optional[str] = None
    ending_receipt: Optional[str] = None

    void_amount: Decimal
    void_count: int
    refund_amount: Decimal
    refund_count: int

    previous_grand_total: Decimal
    grand_total: Decimal
    previous_eod_counter: int
    eod_counter: int


class TransmissionRequest(BaseModel):
    partner: Optional[str] = None  # robinsons, sm
    notes: Optional[str] = None


class TransmissionResponse(BaseModel):
    id: int
    store_id: int
    sales_date: date
    eod_counter: int
    net_sales: Decimal
    grand_total: Decimal
    status: str
    partner: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
