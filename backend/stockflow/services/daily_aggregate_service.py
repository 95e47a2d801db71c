"""
Daily Aggregate Service

Per store/day sales sums for the retail-partner EOD exports (BIR,
Robinsons, SM). Computing an aggregate only reads; closing a day is the
separate record_transmission call, which the next day's grand total and
EOD counter chain from.

Gross sales are the sum of transaction subtotals. Voided transactions are
counted and reported but never summed into sales. Refunds are reported on
the day they were issued and are not subtracted from net sales.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.config import settings
from stockflow.core.exceptions import DuplicateTransmissionError, NotFoundError
from stockflow.models.eod import EodTransmission
from stockflow.models.pos import Refund, SaleTransaction, TransactionStatus
from stockflow.models.store import Store
from stockflow.schemas.report import DailyAggregate, DiscountTotals, PaymentTotals

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

SENIOR_DISCOUNT_TYPES = {"senior", "senior_citizen", "sc"}
PWD_DISCOUNT_TYPES = {"pwd"}


def _money(value: Decimal) -> Decimal:
    return Decimal(value or 0).quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def classify_discount(discount_type: Optional[str]) -> str:
    """senior / pwd / other bucket for a transaction's discount type."""
    normalized = (discount_type or "").strip().lower()
    if normalized in SENIOR_DISCOUNT_TYPES:
        return "senior"
    if normalized in PWD_DISCOUNT_TYPES:
        return "pwd"
    return "other"


def normalize_payment_method(method: Optional[str]) -> str:
    return (method or "cash").strip().lower() or "cash"


def reporting_window(sales_date: date, tz_name: str) -> Tuple[datetime, datetime]:
    """[sales_date 00:00, next day 00:00) in tz_name, as UTC datetimes."""
    zone = ZoneInfo(tz_name)
    start = datetime.combine(sales_date, time.min, tzinfo=zone)
    end = datetime.combine(sales_date + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def compute_daily_aggregate(
    store_id: int,
    sales_date: date,
    tz_name: str,
    transactions: Iterable[SaleTransaction],
    refunds: Iterable[Refund],
    previous_grand_total: Decimal = Decimal("0"),
    previous_eod_counter: int = 0,
) -> DailyAggregate:
    """Fold one day's transactions and refunds into a DailyAggregate.

    Pure: the caller has already selected the rows that fall in the window.
    """
    window_start, window_end = reporting_window(sales_date, tz_name)
    ordered = sorted(transactions, key=lambda t: (_as_utc(t.created_at), t.receipt_number))

    gross = vat = vat_sales = vat_exempt = zero_rated = Decimal("0")
    discounts: Dict[str, Decimal] = {"senior": Decimal("0"), "pwd": Decimal("0"), "other": Decimal("0")}
    by_method: Dict[str, Decimal] = {}
    void_amount = Decimal("0")
    void_count = 0
    completed = []

    for txn in ordered:
        if txn.status == TransactionStatus.VOIDED.value:
            void_amount += txn.total or 0
            void_count += 1
            continue
        if txn.status != TransactionStatus.COMPLETED.value:
            continue

        completed.append(txn)
        gross += txn.subtotal or 0
        vat += txn.vat_amount or 0
        vat_sales += txn.vat_sales or 0
        vat_exempt += txn.vat_exempt_sales or 0
        zero_rated += txn.zero_rated_sales or 0

        if txn.discount:
            discounts[classify_discount(txn.discount_type)] += txn.discount

        method = normalize_payment_method(txn.payment_method)
        by_method[method] = by_method.get(method, Decimal("0")) + (txn.total or 0)

    refund_amount = Decimal("0")
    refund_count = 0
    for refund in refunds:
        refund_amount += refund.refund_amount or 0
        refund_count += 1

    discount_totals = DiscountTotals(
        senior=_money(discounts["senior"]),
        pwd=_money(discounts["pwd"]),
        other=_money(discounts["other"]),
    )
    payments = PaymentTotals(
        cash=_money(by_method.get("cash", Decimal("0"))),
        non_cash=_money(sum((v for k, v in by_method.items() if k != "cash"), Decimal("0"))),
        by_method={k: _money(v) for k, v in sorted(by_method.items())},
    )

    gross_sales = _money(gross)
    vat_amount = _money(vat)
    total_discounts = discount_totals.total
    net_sales = gross_sales - vat_amount - total_discounts
    previous_grand_total = _money(previous_grand_total)

    return DailyAggregate(
        store_id=store_id,
        sales_date=sales_date,
        timezone=tz_name,
        window_start=window_start,
        window_end=window_end,
        gross_sales=gross_sales,
        net_sales=net_sales,
        vat_amount=vat_amount,
        vat_sales=_money(vat_sales),
        vat_exempt_sales=_money(vat_exempt),
        zero_rated_sales=_money(zero_rated),
        discounts=discount_totals,
        total_discounts=total_discounts,
        payments=payments,
        transaction_count=len(completed),
        beginning_receipt=completed[0].receipt_number if completed else None,
        ending_receipt=completed[-1].receipt_number if completed else None,
        void_amount=_money(void_amount),
        void_count=void_count,
        refund_amount=_money(refund_amount),
        refund_count=refund_count,
        previous_grand_total=previous_grand_total,
        grand_total=previous_grand_total + net_sales,
        previous_eod_counter=previous_eod_counter,
        eod_counter=previous_eod_counter + 1,
    )


class DailyAggregateService:
    """Loads a store/day from the sales ledger and closes days."""

    def __init__(self, db: Session):
        self.db = db

    def resolve_timezone(self, store: Store, tz_name: Optional[str] = None) -> str:
        name = tz_name or store.timezone or settings.reporting_timezone
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{name}'") from e
        return name

    def compute_daily(self, store_id: int, sales_date: date, tz_name: Optional[str] = None) -> DailyAggregate:
        """Aggregate for one store and reporting day. Writes nothing."""
        store = self.db.get(Store, store_id)
        if not store:
            raise NotFoundError(f"Store {store_id} not found")

        tz_name = self.resolve_timezone(store, tz_name)
        window_start, window_end = reporting_window(sales_date, tz_name)

        transactions = (
            self.db.query(SaleTransaction)
            .filter(
                SaleTransaction.store_id == store_id,
                SaleTransaction.created_at >= window_start,
                SaleTransaction.created_at < window_end,
            )
            .order_by(SaleTransaction.created_at, SaleTransaction.receipt_number)
            .all()
        )
        refunds = (
            self.db.query(Refund)
            .filter(
                Refund.store_id == store_id,
                Refund.refund_date >= window_start,
                Refund.refund_date < window_end,
            )
            .all()
        )

        previous = self._last_transmission_before(store_id, sales_date)
        aggregate = compute_daily_aggregate(
            store_id,
            sales_date,
            tz_name,
            transactions,
            refunds,
            previous_grand_total=previous.grand_total if previous else Decimal("0"),
            previous_eod_counter=previous.eod_counter if previous else 0,
        )
        logger.info(
            f"Daily aggregate store {store_id} {sales_date} ({tz_name}): "
            f"{aggregate.transaction_count} transactions, net {aggregate.net_sales}"
        )
        return aggregate

    def record_transmission(
        self,
        aggregate: DailyAggregate,
        partner: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> EodTransmission:
        """Close the day: persist the aggregate's grand total and EOD counter."""
        existing = (
            self.db.query(EodTransmission.id)
            .filter(
                EodTransmission.store_id == aggregate.store_id,
                EodTransmission.sales_date == aggregate.sales_date,
                EodTransmission.status == "success",
            )
            .first()
        )
        if existing:
            raise DuplicateTransmissionError(aggregate.store_id, aggregate.sales_date)

        transmission = EodTransmission(
            store_id=aggregate.store_id,
            sales_date=aggregate.sales_date,
            eod_counter=aggregate.eod_counter,
            net_sales=aggregate.net_sales,
            grand_total=aggregate.grand_total,
            status="success",
            partner=partner,
            notes=notes,
        )
        try:
            self.db.add(transmission)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateTransmissionError(aggregate.store_id, aggregate.sales_date) from e

        self.db.refresh(transmission)
        logger.info(
            f"EOD transmission recorded: store {aggregate.store_id} {aggregate.sales_date} "
            f"counter {aggregate.eod_counter}, grand total {aggregate.grand_total}"
        )
        return transmission

    def _last_transmission_before(self, store_id: int, sales_date: date) -> Optional[EodTransmission]:
        return (
            self.db.query(EodTransmission)
            .filter(
                EodTransmission.store_id == store_id,
                EodTransmission.sales_date < sales_date,
                EodTransmission.status == "success",
            )
            .order_by(EodTransmission.sales_date.desc(), EodTransmission.id.desc())
            .first()
        )


def get_daily_aggregate_service(db: Session) -> DailyAggregateService:
    """Get daily aggregate service instance."""
    return DailyAggregateService(db)
