"""POS sales ledger models.

Rows are written by the checkout flow. The deduction engine reads the lines
back for retries and the daily aggregate reads the headers.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockflow.db.base import Base


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    VOIDED = "voided"


class SaleTransaction(Base):
    """A completed (or voided) POS sale."""

    __tablename__ = "sale_transactions"
    __table_args__ = (
        Index("idx_sale_store_created", "store_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TransactionStatus.COMPLETED.value, nullable=False
    )

    # Amounts as recorded by the register; gross sales are built from subtotal
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    vat_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    vat_exempt_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    zero_rated_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    discount_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)  # senior, pwd, promo...
    payment_method: Mapped[str] = mapped_column(String(30), default="cash", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    items: Mapped[list["SaleTransactionItem"]] = relationship(
        "SaleTransactionItem", back_populates="transaction", cascade="all, delete-orphan"
    )


class SaleTransactionItem(Base):
    """A single product line of a sale."""

    __tablename__ = "sale_transaction_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("sale_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    # Relationships
    transaction: Mapped["SaleTransaction"] = relationship(
        "SaleTransaction", back_populates="items"
    )


class Refund(Base):
    """Refund issued against a sale, reported on the day it was issued."""

    __tablename__ = "refunds"

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("sale_transactions.id", ondelete="SET NULL"), nullable=True
    )
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    refund_vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    refund_receipt_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    refund_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
