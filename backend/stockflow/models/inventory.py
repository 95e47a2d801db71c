"""Inventory models: InventoryItem and InventoryMovement."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockflow.db.base import Base, CreatedAtMixin


class MovementType(str, Enum):
    """Reasons for inventory movements."""

    SALE = "sale"  # Recipe deduction for a completed sale
    COMPENSATION = "compensation"  # Reversal of a sale write when the deduction failed later
    VOID_RESTORE = "void_restore"  # Stock returned because the transaction was voided


class InventoryItem(Base):
    """Current stock level of one item in one store."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        UniqueConstraint("store_id", "item_name", name="uq_inventory_store_item"),
        CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)  # pcs, ml, L, g, kg
    stock_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    store: Mapped["Store"] = relationship("Store", back_populates="inventory_items")
    movements: Mapped[list["InventoryMovement"]] = relationship(
        "InventoryMovement", back_populates="inventory_item"
    )


class InventoryMovement(Base, CreatedAtMixin):
    """Ledger of all inventory changes. Append-only."""

    __tablename__ = "inventory_movements"
    __table_args__ = (
        Index("idx_movement_reference", "reference_type", "reference_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movement_type: Mapped[str] = mapped_column(String(30), nullable=False)
    quantity_change: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    previous_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    new_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # transaction
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    inventory_item: Mapped["InventoryItem"] = relationship(
        "InventoryItem", back_populates="movements"
    )
