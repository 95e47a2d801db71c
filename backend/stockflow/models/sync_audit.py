"""
Inventory Sync Audit - append-only record of every deduction attempt.

One row per attempt, including failures. At most one row per transaction
may carry sync_status='success'; the partial unique index below is what
makes the duplicate-deduction guard hold under concurrent retries.
"""

from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import Index, Integer, JSON, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from stockflow.db.base import Base, CreatedAtMixin


class SyncStatus(str, enum.Enum):
    """Outcome of a deduction attempt."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class InventorySyncAudit(Base, CreatedAtMixin):
    """Immutable deduction attempt row. Never updated after insert."""

    __tablename__ = "inventory_sync_audit"
    __table_args__ = (
        Index(
            "uq_sync_audit_success_per_transaction",
            "transaction_id",
            unique=True,
            postgresql_where=text("sync_status = 'success'"),
            sqlite_where=text("sync_status = 'success'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    store_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    sync_status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    items_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    items_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # [{inventory_item_id, item_name, previous_quantity, new_quantity, delta}]
    affected_inventory_items: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    sync_duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
