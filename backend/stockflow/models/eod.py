"""End-of-day transmission log.

The latest successful row per store carries the grand total and EOD counter
that the next reporting day chains from.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from stockflow.db.base import Base, CreatedAtMixin


class EodTransmission(Base, CreatedAtMixin):
    __tablename__ = "eod_transmissions"
    __table_args__ = (
        Index(
            "uq_eod_success_per_store_day",
            "store_id",
            "sales_date",
            unique=True,
            postgresql_where=text("status = 'success'"),
            sqlite_where=text("status = 'success'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sales_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    eod_counter: Mapped[int] = mapped_column(Integer, nullable=False)
    net_sales: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    grand_total: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="success", nullable=False)  # success, failed
    partner: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)  # robinsons, sm
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
