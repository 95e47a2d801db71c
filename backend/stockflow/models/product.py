"""Product catalog model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockflow.db.base import Base, TimestampMixin


class ProductCatalog(Base, TimestampMixin):
    """A sellable product as listed in one store's catalog."""

    __tablename__ = "product_catalog"
    __table_args__ = (
        UniqueConstraint("store_id", "product_name", name="uq_catalog_store_product"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    recipe_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Direct products carry no recipe (bottled drinks, merch) and are skipped by recipe deduction
    is_direct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    recipe: Mapped[Optional["Recipe"]] = relationship("Recipe")
