"""Inventory store primitives used by the deduction engine.

All stock changes go through conditional UPDATE statements so the
non-negative and same-store guarantees hold at write time, not only at
validation time. Each write runs inside its own SAVEPOINT: a failing
statement is rolled back on its own and the outer unit of work stays usable
for compensation.
"""

import logging
import time
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockflow.core.config import settings
from stockflow.core.exceptions import StorageWriteError
from stockflow.models.inventory import InventoryItem, InventoryMovement

logger = logging.getLogger(__name__)


class InventoryStore:
    """Stock reads, guarded writes and the movement trail for one session."""

    def __init__(self, db: Session, write_timeout_seconds: Optional[float] = None):
        self.db = db
        self.write_timeout_seconds = (
            write_timeout_seconds
            if write_timeout_seconds is not None
            else settings.storage_write_timeout_seconds
        )

    def get_stock(self, store_id: int, inventory_item_id: int) -> Optional[Decimal]:
        """Read the stored quantity, bypassing the identity map."""
        return self.db.execute(
            select(InventoryItem.stock_quantity).where(
                InventoryItem.id == inventory_item_id,
                InventoryItem.store_id == store_id,
            )
        ).scalar_one_or_none()

    def get_stock_levels(self, store_id: int, inventory_item_ids: Iterable[int]) -> Dict[int, Decimal]:
        ids = list(inventory_item_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(InventoryItem.id, InventoryItem.stock_quantity).where(
                InventoryItem.id.in_(ids),
                InventoryItem.store_id == store_id,
            )
        ).all()
        return {row.id: row.stock_quantity for row in rows}

    def conditional_decrement(self, inventory_item_id: int, store_id: int, delta: Decimal) -> bool:
        """Subtract delta only if the row belongs to store_id and has enough stock.

        Returns False when no row matched (insufficient stock, wrong store or
        inactive item). Raises StorageWriteError when the write itself fails or
        takes longer than the write timeout; in the latter case the write did
        land and ``details["applied"]`` is True.
        """
        stmt = (
            update(InventoryItem)
            .where(
                InventoryItem.id == inventory_item_id,
                InventoryItem.store_id == store_id,
                InventoryItem.is_active.is_(True),
                InventoryItem.stock_quantity >= delta,
            )
            .values(
                stock_quantity=InventoryItem.stock_quantity - delta,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        rowcount = self._execute_write(stmt, inventory_item_id, "decrement")
        return rowcount == 1

    def increment(self, inventory_item_id: int, store_id: int, delta: Decimal) -> Decimal:
        """Add delta back to an item of store_id and return the new quantity."""
        stmt = (
            update(InventoryItem)
            .where(
                InventoryItem.id == inventory_item_id,
                InventoryItem.store_id == store_id,
            )
            .values(
                stock_quantity=InventoryItem.stock_quantity + delta,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        rowcount = self._execute_write(stmt, inventory_item_id, "increment")
        if rowcount != 1:
            raise StorageWriteError(
                f"Inventory item {inventory_item_id} not found in store {store_id}",
                details={"inventory_item_id": inventory_item_id, "store_id": store_id},
            )
        return self.get_stock(store_id, inventory_item_id)

    def record_movement(
        self,
        inventory_item_id: int,
        store_id: int,
        movement_type: str,
        quantity_change: Decimal,
        previous_quantity: Decimal,
        new_quantity: Decimal,
        reference_id: Optional[str] = None,
        reference_type: str = "transaction",
        notes: Optional[str] = None,
    ) -> InventoryMovement:
        movement = InventoryMovement(
            inventory_item_id=inventory_item_id,
            store_id=store_id,
            movement_type=movement_type,
            quantity_change=quantity_change,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
        self.db.add(movement)
        return movement

    def _execute_write(self, stmt, inventory_item_id: int, operation: str) -> int:
        started = time.monotonic()
        try:
            with self.db.begin_nested():
                result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Inventory {operation} failed for item {inventory_item_id}: {e}")
            raise StorageWriteError(
                f"Inventory {operation} failed for item {inventory_item_id}",
                details={"inventory_item_id": inventory_item_id, "applied": False},
            ) from e

        elapsed = time.monotonic() - started
        if elapsed > self.write_timeout_seconds:
            logger.error(
                f"Inventory {operation} for item {inventory_item_id} took {elapsed:.2f}s "
                f"(limit {self.write_timeout_seconds}s)"
            )
            raise StorageWriteError(
                f"Inventory {operation} timed out for item {inventory_item_id}",
                details={
                    "inventory_item_id": inventory_item_id,
                    "applied": result.rowcount == 1,
                },
            )
        return result.rowcount
