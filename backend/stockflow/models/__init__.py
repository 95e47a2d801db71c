"""SQLAlchemy models."""

from stockflow.models.store import Store
from stockflow.models.inventory import InventoryItem, InventoryMovement, MovementType
from stockflow.models.recipe import Recipe, RecipeIngredient
from stockflow.models.product import ProductCatalog
from stockflow.models.sync_audit import InventorySyncAudit, SyncStatus
from stockflow.models.pos import SaleTransaction, SaleTransactionItem, Refund, TransactionStatus
from stockflow.models.eod import EodTransmission

__all__ = [
    "Store",
    "InventoryItem",
    "InventoryMovement",
    "MovementType",
    "Recipe",
    "RecipeIngredient",
    "ProductCatalog",
    "InventorySyncAudit",
    "SyncStatus",
    "SaleTransaction",
    "SaleTransactionItem",
    "Refund",
    "TransactionStatus",
    "EodTransmission",
]
