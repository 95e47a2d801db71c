"""Error taxonomy for inventory deduction and reconciliation."""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class DeductionErrorCode(str, Enum):
    """Error codes surfaced in deduction audit records."""

    NO_RECIPE_FOUND = "no_recipe_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    CONCURRENT_DUPLICATE = "concurrent_duplicate"
    CROSS_STORE_MISMATCH = "cross_store_mismatch"
    STORAGE_WRITE_FAILURE = "storage_write_failure"
    COMPENSATION_FAILURE = "compensation_failure"
    UNIT_MISMATCH = "unit_mismatch"


class StockflowError(Exception):
    """Base exception for stockflow errors."""

    code: Optional[DeductionErrorCode] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        error_dict: Dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            error_dict["code"] = self.code.value
        if self.details:
            error_dict["details"] = self.details
        return error_dict


class NotFoundError(StockflowError):
    """Raised when a referenced store, transaction or record does not exist."""


class InsufficientStockError(StockflowError):
    """Raised when there's not enough stock for a deduction."""

    code = DeductionErrorCode.INSUFFICIENT_STOCK

    def __init__(self, item_name: str, inventory_item_id: int, available: Decimal, required: Decimal):
        self.item_name = item_name
        self.inventory_item_id = inventory_item_id
        self.available = available
        self.required = required
        short = required - available
        super().__init__(
            f"{item_name}: need {required.normalize():f}, have {available.normalize():f}, "
            f"short {short.normalize():f}",
            details={"inventory_item_id": inventory_item_id},
        )


class StorageWriteError(StockflowError):
    """Raised when an inventory write fails or exceeds the write timeout."""

    code = DeductionErrorCode.STORAGE_WRITE_FAILURE


class CompensationError(StockflowError):
    """Raised when reversing already-applied writes fails.

    Inventory may now disagree with the movement ledger; needs manual reconciliation.
    """

    code = DeductionErrorCode.COMPENSATION_FAILURE


class UnitConversionError(StockflowError):
    """Raised when unit conversion between incompatible types is attempted."""

    code = DeductionErrorCode.UNIT_MISMATCH

    def __init__(self, from_unit: str, to_unit: str, item_name: str = ""):
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.item_name = item_name
        super().__init__(
            f"Cannot convert '{from_unit}' to '{to_unit}' for '{item_name}'"
        )


class DuplicateTransmissionError(StockflowError):
    """Raised when a store/day already has a successful EOD transmission."""

    def __init__(self, store_id: int, sales_date):
        self.store_id = store_id
        self.sales_date = sales_date
        super().__init__(
            f"Store {store_id} already has a successful EOD transmission for {sales_date}",
            details={"store_id": store_id, "sales_date": str(sales_date)},
        )


class TransactionVoidedError(StockflowError):
    """Raised when a deduction retry targets a sale that was voided."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} was voided, nothing to deduct",
            details={"transaction_id": transaction_id},
        )
