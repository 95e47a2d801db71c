"""Stock Deduction Service - Deducts store inventory when POS sales complete.

Looks up the store-local recipe for each sold product and deducts the
required ingredients from that store's inventory, exactly once per
transaction.

Flow:
1. Idempotency: if the sync audit ledger already holds a success row for the
   transaction, stop and report the duplicate.
2. Resolve: for each line, find the product's recipe in the request store and
   its ingredients. Direct products are skipped with a warning. An ingredient
   pointing at another store's inventory fails the whole request.
3. Aggregate: convert each ingredient quantity to the inventory item's unit
   and sum per inventory item, so shared ingredients are checked once.
4. Validate: compare every requirement with current stock; any shortage
   fails the request before anything is written.
5. Apply: conditional decrements in inventory item id order. If one fails,
   reverse the ones already applied (compensation).
6. Finalize: append the audit row. A concurrent success for the same
   transaction trips the database uniqueness guard and this attempt is
   rolled back as a duplicate.

Every attempt leaves exactly one audit row, except a duplicate caught in
step 1 or step 6, which leaves none.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockflow.core.alerting import alert_manager
from stockflow.core.config import settings
from stockflow.core.exceptions import (
    CompensationError,
    DeductionErrorCode,
    InsufficientStockError,
    NotFoundError,
    StorageWriteError,
    TransactionVoidedError,
    UnitConversionError,
)
from stockflow.models.inventory import InventoryItem, InventoryMovement, MovementType
from stockflow.models.pos import SaleTransaction, TransactionStatus
from stockflow.models.product import ProductCatalog
from stockflow.models.recipe import Recipe
from stockflow.models.sync_audit import SyncStatus
from stockflow.schemas.deduction import (
    AffectedInventoryItem,
    AvailabilityResult,
    CompensationResult,
    DeductionAuditRecord,
    DeductionError,
    DeductionLine,
    DeductionRequest,
    RetryPendingResult,
    ShortageDetail,
)
from stockflow.services.inventory_store import InventoryStore
from stockflow.services.sync_audit_service import SyncAuditService
from stockflow.services.units import convert_quantity

logger = logging.getLogger(__name__)

DUPLICATE_WARNING = "Duplicate deduction prevented: transaction already processed"

REFERENCE_TYPE = "transaction"

# Scale of the stock and movement columns
QUANTITY_STEP = Decimal("0.0001")


def format_quantity(value: Decimal) -> str:
    """Render a quantity without trailing zeros: 10.0000 -> '10'."""
    return f"{Decimal(value).normalize():f}"


@dataclass
class _Requirement:
    inventory_item_id: int
    item_name: str
    unit: str
    required: Decimal = Decimal("0")


@dataclass
class _DeductionPlan:
    requirements: Dict[int, _Requirement] = field(default_factory=dict)
    errors: List[DeductionError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    resolved_lines: int = 0
    direct_lines: int = 0
    failed_lines: int = 0
    # Cross-store mapping found: nothing may be written
    blocked: bool = False


class StockDeductionService:
    """Service for deducting store inventory for completed sales."""

    def __init__(
        self,
        db: Session,
        test_mode: Optional[bool] = None,
        write_timeout_seconds: Optional[float] = None,
    ):
        self.db = db
        # test_mode: no duplicate check and no audit rows, so fixtures can replay one transaction id
        self.test_mode = settings.deduction_test_mode if test_mode is None else test_mode
        self.inventory = InventoryStore(db, write_timeout_seconds)
        self.ledger = SyncAuditService(db)

    # ===== CORE: TRANSACTION DEDUCTION =====

    def deduct(self, request: DeductionRequest) -> DeductionAuditRecord:
        """
        Deduct inventory for every line of a completed transaction.

        Never raises for business failures; the outcome is in the returned
        record, which mirrors the audit row written for this attempt.
        """
        started = time.monotonic()
        transaction_id = request.transaction_id
        store_id = request.store_id
        items_total = len(request.items)

        # Step 1: idempotency
        if not self.test_mode and self.ledger.has_succeeded(transaction_id):
            logger.info(f"Transaction {transaction_id} already deducted, skipping")
            return self._duplicate_record(transaction_id, items_total, started)

        # Steps 2-3: resolve recipes and aggregate per inventory item
        plan = self._build_plan(store_id, request.items)

        if plan.blocked:
            logger.error(
                f"Cross-store mapping blocks deduction for transaction {transaction_id} "
                f"(store {store_id})"
            )
            return self._finalize(
                transaction_id, store_id, SyncStatus.FAILED, 0, items_total,
                plan.errors, plan.warnings, [], started,
            )

        if not self.test_mode:
            self._skip_already_deducted(transaction_id, plan)

        # Step 4: validate against current stock
        shortages = self._find_shortages(store_id, plan.requirements)
        if shortages:
            errors = plan.errors + [self._shortage_error(s) for s in shortages]
            logger.warning(
                f"Insufficient stock for transaction {transaction_id}: "
                + "; ".join(e.message for e in errors if e.code == DeductionErrorCode.INSUFFICIENT_STOCK)
            )
            return self._finalize(
                transaction_id, store_id, SyncStatus.FAILED, 0, items_total,
                errors, plan.warnings, [], started,
            )

        # Step 5: apply
        applied: List[AffectedInventoryItem] = []
        try:
            self._apply(store_id, transaction_id, plan.requirements, applied)
        except (InsufficientStockError, StorageWriteError) as e:
            errors = plan.errors + [self._error_from_exception(e)]
            logger.error(f"Deduction write failed for transaction {transaction_id}: {e.message}")
            try:
                self._compensate(store_id, transaction_id, applied)
            except CompensationError as ce:
                return self._compensation_failed(
                    transaction_id, store_id, items_total, errors, plan.warnings, ce, started
                )
            return self._finalize(
                transaction_id, store_id, SyncStatus.FAILED, 0, items_total,
                errors, plan.warnings, [], started,
            )

        # Step 6: finalize
        if plan.failed_lines == 0:
            status = SyncStatus.SUCCESS
        elif plan.resolved_lines > 0:
            status = SyncStatus.PARTIAL
        else:
            status = SyncStatus.FAILED

        items_processed = plan.resolved_lines + plan.direct_lines
        return self._finalize(
            transaction_id, store_id, status, items_processed, items_total,
            plan.errors, plan.warnings, applied, started,
        )

    def validate_availability(self, store_id: int, lines: Sequence[DeductionLine]) -> AvailabilityResult:
        """Dry run of steps 2-4. Writes nothing."""
        plan = self._build_plan(store_id, lines)
        shortages = [] if plan.blocked else self._find_shortages(store_id, plan.requirements)
        errors = list(plan.errors)
        errors.extend(self._shortage_error(s) for s in shortages)
        return AvailabilityResult(
            can_proceed=not errors,
            shortages=shortages,
            errors=errors,
            warnings=plan.warnings,
        )

    # ===== VOIDS AND RETRIES =====

    def compensate_transaction(
        self, transaction_id: str, reason: str = "Transaction voided"
    ) -> CompensationResult:
        """
        Return to stock whatever a transaction still has deducted.

        Nets all movements referencing the transaction, so calling it twice
        (or after a failed attempt that was already compensated) restores
        nothing the second time.
        """
        outstanding = self._outstanding_deductions(transaction_id)

        result = CompensationResult(transaction_id=transaction_id, success=True)
        if not outstanding:
            logger.info(f"Nothing to restore for transaction {transaction_id}")
            return result

        try:
            for item_id in sorted(outstanding, reverse=True):
                store_id, qty = outstanding[item_id]
                new_qty = self.inventory.increment(item_id, store_id, qty)
                self.inventory.record_movement(
                    item_id, store_id, MovementType.VOID_RESTORE.value,
                    qty, new_qty - qty, new_qty,
                    reference_id=transaction_id, notes=reason,
                )
                result.restored.append(AffectedInventoryItem(
                    inventory_item_id=item_id,
                    item_name=self._item_name(item_id),
                    previous_quantity=new_qty - qty,
                    new_quantity=new_qty,
                    delta=qty,
                ))
            self.db.commit()
        except StorageWriteError as e:
            self.db.rollback()
            logger.error(f"Void restore failed for transaction {transaction_id}: {e.message}")
            return CompensationResult(
                transaction_id=transaction_id, success=False, errors=[e.message]
            )

        result.items_restored = len(result.restored)
        logger.info(
            f"Restored {result.items_restored} inventory items for transaction {transaction_id}: {reason}"
        )
        return result

    def retry(self, transaction_id: str) -> DeductionAuditRecord:
        """Re-run the deduction from the stored POS transaction lines.

        Voided sales are refused with TransactionVoidedError.
        """
        transaction = (
            self.db.query(SaleTransaction)
            .filter(SaleTransaction.id == transaction_id)
            .first()
        )
        if not transaction:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if transaction.status == TransactionStatus.VOIDED.value:
            raise TransactionVoidedError(transaction_id)
        if not transaction.items:
            raise NotFoundError(f"Transaction {transaction_id} has no items")

        request = DeductionRequest(
            transaction_id=transaction.id,
            store_id=transaction.store_id,
            items=[
                DeductionLine(
                    product_id=item.product_id,
                    quantity_sold=item.quantity,
                    product_name=item.product_name,
                )
                for item in transaction.items
            ],
        )
        logger.info(f"Retrying inventory deduction for transaction {transaction_id}")
        return self.deduct(request)

    def retry_pending(self, store_id: Optional[int] = None, limit: Optional[int] = None) -> RetryPendingResult:
        """Retry every transaction whose attempts so far are all failed or partial."""
        limit = limit or settings.sync_retry_batch_size
        pending = self.ledger.pending_transaction_ids(store_id=store_id, limit=limit)

        summary = RetryPendingResult(attempted=0, succeeded=0, still_failing=0)
        for transaction_id in pending:
            try:
                record = self.retry(transaction_id)
            except (NotFoundError, TransactionVoidedError) as e:
                logger.warning(f"Skipping retry: {e.message}")
                continue
            summary.attempted += 1
            if record.success:
                summary.succeeded += 1
            else:
                summary.still_failing += 1
            summary.results.append(record)

        logger.info(
            f"Retry pass: {summary.attempted} attempted, {summary.succeeded} succeeded, "
            f"{summary.still_failing} still failing"
        )
        return summary

    # ===== PLAN =====

    def _build_plan(self, store_id: int, lines: Sequence[DeductionLine]) -> _DeductionPlan:
        plan = _DeductionPlan()

        for line in lines:
            product = (
                self.db.query(ProductCatalog)
                .filter(
                    ProductCatalog.id == line.product_id,
                    ProductCatalog.store_id == store_id,
                )
                .first()
            )
            label = product.product_name if product else (line.product_name or f"product {line.product_id}")

            if product is not None and product.is_direct:
                plan.warnings.append(f"'{label}' is a direct product, no recipe deduction")
                plan.direct_lines += 1
                continue

            recipe = self._resolve_recipe(product, store_id, line, plan, label)
            if recipe is None:
                plan.failed_lines += 1
                continue

            line_requirements = self._line_requirements(recipe, line, store_id, plan, label)
            if line_requirements is None:
                plan.failed_lines += 1
                continue

            for item_id, requirement in line_requirements.items():
                existing = plan.requirements.get(item_id)
                if existing:
                    existing.required += requirement.required
                else:
                    plan.requirements[item_id] = requirement
            plan.resolved_lines += 1

        return plan

    def _resolve_recipe(
        self,
        product: Optional[ProductCatalog],
        store_id: int,
        line: DeductionLine,
        plan: _DeductionPlan,
        label: str,
    ) -> Optional[Recipe]:
        if product is None or product.recipe_id is None:
            plan.errors.append(DeductionError(
                code=DeductionErrorCode.NO_RECIPE_FOUND,
                message=f"No recipe found for '{label}' in store {store_id}",
                product_id=line.product_id,
            ))
            return None

        recipe = self.db.query(Recipe).filter(Recipe.id == product.recipe_id).first()
        if recipe is None or not recipe.is_active:
            plan.errors.append(DeductionError(
                code=DeductionErrorCode.NO_RECIPE_FOUND,
                message=f"No active recipe for '{label}' in store {store_id}",
                product_id=line.product_id,
            ))
            return None

        if recipe.store_id != store_id:
            plan.blocked = True
            plan.errors.append(DeductionError(
                code=DeductionErrorCode.CROSS_STORE_MISMATCH,
                message=(
                    f"Recipe '{recipe.name}' for '{label}' belongs to store "
                    f"{recipe.store_id}, not {store_id}"
                ),
                product_id=line.product_id,
            ))
            return None

        if not recipe.ingredients:
            plan.errors.append(DeductionError(
                code=DeductionErrorCode.NO_RECIPE_FOUND,
                message=f"Recipe '{recipe.name}' has no ingredients",
                product_id=line.product_id,
            ))
            return None

        return recipe

    def _line_requirements(
        self,
        recipe: Recipe,
        line: DeductionLine,
        store_id: int,
        plan: _DeductionPlan,
        label: str,
    ) -> Optional[Dict[int, _Requirement]]:
        """Per-item requirements for one line, or None if the line can't be deducted."""
        requirements: Dict[int, _Requirement] = {}
        line_ok = True

        for ingredient in recipe.ingredients:
            item = ingredient.inventory_item

            if item is None:
                if line_ok:
                    plan.errors.append(DeductionError(
                        code=DeductionErrorCode.NO_RECIPE_FOUND,
                        message=(
                            f"Ingredient '{ingredient.ingredient_name}' of '{recipe.name}' "
                            f"has no inventory item"
                        ),
                        product_id=line.product_id,
                    ))
                line_ok = False
                continue

            if item.store_id != store_id:
                # Keep scanning so every bad mapping is reported at once
                plan.blocked = True
                line_ok = False
                plan.errors.append(DeductionError(
                    code=DeductionErrorCode.CROSS_STORE_MISMATCH,
                    message=(
                        f"Ingredient '{ingredient.ingredient_name}' of '{recipe.name}' maps to "
                        f"inventory item {item.id} of store {item.store_id}, not {store_id}"
                    ),
                    product_id=line.product_id,
                    inventory_item_id=item.id,
                ))
                continue

            if not line_ok:
                continue

            if not item.is_active:
                plan.errors.append(DeductionError(
                    code=DeductionErrorCode.NO_RECIPE_FOUND,
                    message=f"Inventory item '{item.item_name}' for '{label}' is inactive",
                    product_id=line.product_id,
                    inventory_item_id=item.id,
                ))
                line_ok = False
                continue

            try:
                qty = convert_quantity(
                    ingredient.quantity_per_unit * line.quantity_sold,
                    ingredient.unit,
                    item.unit,
                    item.item_name,
                ).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
            except UnitConversionError as e:
                plan.errors.append(DeductionError(
                    code=DeductionErrorCode.UNIT_MISMATCH,
                    message=e.message,
                    product_id=line.product_id,
                    inventory_item_id=item.id,
                ))
                line_ok = False
                continue

            requirement = requirements.setdefault(
                item.id, _Requirement(item.id, item.item_name, item.unit)
            )
            requirement.required += qty

        return requirements if line_ok else None

    def _outstanding_deductions(self, transaction_id: str) -> Dict[int, Tuple[int, Decimal]]:
        """Net quantity per inventory item still deducted for a transaction.

        Returns {inventory_item_id: (store_id, quantity)} for positive nets only.
        """
        movements = (
            self.db.query(InventoryMovement)
            .filter(
                InventoryMovement.reference_type == REFERENCE_TYPE,
                InventoryMovement.reference_id == transaction_id,
            )
            .order_by(InventoryMovement.id)
            .all()
        )

        net: Dict[int, Decimal] = {}
        store_by_item: Dict[int, int] = {}
        for movement in movements:
            net[movement.inventory_item_id] = (
                net.get(movement.inventory_item_id, Decimal("0")) - movement.quantity_change
            )
            store_by_item[movement.inventory_item_id] = movement.store_id

        return {
            item_id: (store_by_item[item_id], qty)
            for item_id, qty in net.items()
            if qty > 0
        }

    def _skip_already_deducted(self, transaction_id: str, plan: _DeductionPlan) -> None:
        """Drop quantities an earlier partial attempt already took for this transaction."""
        outstanding = self._outstanding_deductions(transaction_id)
        skipped = 0
        for item_id, (_, already) in outstanding.items():
            requirement = plan.requirements.get(item_id)
            if requirement is None:
                continue
            remaining = requirement.required - already
            if remaining > 0:
                requirement.required = remaining
            else:
                del plan.requirements[item_id]
            skipped += 1

        if skipped:
            plan.warnings.append(
                f"{skipped} inventory item(s) already deducted by an earlier attempt"
            )

    def _find_shortages(self, store_id: int, requirements: Dict[int, _Requirement]) -> List[ShortageDetail]:
        levels = self.inventory.get_stock_levels(store_id, requirements.keys())
        shortages = []
        for item_id in sorted(requirements):
            requirement = requirements[item_id]
            available = levels.get(item_id, Decimal("0"))
            if available < requirement.required:
                shortages.append(ShortageDetail(
                    inventory_item_id=item_id,
                    item_name=requirement.item_name,
                    unit=requirement.unit,
                    required=requirement.required,
                    available=available,
                    shortfall=requirement.required - available,
                ))
        return shortages

    # ===== APPLY / COMPENSATE =====

    def _apply(
        self,
        store_id: int,
        transaction_id: str,
        requirements: Dict[int, _Requirement],
        applied: List[AffectedInventoryItem],
    ) -> None:
        """Decrement in item id order, appending to applied as each write lands."""
        for item_id in sorted(requirements):
            requirement = requirements[item_id]
            try:
                ok = self.inventory.conditional_decrement(item_id, store_id, requirement.required)
            except StorageWriteError as e:
                if e.details.get("applied"):
                    self._mark_applied(store_id, transaction_id, requirement, applied)
                raise

            if not ok:
                available = self.inventory.get_stock(store_id, item_id) or Decimal("0")
                raise InsufficientStockError(
                    requirement.item_name, item_id, available, requirement.required
                )
            self._mark_applied(store_id, transaction_id, requirement, applied)

    def _mark_applied(
        self,
        store_id: int,
        transaction_id: str,
        requirement: _Requirement,
        applied: List[AffectedInventoryItem],
    ) -> None:
        new_qty = self.inventory.get_stock(store_id, requirement.inventory_item_id)
        previous_qty = new_qty + requirement.required
        self.inventory.record_movement(
            requirement.inventory_item_id, store_id, MovementType.SALE.value,
            -requirement.required, previous_qty, new_qty,
            reference_id=transaction_id, notes="Recipe deduction",
        )
        applied.append(AffectedInventoryItem(
            inventory_item_id=requirement.inventory_item_id,
            item_name=requirement.item_name,
            previous_quantity=previous_qty,
            new_quantity=new_qty,
            delta=-requirement.required,
        ))

    def _compensate(self, store_id: int, transaction_id: str, applied: List[AffectedInventoryItem]) -> None:
        """Reverse applied writes, newest first. Raises CompensationError if any reversal fails."""
        failures = []
        for entry in reversed(applied):
            amount = -entry.delta
            try:
                new_qty = self.inventory.increment(entry.inventory_item_id, store_id, amount)
            except StorageWriteError as e:
                failures.append(f"{entry.item_name} ({format_quantity(amount)}): {e.message}")
                continue
            self.inventory.record_movement(
                entry.inventory_item_id, store_id, MovementType.COMPENSATION.value,
                amount, new_qty - amount, new_qty,
                reference_id=transaction_id, notes="Compensation for failed deduction",
            )

        if failures:
            raise CompensationError(
                f"Compensation failed for transaction {transaction_id}: " + "; ".join(failures),
                details={"transaction_id": transaction_id, "store_id": store_id},
            )
        if applied:
            logger.info(f"Compensated {len(applied)} inventory writes for transaction {transaction_id}")

    def _compensation_failed(
        self,
        transaction_id: str,
        store_id: int,
        items_total: int,
        errors: List[DeductionError],
        warnings: List[str],
        error: CompensationError,
        started: float,
    ) -> DeductionAuditRecord:
        logger.critical(error.message)
        alert_manager.alert(
            "critical",
            "Inventory compensation failed",
            error.message,
            source="stock_deduction",
            context={"transaction_id": transaction_id, "store_id": store_id},
        )
        # Last resort: drop the unit of work so no half-applied state is committed
        self.db.rollback()
        errors = errors + [DeductionError(
            code=DeductionErrorCode.COMPENSATION_FAILURE,
            message=error.message,
        )]
        record = self._finalize(
            transaction_id, store_id, SyncStatus.FAILED, 0, items_total,
            errors, warnings, [], started,
        )
        record.critical = True
        return record

    # ===== FINALIZE =====

    def _finalize(
        self,
        transaction_id: str,
        store_id: int,
        status: SyncStatus,
        items_processed: int,
        items_total: int,
        errors: List[DeductionError],
        warnings: List[str],
        applied: List[AffectedInventoryItem],
        started: float,
    ) -> DeductionAuditRecord:
        duration_ms = self._elapsed_ms(started)
        created_at = None
        try:
            if self.test_mode:
                # Test traffic stays out of the ledger so replays never hit the success guard
                self.db.commit()
                logger.debug(f"Test mode: no sync audit row for transaction {transaction_id}")
            else:
                audit = self.ledger.record_attempt(
                    transaction_id=transaction_id,
                    status=status,
                    items_processed=items_processed,
                    items_total=items_total,
                    errors=errors,
                    duration_ms=duration_ms,
                    affected_items=[a.model_dump(mode="json") for a in applied],
                    store_id=store_id,
                )
                self.db.commit()
                created_at = audit.created_at
        except IntegrityError:
            # Another request recorded success for this transaction first
            self.db.rollback()
            logger.warning(
                f"Concurrent deduction for transaction {transaction_id} detected, "
                f"rolled back {len(applied)} writes"
            )
            record = self._duplicate_record(transaction_id, items_total, started)
            record.errors.append(DeductionError(
                code=DeductionErrorCode.CONCURRENT_DUPLICATE,
                message=f"Transaction {transaction_id} was deducted by a concurrent request",
            ))
            return record
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.critical(f"Could not record sync audit for transaction {transaction_id}: {e}")
            alert_manager.alert(
                "critical",
                "Sync audit write failed",
                f"Transaction {transaction_id}: {e}",
                source="stock_deduction",
                context={"transaction_id": transaction_id, "store_id": store_id},
            )
            # The rollback also dropped this attempt's inventory writes
            return DeductionAuditRecord(
                transaction_id=transaction_id,
                sync_status=SyncStatus.FAILED.value,
                items_total=items_total,
                errors=errors + [DeductionError(
                    code=DeductionErrorCode.STORAGE_WRITE_FAILURE,
                    message=f"Could not record deduction outcome for transaction {transaction_id}",
                )],
                warnings=warnings,
                duration_ms=self._elapsed_ms(started),
                critical=True,
            )

        if status == SyncStatus.SUCCESS:
            logger.info(
                f"Deducted {len(applied)} inventory items for transaction {transaction_id} "
                f"in {duration_ms}ms"
            )
        return DeductionAuditRecord(
            transaction_id=transaction_id,
            sync_status=status.value,
            items_processed=items_processed,
            items_total=items_total,
            errors=errors,
            warnings=warnings,
            affected_inventory_items=applied,
            duration_ms=duration_ms,
            created_at=created_at,
        )

    def _duplicate_record(self, transaction_id: str, items_total: int, started: float) -> DeductionAuditRecord:
        return DeductionAuditRecord(
            transaction_id=transaction_id,
            sync_status=SyncStatus.SUCCESS.value,
            items_processed=0,
            items_total=items_total,
            warnings=[DUPLICATE_WARNING],
            duration_ms=self._elapsed_ms(started),
            duplicate_prevented=True,
        )

    # ===== HELPERS =====

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    @staticmethod
    def _shortage_error(shortage: ShortageDetail) -> DeductionError:
        return DeductionError(
            code=DeductionErrorCode.INSUFFICIENT_STOCK,
            message=(
                f"{shortage.item_name}: need {format_quantity(shortage.required)}, "
                f"have {format_quantity(shortage.available)}, "
                f"short {format_quantity(shortage.shortfall)}"
            ),
            inventory_item_id=shortage.inventory_item_id,
            shortage=shortage,
        )

    @staticmethod
    def _error_from_exception(error) -> DeductionError:
        return DeductionError(
            code=error.code,
            message=error.message,
            inventory_item_id=error.details.get("inventory_item_id"),
        )

    def _item_name(self, inventory_item_id: int) -> str:
        item = self.db.get(InventoryItem, inventory_item_id)
        return item.item_name if item else f"item {inventory_item_id}"


def get_stock_deduction_service(db: Session, test_mode: Optional[bool] = None) -> StockDeductionService:
    """Get stock deduction service instance."""
    return StockDeductionService(db, test_mode=test_mode)
