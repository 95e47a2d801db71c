"""
Sync Audit Service

Append-only ledger of deduction attempts. Answers "has this transaction
already been deducted?" and feeds the retry and health views.

Rows are never updated. The success-uniqueness guarantee lives in the
database (partial unique index on transaction_id where sync_status is
'success'); record_attempt lets the IntegrityError escape so the caller can
undo its writes.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockflow.models.pos import SaleTransaction, TransactionStatus
from stockflow.models.sync_audit import InventorySyncAudit, SyncStatus
from stockflow.schemas.deduction import DeductionError, SyncHealth

logger = logging.getLogger(__name__)

HEALTHY_SUCCESS_RATE = 95.0


class SyncAuditService:
    """Service over the inventory_sync_audit table."""

    def __init__(self, db: Session):
        self.db = db

    def has_succeeded(self, transaction_id: str) -> bool:
        row = (
            self.db.query(InventorySyncAudit.id)
            .filter(
                InventorySyncAudit.transaction_id == transaction_id,
                InventorySyncAudit.sync_status == SyncStatus.SUCCESS.value,
            )
            .first()
        )
        return row is not None

    def record_attempt(
        self,
        transaction_id: str,
        status: Union[SyncStatus, str],
        items_processed: int,
        items_total: int,
        errors: Optional[Sequence[Union[DeductionError, str]]] = None,
        duration_ms: int = 0,
        affected_items: Optional[List[Dict[str, Any]]] = None,
        store_id: Optional[int] = None,
    ) -> InventorySyncAudit:
        """
        Append one attempt row inside a SAVEPOINT.

        Does not commit. A second success row for the same transaction raises
        IntegrityError after the savepoint is rolled back; the surrounding
        transaction is left intact.
        """
        status_value = status.value if isinstance(status, SyncStatus) else str(status)
        messages = [e.message if isinstance(e, DeductionError) else str(e) for e in (errors or [])]

        entry = InventorySyncAudit(
            transaction_id=transaction_id,
            store_id=store_id,
            sync_status=status_value,
            items_processed=items_processed,
            items_total=items_total,
            error_details="; ".join(messages) if messages else None,
            affected_inventory_items=affected_items or None,
            sync_duration_ms=max(int(duration_ms), 0),
        )
        with self.db.begin_nested():
            self.db.add(entry)
            self.db.flush()

        logger.info(
            f"Sync audit: transaction {transaction_id} -> {status_value} "
            f"({items_processed}/{items_total} items, {duration_ms}ms)"
        )
        return entry

    def history(self, transaction_id: str) -> List[InventorySyncAudit]:
        """All attempts for a transaction, oldest first."""
        return (
            self.db.query(InventorySyncAudit)
            .filter(InventorySyncAudit.transaction_id == transaction_id)
            .order_by(InventorySyncAudit.created_at, InventorySyncAudit.id)
            .all()
        )

    def pending_transaction_ids(self, store_id: Optional[int] = None, limit: int = 50) -> List[str]:
        """Transactions with failed or partial attempts and no success row yet.

        Sales voided at the register are left out.
        """
        succeeded = select(InventorySyncAudit.transaction_id).where(
            InventorySyncAudit.sync_status == SyncStatus.SUCCESS.value
        )
        voided = select(SaleTransaction.id).where(
            SaleTransaction.status == TransactionStatus.VOIDED.value
        )
        query = self.db.query(InventorySyncAudit.transaction_id).filter(
            InventorySyncAudit.sync_status.in_(
                [SyncStatus.FAILED.value, SyncStatus.PARTIAL.value]
            ),
            InventorySyncAudit.transaction_id.not_in(succeeded),
            InventorySyncAudit.transaction_id.not_in(voided),
        )
        if store_id is not None:
            query = query.filter(InventorySyncAudit.store_id == store_id)

        rows = (
            query.group_by(InventorySyncAudit.transaction_id)
            .order_by(func.min(InventorySyncAudit.id))
            .limit(limit)
            .all()
        )
        return [row.transaction_id for row in rows]

    def health(
        self,
        store_id: Optional[int] = None,
        since: Optional[datetime] = None,
        hours: int = 24,
    ) -> SyncHealth:
        """Sync success rate over a window.

        healthy: nothing unresolved and success rate at or above 95%.
        warning: nothing unresolved, but some attempts needed retries.
        critical: at least one transaction still has no successful deduction.
        """
        if since is None:
            since = datetime.now(timezone.utc) - timedelta(hours=hours)

        query = self.db.query(
            InventorySyncAudit.sync_status, func.count(InventorySyncAudit.id)
        ).filter(InventorySyncAudit.created_at >= since)
        if store_id is not None:
            query = query.filter(InventorySyncAudit.store_id == store_id)

        counts = {status: count for status, count in query.group_by(InventorySyncAudit.sync_status).all()}
        successful = counts.get(SyncStatus.SUCCESS.value, 0)
        partial = counts.get(SyncStatus.PARTIAL.value, 0)
        failed = counts.get(SyncStatus.FAILED.value, 0)
        total = successful + partial + failed

        unresolved = len(self.pending_transaction_ids(store_id=store_id, limit=10000))
        success_rate = round(successful / total * 100, 2) if total else 100.0

        if unresolved:
            status = "critical"
        elif success_rate < HEALTHY_SUCCESS_RATE:
            status = "warning"
        else:
            status = "healthy"

        return SyncHealth(
            since=since,
            store_id=store_id,
            total_attempts=total,
            successful=successful,
            partial=partial,
            failed=failed,
            unresolved_transactions=unresolved,
            success_rate=success_rate,
            status=status,
        )


def get_sync_audit_service(db: Session) -> SyncAuditService:
    """Get sync audit service instance."""
    return SyncAuditService(db)
