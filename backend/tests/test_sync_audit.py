"""Tests for the deduction sync audit ledger."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from stockflow.models.sync_audit import InventorySyncAudit, SyncStatus
from stockflow.schemas.deduction import DeductionError
from stockflow.core.exceptions import DeductionErrorCode
from stockflow.services.sync_audit_service import SyncAuditService


@pytest.fixture
def ledger(db_session):
    return SyncAuditService(db_session)


def record(ledger, db_session, transaction_id, status, store_id=None):
    entry = ledger.record_attempt(transaction_id, status, 1, 1, store_id=store_id)
    db_session.commit()
    return entry


class TestRecordAttempt:
    def test_appends_row(self, ledger, db_session, store):
        errors = [
            DeductionError(code=DeductionErrorCode.INSUFFICIENT_STOCK, message="Cup: need 2, have 1, short 1"),
            "Syrup missing",
        ]
        entry = ledger.record_attempt(
            "t1", SyncStatus.FAILED, 0, 2, errors=errors, duration_ms=12, store_id=store.id
        )
        db_session.commit()

        row = db_session.get(InventorySyncAudit, entry.id)
        assert row.sync_status == "failed"
        assert row.items_total == 2
        assert row.error_details == "Cup: need 2, have 1, short 1; Syrup missing"
        assert row.sync_duration_ms == 12
        assert row.affected_inventory_items is None
        assert row.created_at is not None

    def test_second_success_is_rejected(self, ledger, db_session):
        record(ledger, db_session, "t1", SyncStatus.SUCCESS)

        with pytest.raises(IntegrityError):
            ledger.record_attempt("t1", SyncStatus.SUCCESS, 1, 1)

        # The savepoint was rolled back; the session is still usable
        db_session.commit()
        assert [h.sync_status for h in ledger.history("t1")] == ["success"]

    def test_failures_may_repeat(self, ledger, db_session):
        record(ledger, db_session, "t1", SyncStatus.FAILED)
        record(ledger, db_session, "t1", SyncStatus.FAILED)
        record(ledger, db_session, "t1", SyncStatus.PARTIAL)
        record(ledger, db_session, "t1", SyncStatus.SUCCESS)

        assert [h.sync_status for h in ledger.history("t1")] == [
            "failed", "failed", "partial", "success",
        ]
        assert ledger.has_succeeded("t1")
        assert not ledger.has_succeeded("t2")

    def test_accepts_plain_status_string(self, ledger, db_session):
        entry = ledger.record_attempt("t1", "partial", 1, 2)
        db_session.commit()
        assert entry.sync_status == "partial"

    def test_negative_duration_is_clamped(self, ledger, db_session):
        entry = ledger.record_attempt("t1", SyncStatus.FAILED, 0, 1, duration_ms=-5)
        db_session.commit()
        assert entry.sync_duration_ms == 0


class TestPendingTransactions:
    def test_only_unresolved_transactions(self, ledger, db_session, store, other_store):
        record(ledger, db_session, "t-failed", SyncStatus.FAILED, store.id)
        record(ledger, db_session, "t-partial", SyncStatus.PARTIAL, store.id)
        record(ledger, db_session, "t-resolved", SyncStatus.FAILED, store.id)
        record(ledger, db_session, "t-resolved", SyncStatus.SUCCESS, store.id)
        record(ledger, db_session, "t-ok", SyncStatus.SUCCESS, store.id)
        record(ledger, db_session, "t-other", SyncStatus.FAILED, other_store.id)

        assert ledger.pending_transaction_ids() == ["t-failed", "t-partial", "t-other"]
        assert ledger.pending_transaction_ids(store_id=store.id) == ["t-failed", "t-partial"]
        assert ledger.pending_transaction_ids(limit=1) == ["t-failed"]

    def test_repeated_failures_listed_once(self, ledger, db_session):
        record(ledger, db_session, "t1", SyncStatus.FAILED)
        record(ledger, db_session, "t1", SyncStatus.FAILED)

        assert ledger.pending_transaction_ids() == ["t1"]


class TestHealth:
    def test_empty_ledger_is_healthy(self, ledger):
        health = ledger.health()

        assert health.status == "healthy"
        assert health.total_attempts == 0
        assert health.success_rate == 100.0

    def test_unresolved_is_critical(self, ledger, db_session):
        record(ledger, db_session, "t1", SyncStatus.SUCCESS)
        record(ledger, db_session, "t2", SyncStatus.FAILED)

        health = ledger.health()

        assert health.status == "critical"
        assert health.unresolved_transactions == 1
        assert health.successful == 1
        assert health.failed == 1
        assert health.success_rate == 50.0

    def test_resolved_retries_are_warning(self, ledger, db_session):
        record(ledger, db_session, "t1", SyncStatus.PARTIAL)
        record(ledger, db_session, "t1", SyncStatus.SUCCESS)

        health = ledger.health()

        assert health.status == "warning"
        assert health.unresolved_transactions == 0
        assert health.partial == 1

    def test_window_excludes_older_rows(self, ledger, db_session):
        record(ledger, db_session, "t1", SyncStatus.SUCCESS)

        health = ledger.health(since=datetime.now(timezone.utc) + timedelta(hours=1))

        assert health.total_attempts == 0

    def test_store_filter(self, ledger, db_session, store, other_store):
        record(ledger, db_session, "t1", SyncStatus.SUCCESS, store.id)
        record(ledger, db_session, "t2", SyncStatus.FAILED, other_store.id)

        assert ledger.health(store_id=store.id).status == "healthy"
        assert ledger.health(store_id=other_store.id).status == "critical"
