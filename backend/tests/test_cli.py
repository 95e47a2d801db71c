"""Tests for the maintenance CLI."""

import json
from decimal import Decimal

import pytest

from stockflow.cli import main
from stockflow.schemas.deduction import DeductionLine, DeductionRequest
from stockflow.services.stock_deduction_service import StockDeductionService


@pytest.fixture
def run(db_session, capsys):
    def _run(*argv):
        code = main(list(argv), session_factory=lambda: db_session)
        return code, json.loads(capsys.readouterr().out)
    return _run


@pytest.fixture
def mis_mapped(store, other_store, make_item, make_product):
    make_item(store, "Cup", 10, "pcs")
    foreign_cup = make_item(other_store, "Cup", 10, "pcs")
    return make_product(store, "Latte", [(foreign_cup, 1, "pcs")])


class TestCli:
    def test_detect_cross_store(self, run, store, mis_mapped):
        code, output = run("detect-cross-store", "--store-id", str(store.id))

        assert code == 1
        assert output[0]["ingredient_name"] == "Cup"

    def test_detect_clean(self, run, latte_setup):
        code, output = run("detect-cross-store")

        assert code == 0
        assert output == []

    def test_repair_previews_by_default(self, run, store, mis_mapped):
        code, output = run("repair-cross-store", "--store-id", str(store.id))

        assert code == 0
        assert output["auto_fix"] is False
        assert output["previewed"] == 1

    def test_repair_apply(self, run, store, mis_mapped):
        code, output = run("repair-cross-store", "--store-id", str(store.id), "--apply")

        assert code == 0
        assert output["repaired"] == 1

    def test_daily_aggregate(self, run, store):
        code, output = run("daily-aggregate", "--store-id", str(store.id), "--date", "2024-06-01")

        assert code == 0
        assert output["sales_date"] == "2024-06-01"
        assert output["timezone"] == "Asia/Manila"

    def test_daily_aggregate_unknown_store(self, run):
        code, output = run("daily-aggregate", "--store-id", "999", "--date", "2024-06-01")

        assert code == 2
        assert output["error"] == "NotFoundError"

    def test_sync_health_critical(self, run, db_session, latte_setup):
        StockDeductionService(db_session).deduct(DeductionRequest(
            transaction_id="t1",
            store_id=latte_setup["store"].id,
            items=[DeductionLine(product_id=latte_setup["latte"].id, quantity_sold=Decimal("50"))],
        ))

        code, output = run("sync-health")

        assert code == 1
        assert output["status"] == "critical"

    def test_retry_pending_nothing_to_do(self, run, store):
        code, output = run("retry-pending")

        assert code == 0
        assert output["attempted"] == 0
