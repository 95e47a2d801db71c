"""Tests for cross-store ingredient detection and repair."""

from decimal import Decimal

import pytest

from stockflow.models.recipe import RecipeIngredient
from stockflow.schemas.deduction import DeductionLine, DeductionRequest
from stockflow.services.cross_store_mapping_service import CrossStoreMappingService
from stockflow.services.stock_deduction_service import StockDeductionService


@pytest.fixture
def mis_mapped(store, other_store, make_item, make_product):
    """Store S recipe whose ingredients were copied from store T's inventory."""
    own_cup = make_item(store, "Cup", 10, "pcs")
    own_syrup = make_item(store, "Vanilla Syrup", 500, "ml")
    foreign_cup = make_item(other_store, "Cup", 10, "pcs")
    foreign_syrup = make_item(other_store, "Syrup", 500, "ml")
    foreign_nutella = make_item(other_store, "Nutella", 1000, "g")
    latte = make_product(
        store,
        "Latte",
        [(foreign_cup, 1, "pcs"), (foreign_syrup, 20, "ml"), (foreign_nutella, 15, "g")],
    )
    return {
        "own_cup": own_cup,
        "own_syrup": own_syrup,
        "foreign_cup": foreign_cup,
        "foreign_syrup": foreign_syrup,
        "foreign_nutella": foreign_nutella,
        "latte": latte,
    }


def ingredient_targets(db_session, recipe_id):
    return {
        i.ingredient_name: i.inventory_item_id
        for i in db_session.query(RecipeIngredient).filter_by(recipe_id=recipe_id).all()
    }


class TestDetect:
    def test_finds_cross_store_ingredients(self, db_session, store, other_store, mis_mapped):
        service = CrossStoreMappingService(db_session)

        issues = service.detect(store.id)

        assert [i.ingredient_name for i in issues] == ["Cup", "Syrup", "Nutella"]
        assert {i.current_inventory_store_id for i in issues} == {other_store.id}
        assert {i.expected_store_id for i in issues} == {store.id}
        assert service.detect(other_store.id) == []
        assert len(service.detect()) == 3

    def test_clean_store_has_no_issues(self, db_session, latte_setup):
        assert CrossStoreMappingService(db_session).detect() == []


class TestRepair:
    def test_preview_writes_nothing(self, db_session, store, mis_mapped):
        m = mis_mapped
        summary = CrossStoreMappingService(db_session).repair(store.id)

        assert not summary.auto_fix
        assert summary.total_issues == 3
        assert summary.previewed == 2
        assert summary.skipped == 1
        assert summary.repaired == 0
        targets = ingredient_targets(db_session, m["latte"].recipe_id)
        assert targets["Cup"] == m["foreign_cup"].id

    def test_apply_repoints_matches(self, db_session, store, mis_mapped):
        m = mis_mapped
        summary = CrossStoreMappingService(db_session).repair(store.id, auto_fix=True)

        assert summary.repaired == 2
        assert summary.skipped == 1
        assert summary.failed == 0

        results = {r.ingredient_name: r for r in summary.results}
        assert results["Cup"].status == "success"
        assert results["Cup"].match_type == "exact"
        assert results["Cup"].new_inventory_item_id == m["own_cup"].id
        assert results["Syrup"].match_type == "partial"
        assert results["Syrup"].matched_item_name == "Vanilla Syrup"
        assert results["Nutella"].status == "skipped"
        assert results["Nutella"].reason == "no matching inventory in target store"

        targets = ingredient_targets(db_session, m["latte"].recipe_id)
        assert targets["Cup"] == m["own_cup"].id
        assert targets["Syrup"] == m["own_syrup"].id
        assert targets["Nutella"] == m["foreign_nutella"].id

    def test_repair_is_idempotent(self, db_session, store, mis_mapped):
        service = CrossStoreMappingService(db_session)
        service.repair(store.id, auto_fix=True)

        again = service.repair(store.id, auto_fix=True)

        assert again.total_issues == 1
        assert again.repaired == 0
        assert again.skipped == 1

    def test_inactive_items_are_not_matched(self, db_session, store, other_store, make_item, make_product):
        make_item(store, "Cup", 10, "pcs", is_active=False)
        foreign_cup = make_item(other_store, "Cup", 10, "pcs")
        make_product(store, "Latte", [(foreign_cup, 1, "pcs")])

        summary = CrossStoreMappingService(db_session).repair(store.id, auto_fix=True)

        assert summary.skipped == 1
        assert summary.repaired == 0

    def test_repaired_recipe_deducts_own_store(self, db_session, store, other_store, make_item, make_product):
        own_cup = make_item(store, "Cup", 10, "pcs")
        foreign_cup = make_item(other_store, "Cup", 10, "pcs")
        latte = make_product(store, "Latte", [(foreign_cup, 1, "pcs")])
        request = DeductionRequest(
            transaction_id="t1",
            store_id=store.id,
            items=[DeductionLine(product_id=latte.id, quantity_sold=Decimal("2"))],
        )
        deductions = StockDeductionService(db_session)
        assert deductions.deduct(request).sync_status == "failed"

        CrossStoreMappingService(db_session).repair(store.id, auto_fix=True)
        record = deductions.deduct(request)

        assert record.success
        assert deductions.inventory.get_stock(store.id, own_cup.id) == Decimal("8")
        assert deductions.inventory.get_stock(other_store.id, foreign_cup.id) == Decimal("10")

    def test_declared_name_wins_over_current_item_name(
        self, db_session, store, other_store, make_item, make_product
    ):
        make_item(store, "Syrup", 500, "ml")
        vanilla = make_item(store, "Vanilla Syrup", 500, "ml")
        foreign_syrup = make_item(other_store, "Syrup", 500, "ml")
        latte = make_product(store, "Latte", [(foreign_syrup, 20, "ml")])
        ingredient = db_session.query(RecipeIngredient).filter_by(recipe_id=latte.recipe_id).one()
        ingredient.ingredient_name = "Vanilla Syrup"
        db_session.commit()

        summary = CrossStoreMappingService(db_session).repair(store.id, auto_fix=True)

        result = summary.results[0]
        assert result.new_inventory_item_id == vanilla.id
        assert result.match_type == "exact"
        assert ingredient_targets(db_session, latte.recipe_id) == {"Vanilla Syrup": vanilla.id}

    def test_current_item_name_is_the_fallback(self, db_session, store, other_store, make_item, make_product):
        own_beans = make_item(store, "Espresso Beans", 1000, "g")
        foreign_beans = make_item(other_store, "Espresso Beans", 1000, "g")
        latte = make_product(store, "Latte", [(foreign_beans, 18, "g")])
        ingredient = db_session.query(RecipeIngredient).filter_by(recipe_id=latte.recipe_id).one()
        ingredient.ingredient_name = "House Blend"
        db_session.commit()

        summary = CrossStoreMappingService(db_session).repair(store.id, auto_fix=True)

        assert summary.repaired == 1
        assert summary.results[0].new_inventory_item_id == own_beans.id
        assert summary.results[0].match_type == "exact"

    def test_like_wildcards_in_names_match_literally(
        self, db_session, store, other_store, make_item, make_product
    ):
        make_item(store, "Oat Milk", 1000, "ml")
        foreign_milk = make_item(other_store, "Oat_Milk", 1000, "ml")
        make_product(store, "Oat Latte", [(foreign_milk, 150, "ml")])

        summary = CrossStoreMappingService(db_session).repair(store.id, auto_fix=True)

        assert summary.skipped == 1
        assert summary.results[0].new_inventory_item_id is None


class TestReport:
    def test_groups_by_store(self, db_session, store, mis_mapped):
        report = CrossStoreMappingService(db_session).report()

        assert report.total_issues == 3
        assert report.stores_affected == 1
        entry = report.by_store[store.id]
        assert entry.issue_count == 3
        assert entry.affected_recipes == 1

    def test_empty_report(self, db_session, store):
        report = CrossStoreMappingService(db_session).report()

        assert report.total_issues == 0
        assert report.by_store == {}
