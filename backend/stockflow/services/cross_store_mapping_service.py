"""
Cross-Store Mapping Service

Finds recipe ingredients that point at another store's inventory items and
re-points them at the matching item of the recipe's own store.

Repairs are written one ingredient at a time: a failure rolls back that
ingredient only and the loop carries on. Running repair a second time finds
nothing left to do.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockflow.models.inventory import InventoryItem
from stockflow.models.recipe import Recipe, RecipeIngredient
from stockflow.schemas.mapping import (
    CrossStoreMappingIssue,
    MappingReport,
    RepairResult,
    RepairSummary,
    StoreMappingReport,
)

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so a name matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CrossStoreMappingService:
    """Detect and repair recipe ingredients mapped to the wrong store."""

    def __init__(self, db: Session):
        self.db = db

    def detect(self, store_id: Optional[int] = None) -> List[CrossStoreMappingIssue]:
        """Active-recipe ingredients whose inventory item lives in another store."""
        query = (
            self.db.query(RecipeIngredient, Recipe, InventoryItem)
            .join(Recipe, RecipeIngredient.recipe_id == Recipe.id)
            .join(InventoryItem, RecipeIngredient.inventory_item_id == InventoryItem.id)
            .filter(
                Recipe.is_active.is_(True),
                InventoryItem.store_id != Recipe.store_id,
            )
        )
        if store_id is not None:
            query = query.filter(Recipe.store_id == store_id)

        issues: List[CrossStoreMappingIssue] = []
        seen = set()
        for ingredient, recipe, item in query.order_by(
            Recipe.store_id, Recipe.id, RecipeIngredient.id
        ).all():
            if ingredient.id in seen:
                continue
            seen.add(ingredient.id)
            issues.append(CrossStoreMappingIssue(
                recipe_id=recipe.id,
                recipe_name=recipe.name,
                ingredient_id=ingredient.id,
                ingredient_name=ingredient.ingredient_name,
                current_inventory_item_id=item.id,
                current_inventory_store_id=item.store_id,
                expected_store_id=recipe.store_id,
            ))

        if issues:
            logger.warning(
                f"Found {len(issues)} cross-store ingredient mappings"
                + (f" in store {store_id}" if store_id is not None else "")
            )
        return issues

    def repair(self, store_id: int, auto_fix: bool = False) -> RepairSummary:
        """
        Re-point every cross-store ingredient of a store's recipes.

        With auto_fix False nothing is written; each fixable ingredient is
        reported as 'preview'.
        """
        issues = self.detect(store_id)
        summary = RepairSummary(store_id=store_id, auto_fix=auto_fix, total_issues=len(issues))

        for issue in issues:
            result = self._repair_issue(issue, auto_fix)
            summary.results.append(result)
            if result.status == "success":
                summary.repaired += 1
            elif result.status == "preview":
                summary.previewed += 1
            elif result.status == "skipped":
                summary.skipped += 1
            else:
                summary.failed += 1

        logger.info(
            f"Cross-store repair for store {store_id} (auto_fix={auto_fix}): "
            f"{summary.repaired} repaired, {summary.previewed} previewed, "
            f"{summary.skipped} skipped, {summary.failed} failed"
        )
        return summary

    def report(self, store_id: Optional[int] = None) -> MappingReport:
        """Issues grouped by the store that owns the recipe."""
        issues = self.detect(store_id)
        by_store: Dict[int, StoreMappingReport] = {}
        for issue in issues:
            entry = by_store.get(issue.expected_store_id)
            if entry is None:
                entry = StoreMappingReport(
                    store_id=issue.expected_store_id, issue_count=0, affected_recipes=0
                )
                by_store[issue.expected_store_id] = entry
            entry.issues.append(issue)
            entry.issue_count += 1

        for entry in by_store.values():
            entry.affected_recipes = len({i.recipe_id for i in entry.issues})

        return MappingReport(
            total_issues=len(issues),
            stores_affected=len(by_store),
            by_store=by_store,
        )

    def _repair_issue(self, issue: CrossStoreMappingIssue, auto_fix: bool) -> RepairResult:
        result = RepairResult(
            ingredient_id=issue.ingredient_id,
            ingredient_name=issue.ingredient_name,
            recipe_id=issue.recipe_id,
            recipe_name=issue.recipe_name,
            status="skipped",
            old_inventory_item_id=issue.current_inventory_item_id,
        )

        current = self.db.get(InventoryItem, issue.current_inventory_item_id)
        names = [issue.ingredient_name]
        # Declared name first; the wrong-store item's name only as a fallback
        if current is not None and current.item_name.lower() != issue.ingredient_name.lower():
            names.append(current.item_name)

        match, match_type = self._find_match(issue.expected_store_id, names)
        if match is None:
            result.reason = "no matching inventory in target store"
            return result

        result.new_inventory_item_id = match.id
        result.matched_item_name = match.item_name
        result.match_type = match_type

        if not auto_fix:
            result.status = "preview"
            return result

        try:
            ingredient = self.db.get(RecipeIngredient, issue.ingredient_id)
            with self.db.begin_nested():
                ingredient.inventory_item_id = match.id
                self.db.flush()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to re-point ingredient {issue.ingredient_id} "
                f"('{issue.ingredient_name}') to item {match.id}: {e}"
            )
            result.status = "failed"
            result.reason = str(e)
            return result

        logger.info(
            f"Re-pointed ingredient {issue.ingredient_id} of recipe '{issue.recipe_name}' "
            f"from item {issue.current_inventory_item_id} to {match.id} ({match_type} match)"
        )
        result.status = "success"
        return result

    def _find_match(self, store_id: int, names: List[str]):
        """Same-store active item by name.

        Each name is tried in order, case-insensitive exact first and then
        substring, so a later name is only used when an earlier one finds nothing.
        """
        base = self.db.query(InventoryItem).filter(
            InventoryItem.store_id == store_id,
            InventoryItem.is_active.is_(True),
        )
        for name in names:
            item = (
                base.filter(func.lower(InventoryItem.item_name) == name.strip().lower())
                .order_by(InventoryItem.id)
                .first()
            )
            if item:
                return item, "exact"

            item = (
                base.filter(InventoryItem.item_name.ilike(f"%{escape_like(name.strip())}%", escape="\\"))
                .order_by(func.length(InventoryItem.item_name), InventoryItem.id)
                .first()
            )
            if item:
                return item, "partial"

        return None, None


def get_cross_store_mapping_service(db: Session) -> CrossStoreMappingService:
    """Get cross-store mapping service instance."""
    return CrossStoreMappingService(db)
