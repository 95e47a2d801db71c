"""Cross-store mapping schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class CrossStoreMappingIssue(BaseModel):
    """Recipe ingredient whose inventory item lives in another store."""

    recipe_id: int
    recipe_name: str
    ingredient_id: int
    ingredient_name: str
    current_inventory_item_id: int
    current_inventory_store_id: int
    expected_store_id: int


class RepairRequest(BaseModel):
    store_id: int
    auto_fix: bool = False


class RepairResult(BaseModel):
    ingredient_id: int
    ingredient_name: str
    recipe_id: int
    recipe_name: str
    status: str  # success, preview, skipped, failed
    old_inventory_item_id: int
    new_inventory_item_id: Optional[int] = None
    matched_item_name: Optional[str] = None
    match_type: Optional[str] = None  # exact, partial
    reason: Optional[str] = None


class RepairSummary(BaseModel):
    store_id: int
    auto_fix: bool
    total_issues: int = 0
    repaired: int = 0
    failed: int = 0
    skipped: int = 0
    previewed: int = 0
    results: List[RepairResult] = []


class StoreMappingReport(BaseModel):
    store_id: int
    issue_count: int
    affected_recipes: int
    issues: List[CrossStoreMappingIssue] = []


class MappingReport(BaseModel):
    total_issues: int
    stores_affected: int
    by_store: Dict[int, StoreMappingReport] = {}
