# Services module

from stockflow.services.inventory_store import InventoryStore
from stockflow.services.sync_audit_service import SyncAuditService, get_sync_audit_service
from stockflow.services.stock_deduction_service import (
    StockDeductionService,
    get_stock_deduction_service,
)
from stockflow.services.cross_store_mapping_service import (
    CrossStoreMappingService,
    get_cross_store_mapping_service,
)
from stockflow.services.daily_aggregate_service import (
    DailyAggregateService,
    compute_daily_aggregate,
    get_daily_aggregate_service,
)

__all__ = [
    "InventoryStore",
    "SyncAuditService",
    "get_sync_audit_service",
    "StockDeductionService",
    "get_stock_deduction_service",
    "CrossStoreMappingService",
    "get_cross_store_mapping_service",
    "DailyAggregateService",
    "compute_daily_aggregate",
    "get_daily_aggregate_service",
]
