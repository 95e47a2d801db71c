"""
Maintenance CLI for store inventory reconciliation.

Usage:
    python -m stockflow.cli detect-cross-store [--store-id 3]
    python -m stockflow.cli repair-cross-store --store-id 3 [--apply]
    python -m stockflow.cli retry-pending [--store-id 3] [--limit 50]
    python -m stockflow.cli daily-aggregate --store-id 3 --date 2024-06-01 [--tz Asia/Manila]
    python -m stockflow.cli sync-health [--store-id 3] [--hours 24]

repair-cross-store only previews unless --apply is given. Output is JSON.
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from stockflow.core.exceptions import StockflowError
from stockflow.core.observability import configure_logging
from stockflow.services.cross_store_mapping_service import CrossStoreMappingService
from stockflow.services.daily_aggregate_service import DailyAggregateService
from stockflow.services.stock_deduction_service import StockDeductionService
from stockflow.services.sync_audit_service import SyncAuditService

logger = logging.getLogger("stockflow.cli")


def _print(payload) -> None:
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    print(json.dumps(payload, indent=2, default=str))


def detect_cross_store(db: Session, args) -> int:
    issues = CrossStoreMappingService(db).detect(args.store_id)
    _print([issue.model_dump(mode="json") for issue in issues])
    return 1 if issues else 0


def repair_cross_store(db: Session, args) -> int:
    summary = CrossStoreMappingService(db).repair(args.store_id, auto_fix=args.apply)
    _print(summary)
    return 1 if summary.failed else 0


def retry_pending(db: Session, args) -> int:
    result = StockDeductionService(db).retry_pending(store_id=args.store_id, limit=args.limit)
    _print(result)
    return 1 if result.still_failing else 0


def daily_aggregate(db: Session, args) -> int:
    aggregate = DailyAggregateService(db).compute_daily(args.store_id, args.date, args.tz)
    _print(aggregate)
    return 0


def sync_health(db: Session, args) -> int:
    health = SyncAuditService(db).health(store_id=args.store_id, hours=args.hours)
    _print(health)
    return 0 if health.status != "critical" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stockflow", description="Store inventory reconciliation tools"
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("detect-cross-store", help="List ingredients mapped to another store")
    p.add_argument("--store-id", type=int, default=None)
    p.set_defaults(func=detect_cross_store)

    p = sub.add_parser("repair-cross-store", help="Re-point a store's cross-store ingredients")
    p.add_argument("--store-id", type=int, required=True)
    p.add_argument("--apply", action="store_true", help="Write the repairs (default: preview)")
    p.set_defaults(func=repair_cross_store)

    p = sub.add_parser("retry-pending", help="Retry transactions with no successful deduction")
    p.add_argument("--store-id", type=int, default=None)
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=retry_pending)

    p = sub.add_parser("daily-aggregate", help="Compute a store's daily sales aggregate")
    p.add_argument("--store-id", type=int, required=True)
    p.add_argument("--date", type=date.fromisoformat, required=True, help="YYYY-MM-DD")
    p.add_argument("--tz", default=None, help="IANA timezone (default: store, then settings)")
    p.set_defaults(func=daily_aggregate)

    p = sub.add_parser("sync-health", help="Deduction sync health summary")
    p.add_argument("--store-id", type=int, default=None)
    p.add_argument("--hours", type=int, default=24)
    p.set_defaults(func=sync_health)

    return parser


def main(argv: Optional[List[str]] = None, session_factory: Optional[Callable[[], Session]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if session_factory is None:
        from stockflow.db.session import SessionLocal

        session_factory = SessionLocal

    db = session_factory()
    try:
        return args.func(db, args)
    except StockflowError as e:
        logger.error(e.message)
        _print(e.to_dict())
        return 2
    except ValueError as e:
        logger.error(str(e))
        return 2
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
