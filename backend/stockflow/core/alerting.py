"""In-process alert buffer for reconciliation failures.

Critical alerts mean inventory may disagree with the movement ledger and
someone has to reconcile by hand.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger("alerts")


class AlertManager:
    """Keeps the most recent alerts and mirrors them to the alerts logger."""

    LEVELS = {"info": 0, "warning": 1, "critical": 2}

    def __init__(self, max_buffer: int = 200):
        self.alerts: List[Dict[str, Any]] = []
        self.max_buffer = max_buffer

    def alert(
        self,
        level: str,
        title: str,
        message: str,
        source: str = "stockflow",
        context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        entry = {
            "level": level,
            "title": title,
            "message": message,
            "source": source,
            "context": context or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.alerts.append(entry)
        if len(self.alerts) > self.max_buffer:
            self.alerts = self.alerts[-self.max_buffer:]

        log_level = {
            "info": logging.INFO,
            "warning": logging.WARNING,
            "critical": logging.CRITICAL,
        }
        logger.log(
            log_level.get(level, logging.INFO),
            f"[{source}] {title}: {message}",
            extra={"alert_context": entry["context"]},
        )
        return entry

    def get_recent(
        self,
        limit: int = 20,
        level: Optional[str] = None,
        source: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Newest first; level is a minimum severity."""
        alerts = self.alerts
        if level:
            min_level = self.LEVELS.get(level, 0)
            alerts = [a for a in alerts if self.LEVELS.get(a["level"], 0) >= min_level]
        if source:
            alerts = [a for a in alerts if a["source"] == source]
        return list(reversed(alerts[-limit:]))

    def count(self, level: str = "critical") -> int:
        return sum(1 for a in self.alerts if a["level"] == level)

    def clear(self) -> None:
        self.alerts = []


alert_manager = AlertManager()
