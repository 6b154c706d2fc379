"""
Audit logging for bill and stock movements.

Every change that moves money or stock is written as one JSON line to the
"audit" logger so the two stores can be reconciled by hand if they ever
diverge.
"""
import logging
import json
from datetime import datetime
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _utcnow() -> str:
    return datetime.utcnow().isoformat()


class AuditLog:
    """Central audit logging for billing events."""

    @staticmethod
    def log_action(
        action: str,  # "compose", "stage", "remove", "confirm"
        resource_type: str,  # "bill", "bill_item"
        resource_id: Optional[int],
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a committed billing-store change.

        Usage:
            AuditLog.log_action("confirm", "bill", 42, changes={"items": 3, "total_amount": "900.00"})
        """
        log_entry = {
            "timestamp": _utcnow(),
            "event_type": f"{resource_type}.{action}",
            "resource_id": resource_id,
        }

        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_stock_movement(stock_id: int, delta: int, reason: str):
        """
        Log a committed inventory-store change.

        delta is negative for a reservation, positive for a release.
        """
        log_entry = {
            "timestamp": _utcnow(),
            "event_type": "stock.reserve" if delta < 0 else "stock.release",
            "stock_id": stock_id,
            "delta": delta,
            "reason": reason,
        }
        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_compensation_failure(description: str, error: Exception):
        """
        Log an undo that could not be applied.

        These entries are the only trace of a cross-store divergence and
        must be reconciled manually.
        """
        log_entry = {
            "timestamp": _utcnow(),
            "event_severity": "ERROR",
            "event_type": "compensation.failed",
            "description": description,
            "error": f"{type(error).__name__}: {error}",
        }
        audit_logger.error(json.dumps(log_entry))
