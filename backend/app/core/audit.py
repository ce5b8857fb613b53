"""
Audit logging for billing writes.

Every create, update and delete of invoices, invoice items, tax rows,
payments and adjustments is logged with who made it and what changed.
"""
import logging
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class AuditLog:
    """Central audit logging for billing events."""

    @staticmethod
    def log_action(
        action: str,  # "create", "update", "delete", "recompute"
        resource_type: str,  # "invoice", "invoice_item", "invoice_tax", "payment", "adjustment"
        resource_id: int,
        user_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a billing write.

        Usage:
            AuditLog.log_action("create", "adjustment", 12, user_id=3, changes={"invoice_id": 7, "amount": "500.00"})
            AuditLog.log_action("delete", "adjustment", 4, changes={"invoice_ids": [7, 8]})
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": f"{resource_type}.{action}",
            "user_id": user_id,
            "resource_id": resource_id,
        }

        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=_json_default))

    @staticmethod
    def log_rejected(
        action: str,
        resource_type: str,
        resource_id: Optional[int],
        reason: str,
        user_id: Optional[int] = None,
    ):
        """
        Log a write that the services refused (bad amounts, unknown ids).

        Usage:
            AuditLog.log_rejected("create", "adjustment", None, "Adjustment exceeds amount due")
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_severity": "WARNING",
            "event_type": f"{resource_type}.{action}.rejected",
            "resource_id": resource_id,
            "user_id": user_id,
            "reason": reason,
        }

        audit_logger.warning(json.dumps(log_entry, default=_json_default))
