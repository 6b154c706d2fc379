"""
Compensation log for operations that span the billing and inventory stores.

There is no shared transaction manager. Every committed step on one store
registers the action that undoes it; if a later step fails, the caller runs
compensate() before re-raising.
"""
import logging
from typing import Callable, List, Tuple

from app.core.audit import AuditLog

logger = logging.getLogger(__name__)


class CompensationLog:
    def __init__(self):
        self._steps: List[Tuple[str, Callable[[], None]]] = []

    def __len__(self) -> int:
        return len(self._steps)

    def record(self, description: str, undo: Callable[[], None]):
        self._steps.append((description, undo))

    def clear(self):
        """Forget recorded steps once the operation has fully committed."""
        self._steps.clear()

    def compensate(self) -> int:
        """
        Run every recorded undo, newest first.

        A failing undo is logged for manual reconciliation and does not stop
        the remaining ones. Returns the number of undos that failed.
        """
        failures = 0
        while self._steps:
            description, undo = self._steps.pop()
            try:
                undo()
                logger.info(f"Compensated: {description}")
            except Exception as e:
                failures += 1
                logger.error(f"Compensation failed: {description}: {e}", exc_info=True)
                AuditLog.log_compensation_failure(description, e)
        return failures
