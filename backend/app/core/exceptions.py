"""
Domain errors for the billing/stock path and their HTTP translation.

Services raise the ClinicError family. Routes translate them with
BusinessError, which builds HTTPExceptions whose detail is rendered as
{"error": ..., "message": ...} by the handler registered in app.main.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class ClinicError(Exception):
    """Base for every error raised by the billing and inventory services."""


class ValidationError(ClinicError):
    """Missing or invalid input. Always raised before any write."""


class StockError(ClinicError):
    """A catalog line could not be priced or reserved."""

    def __init__(self, stock_id: int, message: str):
        super().__init__(message)
        self.stock_id = stock_id


class StockNotFoundError(StockError):
    def __init__(self, stock_id: int):
        super().__init__(stock_id, f"Stock with ID {stock_id} not found.")


class InsufficientStockError(StockError):
    def __init__(self, stock_id: int, available: int, requested: int):
        super().__init__(
            stock_id,
            f"Insufficient stock for stock ID {stock_id}. Available: {available}",
        )
        self.available = available
        self.requested = requested


class NotFoundError(ClinicError):
    """Bill, bill item or stock id is absent."""


class NothingToConfirmError(ClinicError):
    def __init__(self, message: str = "No pending bill items found to confirm"):
        super().__init__(message)


class TransactionError(ClinicError):
    """A store failed while a transaction was open. That store was rolled back."""

    def __init__(self, store: str, original: Exception):
        super().__init__(f"{store} transaction failed: {original}")
        self.store = store
        self.original = original


class BusinessError:
    """HTTPException factories used by the routes."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        404 for ids checked before entering a transaction.

        Example:
            raise BusinessError.not_found("Bill", f"bill_id={bill_id}")
        """
        if reason:
            logger.info(f"Not found: {resource} - {reason}")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": f"{resource} not found", "message": reason or f"{resource} not found"},
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """400 for malformed input (e.g. a non-numeric id)."""
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": detail, "message": detail},
        )

    @staticmethod
    def server_error(original_error: Exception, summary: str) -> HTTPException:
        """
        500 for any failure on a write path.

        The raw error text is passed through to the caller; there are no
        structured error codes. Unexpected (non-domain) errors are logged
        with a traceback.
        """
        if isinstance(original_error, ClinicError):
            logger.warning(f"{summary}: {type(original_error).__name__}: {original_error}")
        else:
            logger.error(
                f"{summary}: {type(original_error).__name__}: {original_error}",
                exc_info=original_error,
            )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": summary, "message": str(original_error)},
        )
