# backend/services/exceptions.py


class StockManagerError(Exception):
    """Base exception for stock, BOM and product operations."""

    status_code = 500

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Short machine readable error code
            details: Additional error details
        """
        self.message = message or "Stock manager error"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to the API error body."""
        error_dict = {
            "success": False,
            "error": self.message,
        }

        if self.code:
            error_dict["code"] = self.code

        if self.details:
            error_dict["details"] = self.details

        return error_dict


class NotFoundError(StockManagerError):
    """Product, BOM component or incoming order does not exist."""

    status_code = 404

    def __init__(self, message=None, code="not_found", details=None):
        super().__init__(message or "Not found", code, details)


class InvalidArgumentError(StockManagerError):
    """Non-positive quantity, missing field or malformed event payload."""

    status_code = 400

    def __init__(self, message=None, code="invalid_argument", details=None):
        super().__init__(message or "Invalid argument", code, details)


class InsufficientStockError(StockManagerError):
    """A removal would drive stock below zero."""

    status_code = 409

    def __init__(self, product_id, available, requested, message=None):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        message = message or (
            f"Insufficient stock for {product_id}: available {available}, requested {requested}"
        )
        super().__init__(
            message,
            "insufficient_stock",
            {"productId": product_id, "available": float(available), "requested": float(requested)},
        )


class ConflictError(StockManagerError):
    """Duplicate BOM component, SKU or user."""

    status_code = 409

    def __init__(self, message=None, code="conflict", details=None):
        super().__init__(message or "Conflict", code, details)
