"""Errors raised by the stock and inventory operations.

Each error knows the HTTP status it maps to; ``main.py`` installs a single
exception handler that turns any ``TireShopError`` into a JSON response.
"""


class TireShopError(Exception):
    status_code: int = 500

    def __init__(self, message: str = "An application error occurred", original_exception: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception

    def __str__(self) -> str:
        if self.original_exception:
            return f"{self.message} (Original error: {self.original_exception})"
        return self.message


class NotFoundError(TireShopError):
    status_code = 404


class InvalidArgumentError(TireShopError):
    status_code = 400


class UnauthorizedError(TireShopError):
    status_code = 401

    def __init__(self, message: str = "User authentication required") -> None:
        super().__init__(message)


class InsufficientStockError(TireShopError):
    """The adjustment would take the on-hand quantity below zero."""

    status_code = 400

    def __init__(self, current: int, change: int) -> None:
        super().__init__(f"Insufficient stock. Current: {current}, Requested change: {change}")
        self.current = current
        self.change = change


class StorageError(TireShopError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed", original_exception: Exception | None = None) -> None:
        super().__init__(message, original_exception)


class AppendOnlyViolationError(TireShopError):
    status_code = 500

    def __init__(self, entity_type: str, entity_id: str, operation: str) -> None:
        super().__init__(f"{entity_type} {entity_id} is append-only; {operation} is not allowed")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation


class StockConflictError(TireShopError):
    """The quantity changed since the caller read it."""

    status_code = 409

    def __init__(self, expected: int, current: int) -> None:
        super().__init__(f"Stock changed concurrently. Expected: {expected}, Current: {current}")
        self.expected = expected
        self.current = current
