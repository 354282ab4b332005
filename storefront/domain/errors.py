"""
Error taxonomy.

Services raise these; the HTTP layer maps them to status codes through
``status_code`` without inspecting the message.
"""
from typing import Sequence


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class NoCartError(ValidationError):
    code = "no_cart"

    def __init__(self, message: str = "No cart found"):
        super().__init__(message)


class EmptyCartError(ValidationError):
    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InsufficientInventoryError(ValidationError):
    code = "insufficient_inventory"

    def __init__(self, product_names: Sequence[str] | str, message: str | None = None):
        if isinstance(product_names, str):
            product_names = [product_names]
        self.product_names = list(product_names)
        super().__init__(message or f"Insufficient inventory for {', '.join(self.product_names)}")


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(AuthError):
    status_code = 403
    code = "forbidden"


class TransactionError(AppError):
    """Storage-layer abort. Nothing was committed, the whole operation may be retried."""

    status_code = 500
    code = "transaction_error"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"
