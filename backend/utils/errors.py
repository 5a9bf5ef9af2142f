# backend/utils/errors.py
"""
Domain exceptions raised by the store and the services.
The HTTP layer converts them to responses in main.py.
"""


class PosError(Exception):
    """Base exception for all business logic errors."""
    def __init__(self, message: str = "Unexpected error"):
        self.message = message
        super().__init__(self.message)


class ValidationError(PosError, ValueError):
    """Raised when a write carries a malformed or missing field."""
    pass


class ReferentialIntegrityError(PosError):
    """Raised when a category is still referenced by products."""
    def __init__(self, category_id: str = "", product_count: int = 0):
        msg = f"Cannot delete category {category_id} with {product_count} product(s)"
        super().__init__(msg)
        self.category_id = category_id
        self.product_count = product_count


class EmptyOrderError(PosError):
    """Raised when an order is submitted from an empty cart."""
    def __init__(self):
        super().__init__("Cannot submit an order from an empty cart")


class NotFoundError(PosError):
    """Raised when a requested row doesn't exist."""
    pass


class PersistenceError(PosError):
    """Raised when the underlying store fails to read or write."""
    pass


class SubmissionError(PersistenceError):
    """Raised when an order could not be written (timeouts included)."""
    pass
