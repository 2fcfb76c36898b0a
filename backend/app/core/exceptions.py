"""Order-core error taxonomy.

Business-rule errors are final for the request: the client should re-prompt
the user. Transient store errors (lock timeout, deadlock, lost connection)
are retryable: the same request may succeed if resubmitted.

Every error aborts the enclosing transaction; nothing is partially applied.
"""

from typing import Any, Dict


class OrderError(Exception):
    """Base class for all errors surfaced by the order core."""

    kind: str = "OrderError"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "retryable": self.retryable}


class KitchenClosed(OrderError):
    kind = "KitchenClosed"
    status_code = 503

    def __init__(self, message: str = "Kitchen is temporarily closed. No new orders."):
        super().__init__(message)


class InvalidRequest(OrderError):
    kind = "InvalidRequest"
    status_code = 400


class DuplicateOrder(OrderError):
    kind = "DuplicateOrder"
    status_code = 409

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            f"Duplicate order detected for session '{session_id}'. Please wait a moment."
        )


class ItemNotFound(OrderError):
    kind = "ItemNotFound"
    status_code = 404

    def __init__(self, menu_item_id: int):
        self.menu_item_id = menu_item_id
        super().__init__(f"Menu item {menu_item_id} not found")


class ItemUnavailable(OrderError):
    kind = "ItemUnavailable"
    status_code = 400


class InsufficientStock(OrderError):
    """Raised when an ingredient or a simple item cannot cover the cart."""

    kind = "InsufficientStock"
    status_code = 409

    def __init__(self, message: str, name: str = ""):
        self.name = name
        super().__init__(message)


class Unauthorized(OrderError):
    kind = "Unauthorized"
    status_code = 403


class InvalidStateTransition(OrderError):
    kind = "InvalidStateTransition"
    status_code = 400


class OrderNotFound(OrderError):
    kind = "OrderNotFound"
    status_code = 404

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class IngredientNotFound(OrderError):
    kind = "IngredientNotFound"
    status_code = 404

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient {ingredient_id} not found")


class TransientStoreError(OrderError):
    """Lock timeout, deadlock or lost connection. Safe to retry."""

    kind = "TransientStoreError"
    status_code = 503
    retryable = True

    def __init__(self, message: str = "Stock is busy, please retry the order."):
        super().__init__(message)
