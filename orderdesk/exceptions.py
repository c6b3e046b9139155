class OrderNotFoundError(Exception):
    """Raised when an order id does not exist for the current user."""

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidTransitionError(Exception):
    """Raised when an order status transition is not allowed."""

    def __init__(self, current_status: str, new_status: str):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f'Invalid order status transition from "{current_status}" to "{new_status}"'
        )


class ActionNotAllowedError(Exception):
    """Raised when an action is activated that the order's state does not offer."""

    def __init__(self, action, status: str):
        self.action = action
        self.status = status
        super().__init__(f"Action {action} is not available for status {status}")


class ActionInProgressError(Exception):
    """Raised while another action on the same order is in flight or cooling down."""


class AmountValidationError(ValueError):
    """Raised before any backend call when a money field does not parse."""


class DownloadError(Exception):
    """Raised when a file URL does not return a successful response."""
