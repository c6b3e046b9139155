from enum import Enum

from orderdesk.exceptions import InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    VERIFICATION_REQUIRED = "VERIFICATION_REQUIRED"
    ORDER_APPROVED = "ORDER_APPROVED"
    ORDER_CONFIRMATION_SENT = "ORDER_CONFIRMATION_SENT"
    CUSTOMER_CONFIRMED = "CUSTOMER_CONFIRMED"
    CUSTOMER_CANCELLED = "CUSTOMER_CANCELLED"
    CUSTOMER_UNREACHABLE = "CUSTOMER_UNREACHABLE"
    ORDER_REJECTED = "ORDER_REJECTED"
    ORDER_PAID = "ORDER_PAID"
    DELIVERING = "DELIVERING"
    COMPLETED = "COMPLETED"
    RETURNED = "RETURNED"
    EXCHANGED = "EXCHANGED"


class PaymentMethod(str, Enum):
    COD = "COD"
    BANK_TRANSFER = "BANK_TRANSFER"
    MOMO = "MOMO"
    ZALO_PAY = "ZALO_PAY"
    CREDIT_CARDS = "CREDIT_CARDS"
    OTHER = "OTHER"


S = OrderStatus

ALLOWED_TRANSITIONS = {
    S.PENDING_REVIEW: [
        S.VERIFICATION_REQUIRED,
        S.ORDER_APPROVED,
        S.ORDER_REJECTED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_PAID,
        S.DELIVERING,  # prepaid orders ship straight from review
    ],
    S.VERIFICATION_REQUIRED: [
        S.ORDER_APPROVED,
        S.ORDER_REJECTED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_PAID,
        S.DELIVERING,
    ],
    S.ORDER_APPROVED: [
        S.ORDER_CONFIRMATION_SENT,
        S.CUSTOMER_CONFIRMED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_PAID,
        S.DELIVERING,
        S.ORDER_REJECTED,
    ],
    S.ORDER_CONFIRMATION_SENT: [
        S.CUSTOMER_CONFIRMED,
        S.CUSTOMER_CANCELLED,
        S.CUSTOMER_UNREACHABLE,
        S.ORDER_PAID,
        S.ORDER_REJECTED,
        S.DELIVERING,
    ],
    S.CUSTOMER_CONFIRMED: [
        S.DELIVERING,
        S.ORDER_PAID,
        S.CUSTOMER_CANCELLED,
        S.ORDER_REJECTED,
    ],
    S.DELIVERING: [
        S.COMPLETED,
        S.ORDER_PAID,
        S.CUSTOMER_CANCELLED,
        S.CUSTOMER_UNREACHABLE,
        S.ORDER_REJECTED,
        S.RETURNED,
        S.EXCHANGED,
    ],
    S.ORDER_PAID: [
        S.DELIVERING,
        S.COMPLETED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_REJECTED,
    ],
    S.COMPLETED: [S.ORDER_PAID, S.RETURNED, S.EXCHANGED],
    S.CUSTOMER_CANCELLED: [S.PENDING_REVIEW],
    S.ORDER_REJECTED: [S.PENDING_REVIEW],
    S.CUSTOMER_UNREACHABLE: [
        S.PENDING_REVIEW,
        S.ORDER_REJECTED,
        S.CUSTOMER_CANCELLED,
    ],
    S.RETURNED: [S.PENDING_REVIEW],
    S.EXCHANGED: [S.PENDING_REVIEW],
}

# statuses an order can hold before any money is collected
PRE_PAYMENT_STATUSES = {
    S.PENDING_REVIEW,
    S.VERIFICATION_REQUIRED,
    S.ORDER_APPROVED,
    S.ORDER_CONFIRMATION_SENT,
    S.CUSTOMER_CONFIRMED,
}

LOW_RISK_MAX_SCORE = 30
MEDIUM_RISK_MAX_SCORE = 70


def can_transition(current: str, new: str) -> bool:
    """True if an order in `current` may move to `new`.

    Unknown (legacy) statuses may always move, so old rows never get stuck.
    """
    if current == new:
        return True

    try:
        allowed = ALLOWED_TRANSITIONS[OrderStatus(current)]
    except ValueError:
        return True

    return new in [s.value for s in allowed]


def validate_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransitionError(current, new)
