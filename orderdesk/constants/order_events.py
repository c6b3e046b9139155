from enum import Enum


class OrderEventType(str, Enum):
    ORDER_APPROVED = "order_approved"
    CONFIRMATION_SENT = "confirmation_sent"
    CUSTOMER_CONFIRMED = "customer_confirmed"
    QR_PAYMENT_LINK_SENT = "qr_payment_link_sent"
    CUSTOMER_PAID = "customer_paid"
    CUSTOMER_CANCELLED = "customer_cancelled"
    CUSTOMER_UNREACHABLE = "customer_unreachable"
    ORDER_MARKED_DELIVERING = "order_marked_delivering"
    ORDER_SHIPPED = "order_shipped"
    ORDER_COMPLETED = "order_completed"
    VERIFICATION_REQUIRED = "verification_required"
    ORDER_REJECTED = "order_rejected"
    RISK_EVALUATED = "risk_evaluated"
    REFUND = "refund"
    RETURN = "return"
    EXCHANGE = "exchange"


# legacy names written by older clients and SQL jobs
EVENT_ALIASES = {
    "manual_approved": OrderEventType.ORDER_APPROVED,
    "order_confirmation_sent": OrderEventType.CONFIRMATION_SENT,
    "qr_sent": OrderEventType.QR_PAYMENT_LINK_SENT,
    "paid": OrderEventType.CUSTOMER_PAID,
    "paid_confirmed": OrderEventType.CUSTOMER_PAID,
    "order_paid": OrderEventType.CUSTOMER_PAID,
}


def canonical_event_type(raw):
    """Map a stored event type (any case, canonical or legacy) to its
    OrderEventType, or None when the type is unknown."""
    key = (raw or "").strip().lower()
    if key in EVENT_ALIASES:
        return EVENT_ALIASES[key]
    try:
        return OrderEventType(key)
    except ValueError:
        return None
