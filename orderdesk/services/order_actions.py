# orderdesk/services/order_actions.py

import logging
from datetime import datetime, timedelta

from sqlmodel import Session

from orderdesk.config import settings
from orderdesk.constants.order_events import OrderEventType
from orderdesk.constants.order_status import OrderStatus, validate_transition
from orderdesk.models.order import Order
from orderdesk.services.invoice_service import ensure_pending_invoice, mark_invoice_paid
from orderdesk.services.order_event_service import log_order_event
from orderdesk.services.order_service import update_order

logger = logging.getLogger(__name__)

E = OrderEventType
S = OrderStatus


def approve_order(session: Session, order: Order, user_id: int) -> Order:
    """Approve, then send the customer confirmation."""
    now = datetime.utcnow()

    order = update_order(session, order.id, user_id, {
        "status": S.ORDER_APPROVED.value,
        "approved_at": now,
    })
    log_order_event(session, order.id, E.ORDER_APPROVED.value, source="manual_action")

    order = update_order(session, order.id, user_id, {
        "status": S.ORDER_CONFIRMATION_SENT.value,
        "confirmation_sent_at": datetime.utcnow(),
    })
    log_order_event(session, order.id, E.CONFIRMATION_SENT.value, source="manual_action")

    logger.info(f"Order {order.id} approved by user {user_id}")
    return order


def reject_order(session: Session, order: Order, user_id: int, reason: str) -> Order:
    order = update_order(session, order.id, user_id, {
        "status": S.ORDER_REJECTED.value,
        "reject_reason": reason,
    })
    log_order_event(
        session, order.id, E.ORDER_REJECTED.value, {"reason": reason}, source="manual_action"
    )
    return order


def flag_verification(session: Session, order: Order, user_id: int, reason: str) -> Order:
    order = update_order(session, order.id, user_id, {
        "status": S.VERIFICATION_REQUIRED.value,
        "verification_reason": reason,
    })
    log_order_event(
        session, order.id, E.VERIFICATION_REQUIRED.value, {"reason": reason}, source="manual_action"
    )
    return order


def send_qr_payment_link(session: Session, order: Order, user_id: int) -> Order:
    now = datetime.utcnow()
    expires = now + timedelta(hours=settings.qr_link_ttl_hours)

    order = update_order(session, order.id, user_id, {
        "qr_sent_at": now,
        "qr_expired_at": expires,
    })
    log_order_event(
        session,
        order.id,
        E.QR_PAYMENT_LINK_SENT.value,
        {"qr_expired_at": expires.isoformat()},
        source="manual_action",
    )
    return order


def simulate_confirmed(session: Session, order: Order, user_id: int) -> Order:
    order = update_order(session, order.id, user_id, {
        "status": S.CUSTOMER_CONFIRMED.value,
        "customer_confirmed_at": datetime.utcnow(),
    })
    ensure_pending_invoice(session, order)
    log_order_event(session, order.id, E.CUSTOMER_CONFIRMED.value, source="simulation")
    return order


def simulate_cancelled(
    session: Session,
    order: Order,
    user_id: int,
    reason: str = "Simulated: Customer changed mind",
) -> Order:
    order = update_order(session, order.id, user_id, {
        "status": S.CUSTOMER_CANCELLED.value,
        "cancelled_at": datetime.utcnow(),
        "cancel_reason": reason,
    })
    log_order_event(
        session, order.id, E.CUSTOMER_CANCELLED.value, {"reason": reason}, source="simulation"
    )
    return order


def simulate_paid(session: Session, order: Order, user_id: int) -> Order:
    """Record payment: invoice first, then the order, then the event.

    Orders already on the road keep their logistics status.
    """
    status = order.status
    if status not in (S.DELIVERING.value, S.COMPLETED.value):
        status = S.ORDER_PAID.value
    validate_transition(order.status, status)

    mark_invoice_paid(session, order)

    order = update_order(session, order.id, user_id, {
        "status": status,
        "paid_at": datetime.utcnow(),
    })
    log_order_event(session, order.id, E.CUSTOMER_PAID.value, source="simulation")
    return order


def mark_shipped(session: Session, order: Order, user_id: int) -> Order:
    now = datetime.utcnow()
    order = update_order(session, order.id, user_id, {
        "status": S.DELIVERING.value,
        "shipped_at": now,
    })
    log_order_event(
        session, order.id, E.ORDER_SHIPPED.value, {"shipped_at": now.isoformat()}, source="fulfillment"
    )
    return order


def mark_completed(session: Session, order: Order, user_id: int) -> Order:
    now = datetime.utcnow()
    order = update_order(session, order.id, user_id, {
        "status": S.COMPLETED.value,
        "completed_at": now,
    })
    log_order_event(
        session, order.id, E.ORDER_COMPLETED.value, {"completed_at": now.isoformat()}, source="fulfillment"
    )
    return order
